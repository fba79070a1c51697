"""
AI trader pool: strategy dispatch plus the single place that mutates
trader state.
"""
from dataclasses import replace
from decimal import Decimal, ROUND_FLOOR
from typing import Callable, Dict, List, Optional, Sequence
import logging

import numpy as np

from ..core.types import (
    AITrader, AIDecision, AIHolding, AITrade, Instrument, Strategy, TradeSide
)
from . import momentum, value, contrarian

logger = logging.getLogger(__name__)

Decider = Callable[[AITrader, Sequence[Instrument]], Optional[AIDecision]]

STRATEGY_DECIDERS: Dict[Strategy, Decider] = {
    Strategy.MOMENTUM: momentum.decide,
    Strategy.VALUE: value.decide,
    Strategy.CONTRARIAN: contrarian.decide,
}

MIN_COOLDOWN = 3
MAX_COOLDOWN = 7


def decide(trader: AITrader, instruments: Sequence[Instrument]) -> Optional[AIDecision]:
    """Pure strategy evaluation: state in, optional decision out"""
    decider = STRATEGY_DECIDERS.get(trader.strategy)
    if decider is None:
        raise ValueError(f"Unknown strategy: {trader.strategy}")
    return decider(trader, instruments)


def default_traders() -> List[AITrader]:
    return [
        AITrader(id='ai-1', name='WOLF-1', strategy=Strategy.MOMENTUM,
                 cash=Decimal('2000000'), risk_factor=0.25),
        AITrader(id='ai-2', name='OWL-2', strategy=Strategy.VALUE,
                 cash=Decimal('5000000'), risk_factor=0.15),
        AITrader(id='ai-3', name='BEAR-3', strategy=Strategy.CONTRARIAN,
                 cash=Decimal('3000000'), risk_factor=0.20),
    ]


def _floor(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_FLOOR))

# ============================================================================
# AGENT POOL
# ============================================================================

class AITraderPool:
    """
    Runs every AI trader once per price tick.

    Traders on cooldown only count down. Eligible traders evaluate their
    strategy against the pre-tick market; an executed trade restarts the
    cooldown at a random 3-7 ticks.
    """

    def __init__(self, traders: List[AITrader], rng: np.random.Generator):
        self.traders = traders
        self.rng = rng
        self.total_trades = 0

        logger.info(f"AI trader pool initialized with {len(traders)} traders")

    def step(self, instruments: Sequence[Instrument]) -> List[AITrade]:
        """Advance every trader by one tick. Returns the executed trades."""
        by_symbol = {i.symbol: i for i in instruments}
        trades = []

        for trader in self.traders:
            if trader.cooldown > 0:
                trader.cooldown -= 1
                continue

            decision = decide(trader, instruments)
            if decision is None:
                continue

            instrument = by_symbol.get(decision.symbol)
            if instrument is None:
                continue

            trade = self.apply(trader, decision, instrument)
            if trade is not None:
                trades.append(trade)

        return trades

    def apply(self, trader: AITrader, decision: AIDecision, instrument: Instrument) -> Optional[AITrade]:
        """Size and execute a decision against the trader's own cash and book"""
        price = Decimal(str(instrument.price))
        risk = Decimal(str(trader.risk_factor))
        holding = trader.portfolio.get(instrument.symbol, AIHolding())

        if decision.side == TradeSide.BUY:
            quantity = _floor(trader.cash * risk / price)
            if quantity <= 0:
                return None
            new_quantity = holding.quantity + quantity
            trader.cash -= quantity * price
            trader.portfolio[instrument.symbol] = AIHolding(
                quantity=new_quantity,
                average_price=(holding.average_price * holding.quantity + price * quantity) / new_quantity
            )
        else:
            if holding.quantity <= 0:
                return None
            # Sells twice as aggressively as buys
            quantity = min(holding.quantity, _floor(holding.quantity * risk * 2))
            if quantity <= 0:
                return None
            new_quantity = holding.quantity - quantity
            trader.cash += quantity * price
            trader.portfolio[instrument.symbol] = replace(
                holding,
                quantity=new_quantity,
                average_price=holding.average_price if new_quantity > 0 else Decimal(0)
            )

        trader.cooldown = int(self.rng.integers(MIN_COOLDOWN, MAX_COOLDOWN + 1))
        self.total_trades += 1

        trade = AITrade(
            trader_id=trader.id,
            trader_name=trader.name,
            side=decision.side,
            symbol=instrument.symbol,
            quantity=quantity,
            price=price
        )
        logger.debug(
            f"AI {trader.name}: {decision.side.value} {quantity} {instrument.symbol} @ {price:.2f}"
        )
        return trade

    def get_trader(self, trader_id: str) -> Optional[AITrader]:
        """Get trader by ID"""
        return next((t for t in self.traders if t.id == trader_id), None)

    def total_assets(self, trader: AITrader, prices: Dict[str, float]) -> Decimal:
        total = trader.cash
        for symbol, holding in trader.portfolio.items():
            total += holding.quantity * Decimal(str(prices.get(symbol, 0)))
        return total

    def get_all_stats(self, prices: Dict[str, float]) -> List[dict]:
        """Get statistics for all traders"""
        return [
            {
                'id': t.id,
                'name': t.name,
                'strategy': t.strategy.value,
                'cash': float(t.cash),
                'total_assets': float(self.total_assets(t, prices)),
                'cooldown': t.cooldown,
                'positions': {s: h.quantity for s, h in t.portfolio.items() if h.quantity > 0},
            }
            for t in self.traders
        ]
