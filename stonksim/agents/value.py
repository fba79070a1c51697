"""
Value strategy - buys low P/E names it can afford, sells expensive holdings.
"""
from decimal import Decimal
from typing import Optional, Sequence

from ..core.types import AITrader, AIDecision, Instrument, TradeSide

MAX_BUY_PER = 15.0
MIN_SELL_PER = 40.0


def decide(trader: AITrader, instruments: Sequence[Instrument]) -> Optional[AIDecision]:
    """
    Buy the lowest-P/E instrument with 0 < P/E < 15 priced under one
    trade's budget (cash x risk factor). Otherwise sell the first held
    instrument with P/E above 40.
    """
    budget = trader.cash * Decimal(str(trader.risk_factor))
    candidates = [
        i for i in instruments
        if 0 < i.per < MAX_BUY_PER and Decimal(str(i.price)) < budget
    ]
    if candidates:
        cheapest = min(candidates, key=lambda i: i.per)
        return AIDecision(side=TradeSide.BUY, symbol=cheapest.symbol)

    held = trader.held_symbols()
    for instrument in instruments:
        if instrument.symbol in held and instrument.per > MIN_SELL_PER:
            return AIDecision(side=TradeSide.SELL, symbol=instrument.symbol)
    return None
