"""
Market state and the geometric Brownian motion price update.

Only the tick loop writes here. Each tick swaps in a fresh tuple of
immutable instruments, so readers never see a half-updated market.
"""
import math
from collections import deque
from dataclasses import replace
from typing import Deque, Dict, Iterable, List, Optional, Sequence, Tuple
import logging

import numpy as np

from .types import (
    Instrument, Financials, StockParameters, PricePoint, MacroIndicators,
    MarketEvent, AITrade, TradeSide
)
from .constants import (
    STOCK_SYMBOLS, STOCK_SECTORS, DIVIDEND_PAYING_STOCKS,
    TRADING_DAYS_PER_YEAR, PRICE_FLOOR, HISTORY_LENGTH, MAX_TICK_VOLUME,
    AI_BUY_IMPACT, AI_SELL_IMPACT, MARKET_AVERAGE_PER, PER_SENSITIVITY,
    INITIAL_INTEREST_RATE, INTEREST_RATE_SENSITIVITY,
    INITIAL_INFLATION_RATE, INFLATION_SENSITIVITY,
    INITIAL_GDP_GROWTH, GDP_SENSITIVITY,
    INITIAL_UNEMPLOYMENT_RATE, UNEMPLOYMENT_SENSITIVITY,
)

logger = logging.getLogger(__name__)

# ============================================================================
# GENERATION
# ============================================================================

def generate_instruments(
    rng: np.random.Generator,
    symbols: Sequence[str] = STOCK_SYMBOLS
) -> List[Instrument]:
    """Fresh instruments with randomised fundamentals"""
    instruments = []
    for symbol in symbols:
        total_shares = (rng.random() * 500 + 100) * 1_000_000
        eps = rng.random() * 8 + 1
        revenue = eps * total_shares * (rng.random() * 5 + 1)
        initial_per = rng.random() * 15 + 15
        price = eps * initial_per

        instruments.append(Instrument(
            symbol=symbol,
            price=price,
            previous_price=price,
            sector=STOCK_SECTORS[symbol],
            financials=Financials(
                revenue=revenue,
                earnings_per_share=eps,
                total_shares=total_shares
            ),
            volume=int(rng.integers(500_000, 2_500_000)),
            dividend_per_share=DIVIDEND_PAYING_STOCKS.get(symbol)
        ))
    return instruments


def generate_parameters(
    rng: np.random.Generator,
    symbols: Sequence[str] = STOCK_SYMBOLS
) -> Dict[str, StockParameters]:
    """Annual drift in [-5%, 15%), volatility in [15%, 50%)"""
    return {
        symbol: StockParameters(
            mu=rng.random() * 0.20 - 0.05,
            sigma=rng.random() * 0.35 + 0.15
        )
        for symbol in symbols
    }


def initial_indicators() -> MacroIndicators:
    return MacroIndicators(
        interest_rate=INITIAL_INTEREST_RATE,
        inflation_rate=INITIAL_INFLATION_RATE,
        gdp_growth=INITIAL_GDP_GROWTH,
        unemployment_rate=INITIAL_UNEMPLOYMENT_RATE
    )

# ============================================================================
# DRIFT
# ============================================================================

def adjusted_drift(
    instrument: Instrument,
    params: StockParameters,
    indicators: MacroIndicators
) -> float:
    """Drift shifted by the macro environment and pulled toward the average P/E"""
    per = instrument.per
    per_adjustment = (MARKET_AVERAGE_PER - per) * PER_SENSITIVITY if per > 0 else 0.0

    rate_effect = (indicators.interest_rate - INITIAL_INTEREST_RATE) * INTEREST_RATE_SENSITIVITY
    inflation_effect = (indicators.inflation_rate - INITIAL_INFLATION_RATE) * INFLATION_SENSITIVITY
    gdp_effect = (indicators.gdp_growth - INITIAL_GDP_GROWTH) * GDP_SENSITIVITY
    unemployment_effect = (
        (indicators.unemployment_rate - INITIAL_UNEMPLOYMENT_RATE) * UNEMPLOYMENT_SENSITIVITY
    )

    return (
        params.mu
        - rate_effect
        - inflation_effect
        + gdp_effect
        - unemployment_effect
        + per_adjustment
    )


def gbm_step(price: float, mu: float, sigma: float, z: float,
             dt: float = 1.0 / TRADING_DAYS_PER_YEAR) -> float:
    return price * math.exp((mu - sigma ** 2 / 2) * dt + sigma * math.sqrt(dt) * z)

# ============================================================================
# MARKET STATE
# ============================================================================

class MarketState:
    """
    Per-instrument prices and fundamentals plus rolling price history.

    Features:
    - GBM step with macro and valuation drift adjustment
    - Pending event impact on prices and fundamentals
    - AI trade volume and small price impact
    - Price floor of 0.01
    """

    def __init__(
        self,
        instruments: Iterable[Instrument],
        parameters: Dict[str, StockParameters],
        history_length: int = HISTORY_LENGTH
    ):
        self._instruments: Tuple[Instrument, ...] = tuple(instruments)
        self.parameters = dict(parameters)
        self.history_length = history_length
        self.history: Dict[str, Deque[PricePoint]] = {
            i.symbol: deque(maxlen=history_length) for i in self._instruments
        }
        self.tick_count = 0

        missing = [i.symbol for i in self._instruments if i.symbol not in self.parameters]
        if missing:
            raise ValueError(f"No stock parameters for: {', '.join(missing)}")

    @classmethod
    def generate(
        cls,
        rng: np.random.Generator,
        symbols: Sequence[str] = STOCK_SYMBOLS,
        history_length: int = HISTORY_LENGTH
    ) -> 'MarketState':
        return cls(
            generate_instruments(rng, symbols),
            generate_parameters(rng, symbols),
            history_length=history_length
        )

    # ========================================================================
    # READ ACCESS
    # ========================================================================

    @property
    def instruments(self) -> Tuple[Instrument, ...]:
        return self._instruments

    @property
    def symbols(self) -> List[str]:
        return [i.symbol for i in self._instruments]

    def get(self, symbol: str) -> Optional[Instrument]:
        return next((i for i in self._instruments if i.symbol == symbol), None)

    def price_map(self) -> Dict[str, float]:
        return {i.symbol: i.price for i in self._instruments}

    def sorted_by_change(self) -> List[Instrument]:
        """Best performer first"""
        return sorted(self._instruments, key=lambda i: i.change_percent, reverse=True)

    # ========================================================================
    # UPDATE
    # ========================================================================

    def advance(
        self,
        shocks: Dict[str, float],
        indicators: MacroIndicators,
        rng: np.random.Generator,
        time: int,
        event: Optional[MarketEvent] = None,
        ai_trades: Sequence[AITrade] = ()
    ) -> Tuple[Instrument, ...]:
        """
        Move every instrument forward by one trading day fraction.

        Indicators must already include the event's macro overrides.
        """
        updated = []
        tick_volumes = []

        for instrument in self._instruments:
            params = self.parameters[instrument.symbol]
            mu = adjusted_drift(instrument, params, indicators)
            new_price = gbm_step(instrument.price, mu, params.sigma, shocks[instrument.symbol])
            financials = instrument.financials

            if event is not None and event.applies_to(instrument):
                new_price *= event.impact
                if event.has_financials_change:
                    financials = replace(
                        financials,
                        earnings_per_share=financials.earnings_per_share * (event.eps_factor or 1.0),
                        revenue=financials.revenue * (event.revenue_factor or 1.0)
                    )

            tick_volume = int(rng.integers(0, MAX_TICK_VOLUME))
            for trade in ai_trades:
                if trade.symbol != instrument.symbol:
                    continue
                tick_volume += trade.quantity
                new_price *= AI_BUY_IMPACT if trade.side == TradeSide.BUY else AI_SELL_IMPACT

            new_price = max(new_price, PRICE_FLOOR)
            change = new_price - instrument.price

            updated.append(replace(
                instrument,
                price=new_price,
                previous_price=instrument.price,
                change=change,
                change_percent=change / instrument.price * 100,
                volume=instrument.volume + tick_volume,
                financials=financials
            ))
            tick_volumes.append(tick_volume)

        self._instruments = tuple(updated)
        for instrument, tick_volume in zip(updated, tick_volumes):
            self.history[instrument.symbol].append(
                PricePoint(time=time, price=instrument.price, volume=tick_volume)
            )
        self.tick_count += 1

        logger.debug(f"Market advanced to t={time}s ({len(updated)} instruments)")
        return self._instruments

    def get_history(self, symbol: str) -> List[PricePoint]:
        return list(self.history.get(symbol, ()))
