"""
Market event generator.

On each check, with no event pending, one uniform draw picks a band:
rate change, economic report, earnings report or a general
financial/sector/stock event. The result is queued on the context and
applied by the next price tick.
"""
from dataclasses import dataclass
from typing import List, Optional
import logging

import numpy as np

from .context import SimulationContext, clamp
from .types import MarketEvent, EventScope, Sector
from .constants import (
    SECTOR_NAMES, RATE_STEP,
    MIN_INTEREST_RATE, MAX_INTEREST_RATE,
    MIN_INFLATION_RATE, MAX_INFLATION_RATE,
    MIN_GDP_GROWTH, MAX_GDP_GROWTH,
    MIN_UNEMPLOYMENT_RATE, MAX_UNEMPLOYMENT_RATE,
)

logger = logging.getLogger(__name__)

# ============================================================================
# TEMPLATES
# ============================================================================

@dataclass(frozen=True)
class ImpactTemplate:
    """Title plus impact drawn as base + U[0,1) * spread (spread may be negative)"""
    title: str
    base: float
    spread: float = 0.0

    def draw_impact(self, rng: np.random.Generator) -> float:
        if self.spread == 0.0:
            return self.base
        return self.base + rng.random() * self.spread

@dataclass(frozen=True)
class FinancialTemplate:
    title: str
    impact: float
    eps_factor: Optional[float] = None
    revenue_factor: Optional[float] = None


STOCK_EVENT_TEMPLATES: List[ImpactTemplate] = [
    ImpactTemplate('{symbol} soars on breakthrough technology announcement', 1.15, 0.10),
    ImpactTemplate('{symbol} posts quarterly results far ahead of competitors', 1.10, 0.08),
    ImpactTemplate('Government unveils support package for the industry of {symbol}', 1.12, 0.05),
    ImpactTemplate('Critical security flaw found at {symbol}, trust shaken', 0.85, -0.10),
    ImpactTemplate('{symbol} CEO resigns unexpectedly', 0.92, -0.07),
    ImpactTemplate('{symbol} hit by massive data breach', 0.88, -0.10),
    ImpactTemplate('{symbol} unveils product beating every market expectation', 1.20, 0.10),
    ImpactTemplate('Takeover rumours spread around {symbol}', 1.08, 0.05),
    ImpactTemplate('{symbol} expected to gain from struggles at rival {competitor}', 1.05, 0.05),
    ImpactTemplate('{symbol} loses key patent lawsuit', 0.80, -0.10),
]

FINANCIAL_EVENT_TEMPLATES: List[FinancialTemplate] = [
    FinancialTemplate('{symbol} improves margins with aggressive cost cutting', 1.05,
                      eps_factor=1.15, revenue_factor=1.02),
    FinancialTemplate('{symbol} lands major contract, revenue outlook raised', 1.08,
                      eps_factor=1.10, revenue_factor=1.20),
    FinancialTemplate('{symbol} warns rising input costs will hurt profitability', 0.95,
                      eps_factor=0.85),
    FinancialTemplate('{symbol} cuts revenue guidance after new lineup flops', 0.92,
                      eps_factor=0.75, revenue_factor=0.80),
]

SECTOR_EVENT_TEMPLATES: List[ImpactTemplate] = [
    ImpactTemplate('{sector} sector rallies on deregulation news', 1.08, 0.05),
    ImpactTemplate('{sector} technology adopted as next-generation standard', 1.12, 0.08),
    ImpactTemplate('Government announces major investment plan for the {sector} sector', 1.15, 0.10),
    ImpactTemplate('Bearish outlook report published on the {sector} sector', 0.93, -0.06),
    ImpactTemplate('Supply chain problems hit the {sector} sector', 0.90, -0.08),
]

RATE_HIKE_TEMPLATE = 'Central bank raises base rate by {bps}bp, tightening fears grow'
RATE_CUT_TEMPLATE = 'Central bank cuts base rate by {bps}bp to support growth'
ECONOMIC_REPORT_TEMPLATE = (
    'Economic report: inflation {inflation}%, GDP growth {gdp}%, unemployment {unemployment}%'
)

# ============================================================================
# GENERATOR
# ============================================================================

class EventGenerator:
    """
    Produces at most one pending market event at a time.

    Band boundaries on a single uniform draw (cumulative):
    rate change 4%, economic report 10%, earnings 30%, general 60%.
    """

    def __init__(
        self,
        rate_change_threshold: float = 0.04,
        economic_report_threshold: float = 0.10,
        earnings_threshold: float = 0.30,
        general_threshold: float = 0.60
    ):
        self.rate_change_threshold = rate_change_threshold
        self.economic_report_threshold = economic_report_threshold
        self.earnings_threshold = earnings_threshold
        self.general_threshold = general_threshold
        self.events_generated = 0

    def check(self, context: SimulationContext) -> Optional[MarketEvent]:
        """Maybe queue a new event. Returns the queued event, if any."""
        if context.pending_event is not None:
            return None

        rng = context.rng
        draw = rng.random()

        if draw < self.rate_change_threshold:
            event = self._rate_change(context)
        elif draw < self.economic_report_threshold:
            event = self._economic_report(context)
        elif draw < self.earnings_threshold:
            event = self._earnings_report(context)
        elif draw < self.general_threshold:
            event = self._general_event(context)
        else:
            event = None

        if event is None:
            return None

        context.propose_event(event)
        self.events_generated += 1
        logger.info(f"Market event queued: {event.title}")
        return event

    # ========================================================================
    # BANDS
    # ========================================================================

    def _rate_change(self, context: SimulationContext) -> Optional[MarketEvent]:
        current = context.indicators.interest_rate
        is_hike = context.rng.random() > 0.5
        new_rate = current + RATE_STEP if is_hike else current - RATE_STEP
        new_rate = clamp(new_rate, MIN_INTEREST_RATE, MAX_INTEREST_RATE)

        if round(new_rate, 4) == round(current, 4):
            return None

        template = RATE_HIKE_TEMPLATE if is_hike else RATE_CUT_TEMPLATE
        return MarketEvent(
            title=template.format(bps=round(RATE_STEP * 10_000)),
            scope=EventScope.GLOBAL,
            new_rate=new_rate
        )

    def _economic_report(self, context: SimulationContext) -> MarketEvent:
        rng = context.rng
        indicators = context.indicators

        inflation = clamp(
            indicators.inflation_rate + (rng.random() - 0.5) * 0.005,
            MIN_INFLATION_RATE, MAX_INFLATION_RATE
        )
        gdp = clamp(
            indicators.gdp_growth + (rng.random() - 0.5) * 0.008,
            MIN_GDP_GROWTH, MAX_GDP_GROWTH
        )
        unemployment = clamp(
            indicators.unemployment_rate + (rng.random() - 0.5) * 0.006,
            MIN_UNEMPLOYMENT_RATE, MAX_UNEMPLOYMENT_RATE
        )

        return MarketEvent(
            title=ECONOMIC_REPORT_TEMPLATE.format(
                inflation=f"{inflation * 100:.2f}",
                gdp=f"{gdp * 100:.2f}",
                unemployment=f"{unemployment * 100:.2f}"
            ),
            scope=EventScope.GLOBAL,
            new_inflation_rate=inflation,
            new_gdp_growth=gdp,
            new_unemployment_rate=unemployment
        )

    def _earnings_report(self, context: SimulationContext) -> Optional[MarketEvent]:
        rng = context.rng
        instruments = context.market.instruments
        if not instruments:
            return None

        instrument = instruments[int(rng.integers(len(instruments)))]
        expected = instrument.financials.earnings_per_share
        surprise = rng.random() * 0.30 - 0.15
        reported = expected * (1 + surprise)

        if surprise > 0.07:
            title = f"{instrument.symbol} earnings surprise! EPS {reported:.2f} (expected {expected:.2f})"
        elif surprise < -0.07:
            title = f"{instrument.symbol} earnings shock. EPS {reported:.2f} (expected {expected:.2f})"
        else:
            title = f"{instrument.symbol} quarterly results. EPS {reported:.2f} (in line)"

        eps_factor = max(0.1, reported / expected) if expected != 0 else 1.0

        return MarketEvent(
            title=title,
            scope=EventScope.SYMBOL,
            symbol=instrument.symbol,
            impact=1 + surprise * 0.6,
            eps_factor=eps_factor,
            revenue_factor=max(0.1, 1 + surprise * 0.8)
        )

    def _general_event(self, context: SimulationContext) -> MarketEvent:
        rng = context.rng
        symbols = context.market.symbols
        sub_draw = rng.random()

        if sub_draw < 0.2:
            template = FINANCIAL_EVENT_TEMPLATES[int(rng.integers(len(FINANCIAL_EVENT_TEMPLATES)))]
            symbol = symbols[int(rng.integers(len(symbols)))]
            return MarketEvent(
                title=template.title.format(symbol=symbol),
                scope=EventScope.SYMBOL,
                symbol=symbol,
                impact=template.impact,
                eps_factor=template.eps_factor,
                revenue_factor=template.revenue_factor
            )

        if sub_draw < 0.5:
            sectors: List[Sector] = list(Sector)
            sector = sectors[int(rng.integers(len(sectors)))]
            template = SECTOR_EVENT_TEMPLATES[int(rng.integers(len(SECTOR_EVENT_TEMPLATES)))]
            return MarketEvent(
                title=template.title.format(sector=SECTOR_NAMES[sector]),
                scope=EventScope.SECTOR,
                sector=sector,
                impact=template.draw_impact(rng)
            )

        template = STOCK_EVENT_TEMPLATES[int(rng.integers(len(STOCK_EVENT_TEMPLATES)))]
        symbol = symbols[int(rng.integers(len(symbols)))]
        competitor = symbol
        if '{competitor}' in template.title and len(symbols) > 1:
            competitors = [s for s in symbols if s != symbol]
            competitor = competitors[int(rng.integers(len(competitors)))]

        return MarketEvent(
            title=template.title.format(symbol=symbol, competitor=competitor),
            scope=EventScope.SYMBOL,
            symbol=symbol,
            impact=template.draw_impact(rng)
        )
