"""
Simulation context shared by every component of one session.
"""
from dataclasses import dataclass, replace
from typing import Optional
import logging

import numpy as np

from .types import MacroIndicators, MarketEvent
from .market import MarketState, initial_indicators
from .constants import (
    MIN_INTEREST_RATE, MAX_INTEREST_RATE,
    MIN_INFLATION_RATE, MAX_INFLATION_RATE,
    MIN_GDP_GROWTH, MAX_GDP_GROWTH,
    MIN_UNEMPLOYMENT_RATE, MAX_UNEMPLOYMENT_RATE,
)

logger = logging.getLogger(__name__)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def apply_event_to_indicators(indicators: MacroIndicators, event: MarketEvent) -> MacroIndicators:
    """Return indicators with the event's overrides applied, clamped to range"""
    changes = {}
    if event.new_rate is not None:
        changes['interest_rate'] = clamp(event.new_rate, MIN_INTEREST_RATE, MAX_INTEREST_RATE)
    if event.new_inflation_rate is not None:
        changes['inflation_rate'] = clamp(
            event.new_inflation_rate, MIN_INFLATION_RATE, MAX_INFLATION_RATE
        )
    if event.new_gdp_growth is not None:
        changes['gdp_growth'] = clamp(event.new_gdp_growth, MIN_GDP_GROWTH, MAX_GDP_GROWTH)
    if event.new_unemployment_rate is not None:
        changes['unemployment_rate'] = clamp(
            event.new_unemployment_rate, MIN_UNEMPLOYMENT_RATE, MAX_UNEMPLOYMENT_RATE
        )
    return replace(indicators, **changes) if changes else indicators


@dataclass
class SimulationContext:
    """
    Process-wide simulation state, written only by the tick loop.

    At most one pending event exists at a time. It is consumed by the
    next price tick and then cleared.
    """
    market: MarketState
    indicators: MacroIndicators
    rng: np.random.Generator
    pending_event: Optional[MarketEvent] = None
    clock_seconds: int = 0

    @classmethod
    def create(cls, rng: np.random.Generator, history_length: int = 100) -> 'SimulationContext':
        return cls(
            market=MarketState.generate(rng, history_length=history_length),
            indicators=initial_indicators(),
            rng=rng
        )

    def propose_event(self, event: MarketEvent) -> bool:
        """Queue an event unless one is already pending"""
        if self.pending_event is not None:
            return False
        self.pending_event = event
        logger.debug(f"Pending event: {event.title}")
        return True

    def consume_pending_event(self) -> Optional[MarketEvent]:
        """Take the pending event, folding its macro overrides into the indicators"""
        event = self.pending_event
        if event is None:
            return None
        self.indicators = apply_event_to_indicators(self.indicators, event)
        self.pending_event = None
        return event
