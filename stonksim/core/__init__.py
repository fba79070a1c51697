"""
Core simulation components.
"""

from .types import (
    Instrument, Financials, StockParameters, MacroIndicators, MarketEvent,
    Bond, PortfolioItem, PortfolioBond, ConditionalOrder, OrderAction, OrderStatus,
    Event, PriceTickEvent, EventCheckEvent, DividendEvent, SnapshotEvent
)
from .market import MarketState
from .context import SimulationContext
from .events import EventGenerator
from .ledger import PortfolioLedger
from .orders import ConditionalOrderBook
from .bonds import BondMaturityResolver
from .time_engine import AsyncTimeEngine

__all__ = [
    "Instrument",
    "Financials",
    "StockParameters",
    "MacroIndicators",
    "MarketEvent",
    "Bond",
    "PortfolioItem",
    "PortfolioBond",
    "ConditionalOrder",
    "OrderAction",
    "OrderStatus",
    "Event",
    "PriceTickEvent",
    "EventCheckEvent",
    "DividendEvent",
    "SnapshotEvent",
    "MarketState",
    "SimulationContext",
    "EventGenerator",
    "PortfolioLedger",
    "ConditionalOrderBook",
    "BondMaturityResolver",
    "AsyncTimeEngine"
]
