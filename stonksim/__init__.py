"""
Stock/Bond Trading Terminal Simulation

An event-driven market simulation with correlated geometric Brownian
motion prices, macro-economic events, autonomous AI traders and a
player ledger for long, short and bond positions.
"""

__version__ = "1.0.0"

from .core.types import (
    Instrument, MarketEvent, ConditionalOrder, OrderAction, OrderStatus,
    PortfolioItem, PortfolioBond, AITrader, Strategy
)
from .core.time_engine import AsyncTimeEngine
from .core.ledger import PortfolioLedger
from .core.orders import ConditionalOrderBook
from .config import SessionConfig
from .session import TradingSession
from .storage import SessionStore, SavedGameState
from .streaming.websocket import AsyncWebSocketServer

__all__ = [
    "Instrument",
    "MarketEvent",
    "ConditionalOrder",
    "OrderAction",
    "OrderStatus",
    "PortfolioItem",
    "PortfolioBond",
    "AITrader",
    "Strategy",
    "AsyncTimeEngine",
    "PortfolioLedger",
    "ConditionalOrderBook",
    "SessionConfig",
    "TradingSession",
    "SessionStore",
    "SavedGameState",
    "AsyncWebSocketServer"
]
