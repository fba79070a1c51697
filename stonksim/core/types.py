"""
Domain models for the trading terminal simulation.
Market-facing models are immutable; updates build new instances.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict
from decimal import Decimal

# ============================================================================
# ENUMS
# ============================================================================

class Sector(Enum):
    TECH = "TECH"
    HARDWARE = "HARDWARE"
    SOFTWARE = "SOFTWARE"
    SECURITY = "SECURITY"
    INFRA = "INFRA"
    AI = "AI"
    BIO = "BIO"

class Strategy(Enum):
    MOMENTUM = "MOMENTUM"
    VALUE = "VALUE"
    CONTRARIAN = "CONTRARIAN"

class TradeSide(Enum):
    BUY = "BUY"
    SELL = "SELL"

class OrderAction(Enum):
    BUY_LONG = "BUY_LONG"
    SELL_LONG = "SELL_LONG"
    SELL_SHORT = "SELL_SHORT"
    BUY_COVER = "BUY_COVER"

class OrderStatus(Enum):
    PENDING = "PENDING"
    EXECUTED = "EXECUTED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self is not OrderStatus.PENDING

class EventScope(Enum):
    SYMBOL = "SYMBOL"
    SECTOR = "SECTOR"
    GLOBAL = "GLOBAL"

class LogStatus(Enum):
    NORMAL = "NORMAL"
    WARNING = "WARNING"
    INFO = "INFO"
    TRADE = "TRADE"
    ORDER = "ORDER"
    EVENT = "EVENT"
    AI_TRADE = "AI_TRADE"

# ============================================================================
# MARKET MODELS (Immutable)
# ============================================================================

@dataclass(frozen=True)
class Financials:
    """Fundamentals used for P/E and market cap"""
    revenue: float
    earnings_per_share: float
    total_shares: float

@dataclass(frozen=True)
class Instrument:
    """One tradeable equity at a point in time"""
    symbol: str
    price: float
    previous_price: float
    sector: Sector
    financials: Financials
    volume: int = 0
    change: float = 0.0
    change_percent: float = 0.0
    dividend_per_share: Optional[float] = None

    @property
    def market_cap(self) -> float:
        return self.price * self.financials.total_shares

    @property
    def per(self) -> float:
        """Price/earnings ratio, 0 when earnings are not positive"""
        eps = self.financials.earnings_per_share
        return self.price / eps if eps > 0 else 0.0

@dataclass(frozen=True)
class StockParameters:
    """Annualised drift and volatility, fixed for the session"""
    mu: float
    sigma: float

@dataclass(frozen=True)
class PricePoint:
    """One entry of an instrument's rolling price history"""
    time: int  # simulation seconds
    price: float
    volume: int  # volume traded during the tick

@dataclass(frozen=True)
class MacroIndicators:
    """Economy-wide scalars feeding the drift adjustment"""
    interest_rate: float
    inflation_rate: float
    gdp_growth: float
    unemployment_rate: float

@dataclass(frozen=True)
class MarketEvent:
    """
    A market-moving occurrence waiting for the next price tick.

    `impact` multiplies the price of every instrument in scope. Macro
    overrides (new_*) are applied to the indicators in the same tick.
    """
    title: str
    scope: EventScope
    impact: float = 1.0
    symbol: Optional[str] = None
    sector: Optional[Sector] = None
    eps_factor: Optional[float] = None
    revenue_factor: Optional[float] = None
    new_rate: Optional[float] = None
    new_inflation_rate: Optional[float] = None
    new_gdp_growth: Optional[float] = None
    new_unemployment_rate: Optional[float] = None

    def applies_to(self, instrument: Instrument) -> bool:
        if self.scope == EventScope.GLOBAL:
            return True
        if self.scope == EventScope.SYMBOL:
            return instrument.symbol == self.symbol
        return instrument.sector == self.sector

    @property
    def has_financials_change(self) -> bool:
        return self.eps_factor is not None or self.revenue_factor is not None

# ============================================================================
# LEDGER MODELS
# ============================================================================

@dataclass(frozen=True)
class Bond:
    """Catalog entry for a purchasable bond"""
    id: str
    name: str
    interest_rate: float  # annual coupon
    maturity_seconds: int  # simulation seconds until maturity
    price: Decimal  # par value

@dataclass(frozen=True)
class PortfolioItem:
    """Long and short position in one symbol; the two never net"""
    quantity: int = 0
    average_price: Decimal = Decimal(0)
    short_quantity: int = 0
    average_short_price: Decimal = Decimal(0)

@dataclass(frozen=True)
class PortfolioBond:
    """One bond purchase lot; lots are never merged"""
    instance_id: str
    bond_id: str
    quantity: int
    purchase_price: Decimal
    purchase_time: int  # simulation seconds

@dataclass(frozen=True)
class ConditionalOrder:
    """Trigger-price order awaiting market conditions"""
    id: str
    symbol: str
    action: OrderAction
    quantity: int
    trigger_price: Decimal
    status: OrderStatus = OrderStatus.PENDING
    created_at: int = 0  # simulation seconds

# ============================================================================
# AI TRADER MODELS
# ============================================================================

@dataclass(frozen=True)
class AIHolding:
    quantity: int = 0
    average_price: Decimal = Decimal(0)

@dataclass
class AITrader:
    """Autonomous trader with its own cash and long-only book"""
    id: str
    name: str
    strategy: Strategy
    cash: Decimal
    risk_factor: float  # fraction of cash committed per buy
    portfolio: Dict[str, AIHolding] = field(default_factory=dict)
    cooldown: int = 0  # ticks until the next decision

    def held_symbols(self) -> set:
        return {s for s, h in self.portfolio.items() if h.quantity > 0}

@dataclass(frozen=True)
class AIDecision:
    """Output of a strategy: what to do, not how much"""
    side: TradeSide
    symbol: str

@dataclass(frozen=True)
class AITrade:
    """An executed AI trade, fed back into volume and price impact"""
    trader_id: str
    trader_name: str
    side: TradeSide
    symbol: str
    quantity: int
    price: Decimal

# ============================================================================
# FEED MODELS
# ============================================================================

@dataclass(frozen=True)
class LogMessage:
    time: int  # simulation seconds
    msg: str
    status: LogStatus

@dataclass(frozen=True)
class PortfolioPoint:
    """Player total assets sampled after a price tick"""
    time: int  # simulation seconds
    value: Decimal

# ============================================================================
# ENGINE EVENT MODELS
# ============================================================================

@dataclass(frozen=True)
class Event:
    """Base scheduler event"""
    timestamp: int
    priority: int  # Lower = higher priority

    def __lt__(self, other):
        """For heapq comparison"""
        if self.timestamp != other.timestamp:
            return self.timestamp < other.timestamp
        return self.priority < other.priority

@dataclass(frozen=True)
class PriceTickEvent(Event):
    """Price update, AI decisions, order triggers and bond maturities"""
    pass

@dataclass(frozen=True)
class EventCheckEvent(Event):
    """Chance to generate a new pending market event"""
    pass

@dataclass(frozen=True)
class DividendEvent(Event):
    """Quarterly dividend payout"""
    pass

@dataclass(frozen=True)
class SnapshotEvent(Event):
    """Periodic session save"""
    pass
