"""
Session snapshot persistence.

The saved state holds only the financial side of a session: the player's
ledger, pending conditional orders, AI traders and a display flag. Market
state is regenerated on every start.
"""
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional
import logging
import os

from pydantic import BaseModel, Field, ValidationError

from .core.types import (
    AITrader, AIHolding, ConditionalOrder, OrderAction, OrderStatus,
    PortfolioBond, PortfolioItem, Strategy
)

logger = logging.getLogger(__name__)

# ============================================================================
# SCHEMA
# ============================================================================

class PortfolioItemModel(BaseModel):
    quantity: int = Field(default=0, ge=0)
    average_price: Decimal = Field(default=Decimal(0), ge=0)
    short_quantity: int = Field(default=0, ge=0)
    average_short_price: Decimal = Field(default=Decimal(0), ge=0)

class PortfolioBondModel(BaseModel):
    instance_id: str
    bond_id: str
    quantity: int = Field(gt=0)
    purchase_price: Decimal = Field(gt=0)
    purchase_time: int = Field(ge=0)

class ConditionalOrderModel(BaseModel):
    id: str
    symbol: str
    action: OrderAction
    quantity: int = Field(gt=0)
    trigger_price: Decimal = Field(gt=0)
    status: OrderStatus = OrderStatus.PENDING
    created_at: int = Field(default=0, ge=0)

class AIHoldingModel(BaseModel):
    quantity: int = Field(default=0, ge=0)
    average_price: Decimal = Field(default=Decimal(0), ge=0)

class AITraderModel(BaseModel):
    id: str
    name: str
    strategy: Strategy
    cash: Decimal = Field(ge=0)
    portfolio: Dict[str, AIHoldingModel] = Field(default_factory=dict)
    risk_factor: float = Field(gt=0, le=1)
    cooldown: int = Field(default=0, ge=0)

class SavedGameState(BaseModel):
    """Everything needed to resume a session's financial state"""
    cash: Decimal = Field(ge=0)
    portfolio: Dict[str, PortfolioItemModel]
    orders: List[ConditionalOrderModel] = Field(default_factory=list)
    bonds: List[PortfolioBondModel] = Field(default_factory=list)
    ai_traders: Optional[List[AITraderModel]] = None
    is_text_glow_enabled: bool = True
    clock_seconds: int = Field(default=0, ge=0)

    # ========================================================================
    # DOMAIN CONVERSION
    # ========================================================================

    @classmethod
    def from_domain(
        cls,
        cash: Decimal,
        portfolio: Dict[str, PortfolioItem],
        orders: List[ConditionalOrder],
        bonds: List[PortfolioBond],
        ai_traders: List[AITrader],
        is_text_glow_enabled: bool = True,
        clock_seconds: int = 0
    ) -> 'SavedGameState':
        return cls(
            cash=cash,
            portfolio={s: PortfolioItemModel(**vars(item)) for s, item in portfolio.items()},
            orders=[ConditionalOrderModel(**vars(o)) for o in orders],
            bonds=[PortfolioBondModel(**vars(b)) for b in bonds],
            ai_traders=[
                AITraderModel(
                    id=t.id,
                    name=t.name,
                    strategy=t.strategy,
                    cash=t.cash,
                    portfolio={s: AIHoldingModel(**vars(h)) for s, h in t.portfolio.items()},
                    risk_factor=t.risk_factor,
                    cooldown=t.cooldown
                )
                for t in ai_traders
            ],
            is_text_glow_enabled=is_text_glow_enabled,
            clock_seconds=clock_seconds
        )

    def portfolio_items(self) -> Dict[str, PortfolioItem]:
        return {s: PortfolioItem(**item.model_dump()) for s, item in self.portfolio.items()}

    def order_list(self) -> List[ConditionalOrder]:
        return [ConditionalOrder(**o.model_dump()) for o in self.orders]

    def bond_lots(self) -> List[PortfolioBond]:
        return [PortfolioBond(**b.model_dump()) for b in self.bonds]

    def traders(self) -> Optional[List[AITrader]]:
        if self.ai_traders is None:
            return None
        return [
            AITrader(
                id=t.id,
                name=t.name,
                strategy=t.strategy,
                cash=t.cash,
                risk_factor=t.risk_factor,
                portfolio={s: AIHolding(**h.model_dump()) for s, h in t.portfolio.items()},
                cooldown=t.cooldown
            )
            for t in self.ai_traders
        ]

# ============================================================================
# STORE
# ============================================================================

class SessionStore:
    """JSON file holding one SavedGameState"""

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Optional[SavedGameState]:
        """Saved state, or None when missing or unreadable"""
        if not self.path.exists():
            return None
        try:
            return SavedGameState.model_validate_json(self.path.read_bytes())
        except (OSError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable snapshot {self.path}: {e}")
            return None

    def save(self, state: SavedGameState):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        tmp_path.write_text(state.model_dump_json(), encoding='utf-8')
        os.replace(tmp_path, self.path)
        logger.debug(f"Snapshot saved to {self.path}")

    def clear(self):
        try:
            self.path.unlink()
            logger.info(f"Snapshot removed: {self.path}")
        except FileNotFoundError:
            pass
