"""
Conditional (trigger-price) orders.

Buy-side actions fire when the price falls to the trigger, sell-side
actions when it rises to it. A fired order executes at the current
market price and moves to EXECUTED or FAILED. Neither is retried.
"""
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional
import logging
import uuid

from .types import ConditionalOrder, OrderAction, OrderStatus
from .ledger import PortfolioLedger, Number, to_decimal
from .market import MarketState

logger = logging.getLogger(__name__)

# ============================================================================
# ACTION TABLES
# ============================================================================

# True: trigger when price <= trigger_price. False: when price >= trigger_price.
TRIGGERS_ON_DIP: Dict[OrderAction, bool] = {
    OrderAction.BUY_LONG: True,
    OrderAction.BUY_COVER: True,
    OrderAction.SELL_LONG: False,
    OrderAction.SELL_SHORT: False,
}

LEDGER_OPERATIONS: Dict[OrderAction, Callable[[PortfolioLedger, str, int, Decimal], bool]] = {
    OrderAction.BUY_LONG: PortfolioLedger.buy_stock,
    OrderAction.SELL_LONG: PortfolioLedger.sell_stock,
    OrderAction.SELL_SHORT: PortfolioLedger.short_stock,
    OrderAction.BUY_COVER: PortfolioLedger.cover_stock,
}

FAILURE_REASONS: Dict[OrderAction, str] = {
    OrderAction.BUY_LONG: 'insufficient cash',
    OrderAction.SELL_LONG: 'insufficient shares',
    OrderAction.SELL_SHORT: 'short sale rejected',
    OrderAction.BUY_COVER: 'insufficient cash or short position',
}

ACTION_LABELS: Dict[OrderAction, str] = {
    OrderAction.BUY_LONG: 'buy',
    OrderAction.SELL_LONG: 'sell',
    OrderAction.SELL_SHORT: 'short',
    OrderAction.BUY_COVER: 'cover',
}


def _lookup(table: Dict[OrderAction, object], action: OrderAction):
    if action not in table:
        raise ValueError(f"Unhandled order action: {action}")
    return table[action]


def is_triggered(action: OrderAction, price: Number, trigger_price: Number) -> bool:
    price = to_decimal(price)
    trigger_price = to_decimal(trigger_price)
    if _lookup(TRIGGERS_ON_DIP, action):
        return price <= trigger_price
    return price >= trigger_price


def execute_action(
    ledger: PortfolioLedger,
    action: OrderAction,
    symbol: str,
    quantity: int,
    price: Number
) -> bool:
    """Route an action to the matching ledger operation"""
    operation = _lookup(LEDGER_OPERATIONS, action)
    return operation(ledger, symbol, quantity, to_decimal(price))


def failure_reason(action: OrderAction) -> str:
    return _lookup(FAILURE_REASONS, action)


def action_label(action: OrderAction) -> str:
    return _lookup(ACTION_LABELS, action)

# ============================================================================
# ORDER BOOK
# ============================================================================

@dataclass(frozen=True)
class OrderFill:
    """Outcome of one triggered order"""
    order: ConditionalOrder
    price: Decimal
    success: bool
    reason: Optional[str] = None


class ConditionalOrderBook:
    """
    Holds conditional orders and evaluates pending ones each tick.

    Orders are immutable; a status change replaces the stored order.
    """

    def __init__(self, orders: Optional[Iterable[ConditionalOrder]] = None):
        self._orders: Dict[str, ConditionalOrder] = {o.id: o for o in (orders or ())}

    @property
    def orders(self) -> List[ConditionalOrder]:
        return list(self._orders.values())

    def pending(self) -> List[ConditionalOrder]:
        return [o for o in self._orders.values() if o.status == OrderStatus.PENDING]

    def get(self, order_id: str) -> Optional[ConditionalOrder]:
        return self._orders.get(order_id)

    def add_order(
        self,
        symbol: str,
        action: OrderAction,
        quantity: int,
        trigger_price: Number,
        created_at: int = 0
    ) -> Optional[ConditionalOrder]:
        """Create a PENDING order. Returns None for non-positive quantity or trigger."""
        trigger_price = to_decimal(trigger_price)
        _lookup(TRIGGERS_ON_DIP, action)
        if quantity <= 0 or trigger_price <= 0:
            logger.debug(f"Order rejected: {symbol} {action.value} {quantity} @ {trigger_price}")
            return None

        order = ConditionalOrder(
            id=f"ord-{uuid.uuid4().hex[:12]}",
            symbol=symbol,
            action=action,
            quantity=quantity,
            trigger_price=trigger_price,
            created_at=created_at
        )
        self._orders[order.id] = order
        return order

    def cancel_order(self, order_id: str) -> bool:
        """PENDING -> CANCELLED. No-op (False) for unknown or terminal orders."""
        order = self._orders.get(order_id)
        if order is None or order.status != OrderStatus.PENDING:
            return False
        self._orders[order_id] = replace(order, status=OrderStatus.CANCELLED)
        return True

    def evaluate(self, market: MarketState, ledger: PortfolioLedger) -> List[OrderFill]:
        """Fire every pending order whose trigger condition holds at current prices"""
        fills = []
        for order in self.pending():
            instrument = market.get(order.symbol)
            if instrument is None:
                continue

            price = to_decimal(instrument.price)
            if not is_triggered(order.action, price, order.trigger_price):
                continue

            success = execute_action(ledger, order.action, order.symbol, order.quantity, price)
            status = OrderStatus.EXECUTED if success else OrderStatus.FAILED
            updated = replace(order, status=status)
            self._orders[order.id] = updated

            fills.append(OrderFill(
                order=updated,
                price=price,
                success=success,
                reason=None if success else failure_reason(order.action)
            ))
            logger.debug(f"Order {order.id} {status.value} at {price}")
        return fills

    def prune(self) -> int:
        """Drop terminal orders; returns how many were removed"""
        terminal = [oid for oid, o in self._orders.items() if o.status.is_terminal]
        for oid in terminal:
            del self._orders[oid]
        return len(terminal)
