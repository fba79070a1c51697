"""
Portfolio ledger for the player: cash, long/short equity positions and
bond lots.

Every operation validates first and only then mutates, returning True on
success and False on a business rejection. Positions and lots are
immutable values; each mutation replaces them whole, so a reader between
calls never sees a partial update.
"""
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple, Union
import logging
import uuid

from .types import PortfolioItem, PortfolioBond
from .constants import STOCK_SYMBOLS

logger = logging.getLogger(__name__)

Number = Union[Decimal, int, float, str]

INITIAL_CASH = Decimal('100000')


def to_decimal(value: Number) -> Decimal:
    """Exact Decimal for ints/strings, shortest repr for floats"""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class LedgerSnapshot:
    """Consistent read-only view of the ledger"""
    cash: Decimal
    portfolio: Dict[str, PortfolioItem]
    bonds: Tuple[PortfolioBond, ...]


class PortfolioLedger:
    """
    Single source of truth for player assets.

    Features:
    - Long positions with weighted-average cost
    - Short positions credited immediately, covered with cash
    - Bond lots consumed oldest-first on sale
    - Redemption and cash credits for dividends and maturities
    """

    def __init__(
        self,
        cash: Number = INITIAL_CASH,
        portfolio: Optional[Dict[str, PortfolioItem]] = None,
        bonds: Optional[Iterable[PortfolioBond]] = None,
        symbols: Iterable[str] = STOCK_SYMBOLS
    ):
        self._cash = to_decimal(cash)
        self._portfolio: Dict[str, PortfolioItem] = {s: PortfolioItem() for s in symbols}
        if portfolio:
            self._portfolio.update(portfolio)
        self._bonds: Tuple[PortfolioBond, ...] = tuple(bonds or ())

    # ========================================================================
    # READ ACCESS
    # ========================================================================

    @property
    def cash(self) -> Decimal:
        return self._cash

    @property
    def portfolio(self) -> Dict[str, PortfolioItem]:
        return dict(self._portfolio)

    @property
    def bonds(self) -> Tuple[PortfolioBond, ...]:
        return self._bonds

    def position(self, symbol: str) -> PortfolioItem:
        return self._portfolio.get(symbol, PortfolioItem())

    def bond_quantity(self, bond_id: str) -> int:
        return sum(b.quantity for b in self._bonds if b.bond_id == bond_id)

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(cash=self._cash, portfolio=dict(self._portfolio), bonds=self._bonds)

    # ========================================================================
    # EQUITIES
    # ========================================================================

    def buy_stock(self, symbol: str, quantity: int, price: Number) -> bool:
        price = to_decimal(price)
        cost = quantity * price
        if quantity <= 0 or self._cash < cost:
            logger.debug(f"Buy rejected: {symbol} {quantity} @ {price} (cash {self._cash})")
            return False

        existing = self.position(symbol)
        new_quantity = existing.quantity + quantity
        new_average = (existing.average_price * existing.quantity + price * quantity) / new_quantity

        self._cash -= cost
        self._portfolio[symbol] = replace(existing, quantity=new_quantity, average_price=new_average)
        return True

    def sell_stock(self, symbol: str, quantity: int, price: Number) -> bool:
        price = to_decimal(price)
        existing = self.position(symbol)
        if quantity <= 0 or existing.quantity < quantity:
            logger.debug(f"Sell rejected: {symbol} {quantity} (held {existing.quantity})")
            return False

        new_quantity = existing.quantity - quantity
        new_average = existing.average_price if new_quantity > 0 else Decimal(0)

        self._cash += quantity * price
        self._portfolio[symbol] = replace(existing, quantity=new_quantity, average_price=new_average)
        return True

    def short_stock(self, symbol: str, quantity: int, price: Number) -> bool:
        """Short sale; proceeds are credited with no collateral check"""
        price = to_decimal(price)
        if quantity <= 0:
            logger.debug(f"Short rejected: {symbol} {quantity}")
            return False

        existing = self.position(symbol)
        new_short = existing.short_quantity + quantity
        new_average = (
            existing.average_short_price * existing.short_quantity + price * quantity
        ) / new_short

        self._cash += quantity * price
        self._portfolio[symbol] = replace(
            existing, short_quantity=new_short, average_short_price=new_average
        )
        return True

    def cover_stock(self, symbol: str, quantity: int, price: Number) -> bool:
        price = to_decimal(price)
        cost = quantity * price
        existing = self.position(symbol)
        if quantity <= 0 or self._cash < cost or existing.short_quantity < quantity:
            logger.debug(
                f"Cover rejected: {symbol} {quantity} @ {price} "
                f"(short {existing.short_quantity}, cash {self._cash})"
            )
            return False

        new_short = existing.short_quantity - quantity
        new_average = existing.average_short_price if new_short > 0 else Decimal(0)

        self._cash -= cost
        self._portfolio[symbol] = replace(
            existing, short_quantity=new_short, average_short_price=new_average
        )
        return True

    # ========================================================================
    # BONDS
    # ========================================================================

    def buy_bond(self, bond_id: str, quantity: int, price: Number, purchase_time: int) -> bool:
        price = to_decimal(price)
        cost = quantity * price
        if quantity <= 0 or self._cash < cost:
            logger.debug(f"Bond buy rejected: {bond_id} {quantity} @ {price}")
            return False

        lot = PortfolioBond(
            instance_id=f"bond-{uuid.uuid4().hex[:12]}",
            bond_id=bond_id,
            quantity=quantity,
            purchase_price=price,
            purchase_time=purchase_time
        )
        self._cash -= cost
        self._bonds = self._bonds + (lot,)
        return True

    def sell_bond(self, bond_id: str, quantity: int, price: Number) -> bool:
        """
        Sell `quantity` units of a bond, oldest lots first.

        Proceeds are quantity x price regardless of the lots' purchase price.
        """
        price = to_decimal(price)
        if quantity <= 0 or quantity > self.bond_quantity(bond_id):
            logger.debug(f"Bond sell rejected: {bond_id} {quantity} (held {self.bond_quantity(bond_id)})")
            return False

        fifo = sorted(
            (lot for lot in self._bonds if lot.bond_id == bond_id),
            key=lambda lot: lot.purchase_time
        )
        remaining = quantity
        new_quantities: Dict[str, int] = {}
        for lot in fifo:
            if remaining <= 0:
                break
            taken = min(lot.quantity, remaining)
            new_quantities[lot.instance_id] = lot.quantity - taken
            remaining -= taken

        kept: List[PortfolioBond] = []
        for lot in self._bonds:
            if lot.instance_id not in new_quantities:
                kept.append(lot)
            elif new_quantities[lot.instance_id] > 0:
                kept.append(replace(lot, quantity=new_quantities[lot.instance_id]))

        self._cash += quantity * price
        self._bonds = tuple(kept)
        return True

    def redeem_matured_bonds(self, instance_ids: Iterable[str], total_payout: Number) -> None:
        """Remove the given lots and credit the payout computed by the caller"""
        ids = set(instance_ids)
        self._bonds = tuple(lot for lot in self._bonds if lot.instance_id not in ids)
        self.add_cash(total_payout)

    # ========================================================================
    # CASH
    # ========================================================================

    def add_cash(self, amount: Number) -> bool:
        amount = to_decimal(amount)
        if amount <= 0:
            return False
        self._cash += amount
        return True

    # ========================================================================
    # VALUATION
    # ========================================================================

    def total_assets(self, prices: Dict[str, float], bond_prices: Dict[str, Decimal]) -> Decimal:
        """Cash plus longs, minus short liabilities, plus bonds at current prices"""
        total = self._cash
        for symbol, item in self._portfolio.items():
            if symbol not in prices:
                continue
            price = to_decimal(prices[symbol])
            total += price * item.quantity - price * item.short_quantity
        for lot in self._bonds:
            total += lot.quantity * bond_prices.get(lot.bond_id, lot.purchase_price)
        return total
