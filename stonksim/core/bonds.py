"""
Bond catalog lookups, rate-sensitive pricing and maturity redemption.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
import logging

from .types import Bond, PortfolioBond
from .ledger import PortfolioLedger, to_decimal
from .constants import (
    AVAILABLE_BONDS, BOND_PRICE_SENSITIVITY, MIN_BOND_PRICE, SECONDS_PER_BOND_YEAR
)

logger = logging.getLogger(__name__)

BOND_CATALOG: Dict[str, Bond] = {b.id: b for b in AVAILABLE_BONDS}


def find_bond(bond_id: str, catalog: Dict[str, Bond] = BOND_CATALOG) -> Optional[Bond]:
    return catalog.get(bond_id)


def bond_price(bond: Bond, interest_rate: float) -> Decimal:
    """Par repriced by the spread between coupon and the current rate"""
    rate_delta = to_decimal(bond.interest_rate) - to_decimal(interest_rate)
    price = bond.price * (1 + rate_delta * BOND_PRICE_SENSITIVITY)
    return max(price, MIN_BOND_PRICE)


def current_bond_prices(interest_rate: float, bonds: Iterable[Bond] = AVAILABLE_BONDS) -> Dict[str, Decimal]:
    return {bond.id: bond_price(bond, interest_rate) for bond in bonds}


def maturity_payout(lot: PortfolioBond, bond: Bond) -> Decimal:
    """
    Principal plus coupon interest.

    Game time compresses one coupon "year" into 60 simulated seconds.
    """
    principal = lot.quantity * lot.purchase_price
    years = Decimal(bond.maturity_seconds) / SECONDS_PER_BOND_YEAR
    return principal + principal * to_decimal(bond.interest_rate) * years


@dataclass(frozen=True)
class Redemption:
    lot: PortfolioBond
    bond: Bond
    payout: Decimal


class BondMaturityResolver:
    """Finds matured lots and redeems them through the ledger in one call"""

    def __init__(self, catalog: Dict[str, Bond] = BOND_CATALOG):
        self.catalog = catalog
        self.total_redeemed = Decimal(0)

    def matured(self, lots: Iterable[PortfolioBond], now: int) -> List[Redemption]:
        redemptions = []
        for lot in lots:
            bond = self.catalog.get(lot.bond_id)
            if bond is None:
                continue
            if now >= lot.purchase_time + bond.maturity_seconds:
                redemptions.append(Redemption(lot=lot, bond=bond, payout=maturity_payout(lot, bond)))
        return redemptions

    def resolve(self, ledger: PortfolioLedger, now: int) -> List[Redemption]:
        redemptions = self.matured(ledger.bonds, now)
        if not redemptions:
            return []

        total = sum((r.payout for r in redemptions), Decimal(0))
        ledger.redeem_matured_bonds([r.lot.instance_id for r in redemptions], total)
        self.total_redeemed += total

        logger.info(f"Redeemed {len(redemptions)} bond lots for {total:.2f}")
        return redemptions
