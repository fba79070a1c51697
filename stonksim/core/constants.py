"""
Static market configuration: symbols, sectors, bonds, correlations and
macro-economic baselines.
"""
from decimal import Decimal
from typing import Dict, List, Tuple

from .types import Bond, Sector

STOCK_SYMBOLS: List[str] = [
    'MEGA', 'BYTE', 'NANO', 'CYBR', 'FLUX', 'TRON', 'XENO', 'PXL',
    'ATOM', 'HOLV', 'QBIT', 'VRTX', 'CORE', 'GRID', 'DATA', 'AI',
]

SECTOR_NAMES: Dict[Sector, str] = {
    Sector.TECH: 'Technology',
    Sector.HARDWARE: 'Hardware',
    Sector.SOFTWARE: 'Software',
    Sector.SECURITY: 'Security',
    Sector.INFRA: 'Infrastructure',
    Sector.AI: 'Artificial Intelligence',
    Sector.BIO: 'Biotech',
}

STOCK_SECTORS: Dict[str, Sector] = {
    'MEGA': Sector.TECH,
    'BYTE': Sector.TECH,
    'NANO': Sector.HARDWARE,
    'CYBR': Sector.SECURITY,
    'FLUX': Sector.SOFTWARE,
    'TRON': Sector.SOFTWARE,
    'XENO': Sector.BIO,
    'PXL': Sector.HARDWARE,
    'ATOM': Sector.HARDWARE,
    'HOLV': Sector.HARDWARE,
    'QBIT': Sector.TECH,
    'VRTX': Sector.SOFTWARE,
    'CORE': Sector.INFRA,
    'GRID': Sector.INFRA,
    'DATA': Sector.AI,
    'AI': Sector.AI,
}

# Blue chips paying a quarterly dividend per share
DIVIDEND_PAYING_STOCKS: Dict[str, float] = {
    'MEGA': 0.50,
    'CORE': 0.25,
    'GRID': 0.30,
    'DATA': 0.75,
    'AI': 0.40,
    'VRTX': 0.20,
}

AVAILABLE_BONDS: List[Bond] = [
    Bond(
        id='GOV-2Y',
        name='Government Short-Term Bond (2Y)',
        interest_rate=0.03,
        maturity_seconds=120,
        price=Decimal('1000'),
    ),
    Bond(
        id='GOV-10Y',
        name='Government Long-Term Bond (10Y)',
        interest_rate=0.045,
        maturity_seconds=600,
        price=Decimal('1000'),
    ),
    Bond(
        id='MEGA-CORP-5Y',
        name='MegaCorp Corporate Bond (5Y)',
        interest_rate=0.055,
        maturity_seconds=300,
        price=Decimal('1000'),
    ),
    Bond(
        id='CYBR-JUNK-3Y',
        name='Cyber Junk Bond (3Y)',
        interest_rate=0.08,
        maturity_seconds=180,
        price=Decimal('950'),  # sold at a discount
    ),
]

# (symbol_a, symbol_b, rho)
CORRELATIONS: List[Tuple[str, str, float]] = [
    ('MEGA', 'BYTE', -0.65),  # competitors
    ('AI', 'DATA', 0.75),     # ecosystem partners
    ('CORE', 'GRID', 0.6),    # infrastructure partners
    ('NANO', 'PXL', 0.5),     # hardware components
    ('FLUX', 'VRTX', 0.55),   # related software
    ('CYBR', 'TRON', -0.4),   # competitors
]

# ============================================================================
# PRICE PROCESS
# ============================================================================

TRADING_DAYS_PER_YEAR = 252
PRICE_FLOOR = 0.01
HISTORY_LENGTH = 100
MAX_TICK_VOLUME = 10_000
AI_BUY_IMPACT = 1.0002
AI_SELL_IMPACT = 0.9998

MARKET_AVERAGE_PER = 25.0
PER_SENSITIVITY = 0.001

# ============================================================================
# MACRO INDICATORS (baseline, sensitivity, bounds)
# ============================================================================

INITIAL_INTEREST_RATE = 0.025
INTEREST_RATE_SENSITIVITY = 0.5
MIN_INTEREST_RATE = 0.0025
MAX_INTEREST_RATE = 0.08
RATE_STEP = 0.0025  # 25 basis points

INITIAL_INFLATION_RATE = 0.02
INFLATION_SENSITIVITY = 0.4
MIN_INFLATION_RATE = 0.005
MAX_INFLATION_RATE = 0.08

INITIAL_GDP_GROWTH = 0.015
GDP_SENSITIVITY = 0.3
MIN_GDP_GROWTH = -0.02
MAX_GDP_GROWTH = 0.05

INITIAL_UNEMPLOYMENT_RATE = 0.045
UNEMPLOYMENT_SENSITIVITY = 0.2
MIN_UNEMPLOYMENT_RATE = 0.02
MAX_UNEMPLOYMENT_RATE = 0.10

# Bond repricing against the current rate
BOND_PRICE_SENSITIVITY = 10
MIN_BOND_PRICE = Decimal('1.0')
SECONDS_PER_BOND_YEAR = 60
