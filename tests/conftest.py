"""
Pytest configuration and shared fixtures for stonksim tests.
"""

import sys
from decimal import Decimal
from pathlib import Path

import pytest
import numpy as np

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from stonksim.config import SessionConfig
from stonksim.core.types import (
    AITrader, Financials, Instrument, Sector, StockParameters, Strategy
)
from stonksim.core.ledger import PortfolioLedger
from stonksim.core.market import MarketState
from stonksim.session import TradingSession
from stonksim.storage import SessionStore


@pytest.fixture
def rng():
    """Seeded generator so every test run draws the same numbers."""
    return np.random.default_rng(42)


@pytest.fixture
def make_instrument():
    """Factory for instruments with controllable price, change and P/E."""
    def _make(symbol='MEGA', price=100.0, change_percent=0.0, eps=5.0,
              sector=Sector.TECH, dividend_per_share=None):
        return Instrument(
            symbol=symbol,
            price=price,
            previous_price=price,
            sector=sector,
            financials=Financials(revenue=1e9, earnings_per_share=eps, total_shares=1e8),
            change_percent=change_percent,
            dividend_per_share=dividend_per_share
        )
    return _make


@pytest.fixture
def make_market(make_instrument):
    """Factory for a market with zero drift/volatility at the given prices."""
    def _make(prices, history_length=100):
        instruments = [make_instrument(symbol=s, price=p) for s, p in prices.items()]
        parameters = {s: StockParameters(mu=0.0, sigma=0.0) for s in prices}
        return MarketState(instruments, parameters, history_length=history_length)
    return _make


@pytest.fixture
def make_trader():
    def _make(strategy=Strategy.MOMENTUM, cash='1000000', risk_factor=0.25, portfolio=None, cooldown=0):
        return AITrader(
            id='ai-test',
            name='TEST-1',
            strategy=strategy,
            cash=Decimal(cash),
            risk_factor=risk_factor,
            portfolio=portfolio or {},
            cooldown=cooldown
        )
    return _make


@pytest.fixture
def ledger():
    return PortfolioLedger(cash=Decimal('100000'))


@pytest.fixture
def store(tmp_path):
    return SessionStore(tmp_path / 'session.json')


@pytest.fixture
def session():
    """Headless session: unthrottled clock, no snapshot file."""
    return TradingSession(SessionConfig(speed_multiplier=0.0, snapshot_path=None, seed=7))
