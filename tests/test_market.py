import math
from decimal import Decimal

import pytest

from stonksim.core.constants import PRICE_FLOOR, STOCK_SYMBOLS
from stonksim.core.market import MarketState, adjusted_drift, gbm_step, initial_indicators
from stonksim.core.types import (
    AITrade, EventScope, MarketEvent, Sector, StockParameters, TradeSide
)


def zero_shocks(market):
    return {s: 0.0 for s in market.symbols}


class TestGeneration:
    def test_generates_every_symbol(self, rng):
        market = MarketState.generate(rng)
        assert market.symbols == STOCK_SYMBOLS

    def test_generated_fundamentals_in_range(self, rng):
        market = MarketState.generate(rng)
        for instrument in market.instruments:
            eps = instrument.financials.earnings_per_share
            assert 1 <= eps < 9
            assert 100e6 <= instrument.financials.total_shares < 600e6
            assert 15 <= instrument.per < 30
            assert instrument.price == instrument.previous_price

    def test_missing_parameters_rejected(self, make_instrument):
        with pytest.raises(ValueError):
            MarketState([make_instrument('MEGA')], {})


class TestDerivedFields:
    def test_per_is_zero_without_earnings(self, make_instrument):
        assert make_instrument(eps=0.0).per == 0.0
        assert make_instrument(eps=-1.0).per == 0.0

    def test_market_cap(self, make_instrument):
        assert make_instrument(price=10.0).market_cap == pytest.approx(1e9)


class TestPriceStep:
    def test_gbm_with_no_drift_or_noise_is_flat(self):
        assert gbm_step(100.0, 0.0, 0.0, 0.0) == 100.0

    def test_gbm_step_formula(self):
        dt = 1 / 252
        expected = 50.0 * math.exp((0.1 - 0.2 ** 2 / 2) * dt + 0.2 * math.sqrt(dt) * 1.5)
        assert gbm_step(50.0, 0.1, 0.2, 1.5) == pytest.approx(expected)

    def test_drift_at_baseline_only_adds_per_pull(self, make_instrument):
        # P/E 20 against a market average of 25
        instrument = make_instrument(price=100.0, eps=5.0)
        mu = adjusted_drift(instrument, StockParameters(mu=0.05, sigma=0.2), initial_indicators())
        assert mu == pytest.approx(0.05 + 5 * 0.001)

    def test_price_is_floored(self, rng, make_market):
        market = make_market({'MEGA': 100.0})
        crash = MarketEvent(title='crash', scope=EventScope.GLOBAL, impact=0.0)
        market.advance(zero_shocks(market), initial_indicators(), rng, time=2, event=crash)
        assert market.get('MEGA').price == PRICE_FLOOR

    def test_previous_price_rolls_each_tick(self, rng, make_market):
        market = make_market({'MEGA': 100.0})
        event = MarketEvent(title='up', scope=EventScope.GLOBAL, impact=1.1)
        market.advance(zero_shocks(market), initial_indicators(), rng, time=2, event=event)
        first = market.get('MEGA')
        market.advance(zero_shocks(market), initial_indicators(), rng, time=4)
        second = market.get('MEGA')

        assert first.previous_price == 100.0
        assert second.previous_price == first.price
        assert second.change == pytest.approx(second.price - first.price)
        assert second.change_percent == pytest.approx((second.price - first.price) / first.price * 100)

    def test_history_keeps_most_recent_points(self, rng, make_market):
        market = make_market({'MEGA': 100.0}, history_length=5)
        for t in range(1, 9):
            market.advance(zero_shocks(market), initial_indicators(), rng, time=t * 2)
        history = market.get_history('MEGA')
        assert len(history) == 5
        assert [p.time for p in history] == [8, 10, 12, 14, 16]


class TestEventImpact:
    def test_symbol_event_only_moves_target(self, rng, make_market):
        market = make_market({'MEGA': 100.0, 'BYTE': 100.0})
        event = MarketEvent(title='boom', scope=EventScope.SYMBOL, symbol='MEGA', impact=2.0)
        market.advance(zero_shocks(market), initial_indicators(), rng, time=2, event=event)
        assert market.get('MEGA').price / market.get('BYTE').price == pytest.approx(2.0)

    def test_sector_event_matches_sector(self, make_instrument):
        event = MarketEvent(title='chips', scope=EventScope.SECTOR, sector=Sector.HARDWARE)
        assert event.applies_to(make_instrument(sector=Sector.HARDWARE))
        assert not event.applies_to(make_instrument(sector=Sector.TECH))

    def test_financial_factors_applied(self, rng, make_market):
        market = make_market({'MEGA': 100.0})
        event = MarketEvent(
            title='margins', scope=EventScope.SYMBOL, symbol='MEGA',
            eps_factor=1.5, revenue_factor=0.5
        )
        market.advance(zero_shocks(market), initial_indicators(), rng, time=2, event=event)
        financials = market.get('MEGA').financials
        assert financials.earnings_per_share == pytest.approx(7.5)
        assert financials.revenue == pytest.approx(0.5e9)


class TestAITradeImpact:
    def test_ai_trades_add_volume_and_nudge_price(self, rng, make_market):
        market = make_market({'MEGA': 100.0, 'BYTE': 100.0})
        trade = AITrade(
            trader_id='ai-1', trader_name='WOLF-1', side=TradeSide.BUY,
            symbol='MEGA', quantity=50_000, price=Decimal('100')
        )
        market.advance(zero_shocks(market), initial_indicators(), rng, time=2, ai_trades=[trade])

        assert market.get('MEGA').price / market.get('BYTE').price == pytest.approx(1.0002)
        assert market.get_history('MEGA')[-1].volume >= 50_000
        assert market.get_history('BYTE')[-1].volume < 10_000

    def test_sell_trade_nudges_down(self, rng, make_market):
        market = make_market({'MEGA': 100.0, 'BYTE': 100.0})
        trade = AITrade(
            trader_id='ai-3', trader_name='BEAR-3', side=TradeSide.SELL,
            symbol='MEGA', quantity=10, price=Decimal('100')
        )
        market.advance(zero_shocks(market), initial_indicators(), rng, time=2, ai_trades=[trade])
        assert market.get('MEGA').price / market.get('BYTE').price == pytest.approx(0.9998)
