import numpy as np
import pytest

from stonksim.core.context import SimulationContext, apply_event_to_indicators
from stonksim.core.events import (
    EventGenerator, ImpactTemplate, STOCK_EVENT_TEMPLATES, SECTOR_EVENT_TEMPLATES
)
from stonksim.core.market import initial_indicators
from stonksim.core.types import EventScope, MarketEvent


@pytest.fixture
def context():
    return SimulationContext.create(np.random.default_rng(3))


class TestBands:
    def test_no_band_no_event(self, context):
        generator = EventGenerator(0.0, 0.0, 0.0, 0.0)
        for _ in range(50):
            assert generator.check(context) is None
        assert context.pending_event is None
        assert generator.events_generated == 0

    def test_rate_change_moves_one_step(self, context):
        generator = EventGenerator(1.0, 1.0, 1.0, 1.0)
        event = generator.check(context)

        assert event.scope == EventScope.GLOBAL
        assert event.new_rate in (pytest.approx(0.0275), pytest.approx(0.0225))
        assert 'bp' in event.title

    def test_economic_report(self, context):
        event = EventGenerator(0.0, 1.0, 1.0, 1.0).check(context)
        assert event.title.startswith('Economic report')
        assert event.new_rate is None
        assert event.new_inflation_rate is not None
        assert event.new_gdp_growth is not None
        assert event.new_unemployment_rate is not None

    def test_earnings_report(self, context):
        event = EventGenerator(0.0, 0.0, 1.0, 1.0).check(context)
        assert event.scope == EventScope.SYMBOL
        assert event.symbol in context.market.symbols
        assert event.eps_factor > 0
        assert 0.91 <= event.impact <= 1.09

    def test_general_event(self, context):
        event = EventGenerator(0.0, 0.0, 0.0, 1.0).check(context)
        assert event.scope in (EventScope.SYMBOL, EventScope.SECTOR)
        assert event.new_rate is None


class TestPendingEvent:
    def test_one_event_at_a_time(self, context):
        generator = EventGenerator(1.0, 1.0, 1.0, 1.0)
        first = generator.check(context)
        assert generator.check(context) is None
        assert context.pending_event is first
        assert generator.events_generated == 1

    def test_consume_applies_and_clears(self, context):
        generator = EventGenerator(1.0, 1.0, 1.0, 1.0)
        event = generator.check(context)

        assert context.consume_pending_event() is event
        assert context.indicators.interest_rate == pytest.approx(event.new_rate)
        assert context.pending_event is None
        assert context.consume_pending_event() is None

    def test_propose_refuses_when_pending(self, context):
        assert context.propose_event(MarketEvent(title='a', scope=EventScope.GLOBAL))
        assert not context.propose_event(MarketEvent(title='b', scope=EventScope.GLOBAL))
        assert context.pending_event.title == 'a'


class TestIndicators:
    def test_overrides_are_clamped(self):
        event = MarketEvent(
            title='shock', scope=EventScope.GLOBAL,
            new_rate=0.5, new_inflation_rate=-1.0,
            new_gdp_growth=0.9, new_unemployment_rate=0.0
        )
        indicators = apply_event_to_indicators(initial_indicators(), event)
        assert indicators.interest_rate == 0.08
        assert indicators.inflation_rate == 0.005
        assert indicators.gdp_growth == 0.05
        assert indicators.unemployment_rate == 0.02

    def test_event_without_overrides_is_identity(self):
        indicators = initial_indicators()
        event = MarketEvent(title='noop', scope=EventScope.GLOBAL)
        assert apply_event_to_indicators(indicators, event) is indicators


class TestTemplates:
    @pytest.mark.parametrize('template', STOCK_EVENT_TEMPLATES + SECTOR_EVENT_TEMPLATES)
    def test_impact_within_spread(self, template):
        rng = np.random.default_rng(11)
        low, high = sorted((template.base, template.base + template.spread))
        for _ in range(20):
            assert low <= template.draw_impact(rng) <= high

    def test_fixed_impact(self):
        assert ImpactTemplate('flat', 1.0).draw_impact(np.random.default_rng(0)) == 1.0
