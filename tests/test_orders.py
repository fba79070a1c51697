from decimal import Decimal

import pytest

from stonksim.core.ledger import PortfolioLedger
from stonksim.core.orders import (
    ACTION_LABELS, FAILURE_REASONS, LEDGER_OPERATIONS, TRIGGERS_ON_DIP,
    ConditionalOrderBook, execute_action, is_triggered
)
from stonksim.core.types import OrderAction, OrderStatus


class TestTriggerDirection:
    @pytest.mark.parametrize("action", [OrderAction.BUY_LONG, OrderAction.BUY_COVER])
    def test_buy_side_triggers_on_dip(self, action):
        assert is_triggered(action, 100, 100)
        assert is_triggered(action, 99.5, 100)
        assert not is_triggered(action, 100.5, 100)

    @pytest.mark.parametrize("action", [OrderAction.SELL_LONG, OrderAction.SELL_SHORT])
    def test_sell_side_triggers_on_rise(self, action):
        assert is_triggered(action, 100, 100)
        assert is_triggered(action, 100.5, 100)
        assert not is_triggered(action, 99.5, 100)

    def test_every_action_is_handled(self):
        for table in (TRIGGERS_ON_DIP, LEDGER_OPERATIONS, FAILURE_REASONS, ACTION_LABELS):
            assert set(table) == set(OrderAction)

    def test_unhandled_action_raises(self, ledger):
        with pytest.raises(ValueError):
            is_triggered('HOLD', 100, 100)
        with pytest.raises(ValueError):
            execute_action(ledger, 'HOLD', 'MEGA', 1, 100)


class TestOrderBook:
    def test_add_order_rejects_bad_input(self):
        book = ConditionalOrderBook()
        assert book.add_order('MEGA', OrderAction.BUY_LONG, 0, 100) is None
        assert book.add_order('MEGA', OrderAction.BUY_LONG, 5, 0) is None
        assert book.orders == []

    def test_buy_long_fires_once_when_price_dips(self, make_market, ledger):
        book = ConditionalOrderBook()
        order = book.add_order('MEGA', OrderAction.BUY_LONG, 10, 100, created_at=0)

        assert book.evaluate(make_market({'MEGA': 105.0}), ledger) == []
        assert book.get(order.id).status == OrderStatus.PENDING

        fills = book.evaluate(make_market({'MEGA': 99.0}), ledger)
        assert len(fills) == 1
        assert fills[0].success
        assert book.get(order.id).status == OrderStatus.EXECUTED
        assert ledger.position('MEGA').quantity == 10

        # Never re-evaluated
        assert book.evaluate(make_market({'MEGA': 50.0}), ledger) == []
        assert ledger.position('MEGA').quantity == 10

    def test_fills_at_market_price_not_trigger(self, make_market, ledger):
        book = ConditionalOrderBook()
        book.add_order('MEGA', OrderAction.BUY_LONG, 10, 100)
        book.evaluate(make_market({'MEGA': 90.0}), ledger)
        assert ledger.position('MEGA').average_price == Decimal('90.0')
        assert ledger.cash == Decimal('99100')

    def test_rejected_fill_is_terminal(self, make_market):
        ledger = PortfolioLedger(cash=Decimal('0'))
        book = ConditionalOrderBook()
        order = book.add_order('MEGA', OrderAction.BUY_LONG, 10, 100)

        fills = book.evaluate(make_market({'MEGA': 95.0}), ledger)
        assert not fills[0].success
        assert fills[0].reason == 'insufficient cash'
        assert book.get(order.id).status == OrderStatus.FAILED

        ledger.add_cash(Decimal('10000'))
        assert book.evaluate(make_market({'MEGA': 95.0}), ledger) == []
        assert book.get(order.id).status == OrderStatus.FAILED
        assert ledger.position('MEGA').quantity == 0

    def test_sell_long_fires_on_rise(self, make_market, ledger):
        ledger.buy_stock('MEGA', 10, Decimal('100'))
        book = ConditionalOrderBook()
        order = book.add_order('MEGA', OrderAction.SELL_LONG, 10, 120)

        assert book.evaluate(make_market({'MEGA': 119.0}), ledger) == []
        book.evaluate(make_market({'MEGA': 125.0}), ledger)
        assert book.get(order.id).status == OrderStatus.EXECUTED
        assert ledger.position('MEGA').quantity == 0

    def test_short_then_cover(self, make_market, ledger):
        book = ConditionalOrderBook()
        short = book.add_order('BYTE', OrderAction.SELL_SHORT, 5, 80)
        cover = book.add_order('BYTE', OrderAction.BUY_COVER, 5, 60)

        book.evaluate(make_market({'BYTE': 85.0}), ledger)
        assert book.get(short.id).status == OrderStatus.EXECUTED
        assert book.get(cover.id).status == OrderStatus.PENDING
        assert ledger.position('BYTE').short_quantity == 5

        book.evaluate(make_market({'BYTE': 55.0}), ledger)
        assert book.get(cover.id).status == OrderStatus.EXECUTED
        assert ledger.position('BYTE').short_quantity == 0
        assert ledger.cash == Decimal('100000') + Decimal('425') - Decimal('275')

    def test_unknown_symbol_stays_pending(self, make_market, ledger):
        book = ConditionalOrderBook()
        order = book.add_order('GONE', OrderAction.BUY_LONG, 1, 1_000_000)
        assert book.evaluate(make_market({'MEGA': 1.0}), ledger) == []
        assert book.get(order.id).status == OrderStatus.PENDING


class TestCancellation:
    def test_cancel_pending(self):
        book = ConditionalOrderBook()
        order = book.add_order('MEGA', OrderAction.BUY_LONG, 1, 100)
        assert book.cancel_order(order.id)
        assert book.get(order.id).status == OrderStatus.CANCELLED
        assert book.pending() == []

    def test_cancel_is_noop_on_terminal_or_unknown(self, make_market, ledger):
        book = ConditionalOrderBook()
        order = book.add_order('MEGA', OrderAction.BUY_LONG, 1, 100)
        book.evaluate(make_market({'MEGA': 50.0}), ledger)

        assert not book.cancel_order(order.id)
        assert book.get(order.id).status == OrderStatus.EXECUTED
        assert not book.cancel_order('ord-missing')

    def test_prune_drops_terminal_orders(self):
        book = ConditionalOrderBook()
        kept = book.add_order('MEGA', OrderAction.BUY_LONG, 1, 100)
        dropped = book.add_order('MEGA', OrderAction.BUY_LONG, 1, 100)
        book.cancel_order(dropped.id)

        assert book.prune() == 1
        assert [o.id for o in book.orders] == [kept.id]
