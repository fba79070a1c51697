"""
Trading session orchestrator.
Pure asyncio, no threads: every phase runs on the time engine's loop.
"""
from collections import deque
from decimal import Decimal
from typing import Deque, Dict, Optional, Set
import logging

import numpy as np

from .config import SessionConfig
from .core.time_engine import AsyncTimeEngine, US_PER_SECOND
from .core.types import (
    OrderAction, LogStatus, MarketEvent, PortfolioPoint, AITrade, TradeSide,
    PriceTickEvent, EventCheckEvent, DividendEvent, SnapshotEvent
)
from .core.constants import CORRELATIONS
from .core.context import SimulationContext
from .core.distributions import CorrelationGraph
from .core.events import EventGenerator
from .core.ledger import PortfolioLedger, to_decimal
from .core.orders import (
    ConditionalOrderBook, OrderFill, execute_action, failure_reason, action_label,
    TRIGGERS_ON_DIP
)
from .core.bonds import BondMaturityResolver, Redemption, find_bond, bond_price, current_bond_prices
from .agents.base import AITraderPool, default_traders
from .streaming.feed import RollingFeed
from .streaming.data_stream import BoundedTickStream
from .storage import SessionStore, SavedGameState

logger = logging.getLogger(__name__)

BOOT_MESSAGES = [
    'System initialization complete',
    '[STONKS-NET] connected',
    'Data stream handshake',
]

# Lower runs first when phases share a timestamp
PRICE_TICK_PRIORITY = 1
EVENT_CHECK_PRIORITY = 2
DIVIDEND_PRIORITY = 3
SNAPSHOT_PRIORITY = 4


class TradingSession:
    """
    One player's trading session.

    Features:
    - Ordered price tick phases (event, shocks, AI, prices, orders, bonds)
    - Independent event check, dividend and snapshot cadences
    - Pause held while any reason (open overlay) is outstanding
    - Manual trades at current market and bond prices
    - Snapshot load on start, periodic save, full reset
    """

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        store: Optional[SessionStore] = None
    ):
        self.config = config or SessionConfig()
        if store is None and self.config.snapshot_path is not None:
            store = SessionStore(self.config.snapshot_path)
        self.store = store

        self.correlations = CorrelationGraph(CORRELATIONS)
        self.tick_stream = BoundedTickStream()
        self._pause_reasons: Set[str] = set()

        saved = self.store.load() if self.store is not None else None
        start_seconds = saved.clock_seconds if saved is not None else 0

        self.time_engine = AsyncTimeEngine(
            start_time_us=start_seconds * US_PER_SECOND,
            speed_multiplier=self.config.speed_multiplier
        )

        self._initialize(saved)
        self._register_handlers()
        self._schedule_initial_events()

        logger.info(
            f"Session initialized ({'restored' if saved is not None else 'fresh'}, "
            f"cash {self.ledger.cash:.2f})"
        )

    def _initialize(self, saved: Optional[SavedGameState]):
        """Build every domain component, seeded from a snapshot when given"""
        rng = np.random.default_rng(self.config.seed)
        self.context = SimulationContext.create(rng, history_length=self.config.price_history_length)
        self.context.clock_seconds = self.time_engine.current_seconds

        if saved is not None:
            self.ledger = PortfolioLedger(
                cash=saved.cash,
                portfolio=saved.portfolio_items(),
                bonds=saved.bond_lots(),
                symbols=self.context.market.symbols
            )
            self.orders = ConditionalOrderBook(saved.order_list())
            traders = saved.traders() or default_traders()
            self.is_text_glow_enabled = saved.is_text_glow_enabled
        else:
            self.ledger = PortfolioLedger(
                cash=self.config.initial_cash,
                symbols=self.context.market.symbols
            )
            self.orders = ConditionalOrderBook()
            traders = default_traders()
            self.is_text_glow_enabled = True

        self.ai_pool = AITraderPool(traders, rng)
        self.event_generator = EventGenerator()
        self.bond_resolver = BondMaturityResolver()

        self.system_log = RollingFeed(self.config.log_length)
        self.news = RollingFeed(self.config.log_length)
        self.portfolio_history: Deque[PortfolioPoint] = deque(
            maxlen=self.config.portfolio_history_length
        )

        for msg in BOOT_MESSAGES:
            self._log(msg, LogStatus.NORMAL)
        if saved is not None:
            self._log('Loaded saved session', LogStatus.INFO)

    # ========================================================================
    # PROPERTIES
    # ========================================================================

    @property
    def now(self) -> int:
        """Simulation clock in seconds"""
        return self.context.clock_seconds

    @property
    def market(self):
        return self.context.market

    @property
    def is_paused(self) -> bool:
        return bool(self._pause_reasons)

    @property
    def bond_prices(self) -> Dict[str, Decimal]:
        return current_bond_prices(self.context.indicators.interest_rate)

    def _log(self, msg: str, status: LogStatus):
        self.system_log.add(self.now, msg, status)

    # ========================================================================
    # EVENT HANDLERS
    # ========================================================================

    def _register_handlers(self):
        """Register all event handlers"""
        self.time_engine.register_handler(PriceTickEvent, self._handle_price_tick)
        self.time_engine.register_handler(EventCheckEvent, self._handle_event_check)
        self.time_engine.register_handler(DividendEvent, self._handle_dividend)
        self.time_engine.register_handler(SnapshotEvent, self._handle_snapshot)

    def _schedule_initial_events(self):
        start = self.time_engine.current_time_us
        config = self.config
        self.time_engine.schedule_event(PriceTickEvent(
            timestamp=start + config.price_tick_seconds * US_PER_SECOND,
            priority=PRICE_TICK_PRIORITY
        ))
        self.time_engine.schedule_event(EventCheckEvent(
            timestamp=start + config.event_check_seconds * US_PER_SECOND,
            priority=EVENT_CHECK_PRIORITY
        ))
        self.time_engine.schedule_event(DividendEvent(
            timestamp=start + config.dividend_seconds * US_PER_SECOND,
            priority=DIVIDEND_PRIORITY
        ))
        self.time_engine.schedule_event(SnapshotEvent(
            timestamp=start + config.snapshot_seconds * US_PER_SECOND,
            priority=SNAPSHOT_PRIORITY
        ))
        logger.info("Scheduled session timers")

    async def _handle_price_tick(self, event: PriceTickEvent):
        self.time_engine.schedule_event(PriceTickEvent(
            timestamp=event.timestamp + self.config.price_tick_seconds * US_PER_SECOND,
            priority=PRICE_TICK_PRIORITY
        ))
        self.run_price_tick(event.timestamp // US_PER_SECOND)

    async def _handle_event_check(self, event: EventCheckEvent):
        self.time_engine.schedule_event(EventCheckEvent(
            timestamp=event.timestamp + self.config.event_check_seconds * US_PER_SECOND,
            priority=EVENT_CHECK_PRIORITY
        ))
        self.run_event_check()

    async def _handle_dividend(self, event: DividendEvent):
        self.time_engine.schedule_event(DividendEvent(
            timestamp=event.timestamp + self.config.dividend_seconds * US_PER_SECOND,
            priority=DIVIDEND_PRIORITY
        ))
        self.run_dividend_payout()

    async def _handle_snapshot(self, event: SnapshotEvent):
        self.time_engine.schedule_event(SnapshotEvent(
            timestamp=event.timestamp + self.config.snapshot_seconds * US_PER_SECOND,
            priority=SNAPSHOT_PRIORITY
        ))
        self.save_snapshot()

    # ========================================================================
    # PHASES
    # ========================================================================

    def run_price_tick(self, now: int) -> Optional[MarketEvent]:
        """
        One price tick, phases in order:
        1. consume the pending event into the indicators
        2. draw correlated shocks
        3. AI decisions against pre-tick prices
        4. price update with event impact and AI volume
        5. conditional orders against post-tick prices
        6. bond maturities against the advanced clock

        Returns the event applied this tick, if any.
        """
        self.context.clock_seconds = now
        context = self.context

        event = context.consume_pending_event()
        if event is not None:
            self.news.add(now, event.title, LogStatus.EVENT)

        shocks = self.correlations.sample(context.rng, context.market.symbols)

        ai_trades = self.ai_pool.step(context.market.instruments)
        for trade in ai_trades:
            self._log_ai_trade(trade)

        context.market.advance(
            shocks,
            context.indicators,
            context.rng,
            now,
            event=event,
            ai_trades=ai_trades
        )

        for fill in self.orders.evaluate(context.market, self.ledger):
            self._log_fill(fill)
        self.orders.prune()

        for redemption in self.bond_resolver.resolve(self.ledger, now):
            self._log_redemption(redemption)

        self.portfolio_history.append(PortfolioPoint(time=now, value=self.total_assets()))
        self.tick_stream.publish_nowait(self.tick_payload())
        return event

    def run_event_check(self) -> Optional[MarketEvent]:
        return self.event_generator.check(self.context)

    def run_dividend_payout(self) -> Decimal:
        """Pay dividends on long positions. Returns the amount credited."""
        total = Decimal(0)
        for instrument in self.context.market.instruments:
            if not instrument.dividend_per_share:
                continue
            position = self.ledger.position(instrument.symbol)
            if position.quantity > 0:
                total += position.quantity * to_decimal(instrument.dividend_per_share)

        if self.ledger.add_cash(total):
            self._log(f"Quarterly dividend paid. Total: ${total:.2f}", LogStatus.INFO)
            logger.info(f"Dividend payout {total:.2f}")
        return total

    def save_snapshot(self) -> bool:
        """Persist financial state. Skipped while paused or without a store."""
        if self.store is None or self.is_paused:
            return False
        self.store.save(self.snapshot_state())
        return True

    def snapshot_state(self) -> SavedGameState:
        return SavedGameState.from_domain(
            cash=self.ledger.cash,
            portfolio=self.ledger.portfolio,
            orders=self.orders.pending(),
            bonds=list(self.ledger.bonds),
            ai_traders=self.ai_pool.traders,
            is_text_glow_enabled=self.is_text_glow_enabled,
            clock_seconds=self.now
        )

    # ========================================================================
    # FEED ENTRIES
    # ========================================================================

    def _log_ai_trade(self, trade: AITrade):
        verb = 'bought' if trade.side == TradeSide.BUY else 'sold'
        self._log(
            f"[AI: {trade.trader_name}] {verb} {trade.quantity} {trade.symbol}",
            LogStatus.AI_TRADE
        )

    def _log_fill(self, fill: OrderFill):
        order = fill.order
        if fill.success:
            self._log(
                f"Order executed: {action_label(order.action)} {order.symbol} "
                f"{order.quantity} shares @ ${fill.price:.2f}",
                LogStatus.TRADE
            )
        else:
            self._log(
                f"Order failed ({fill.reason}): {order.symbol} {order.quantity} shares",
                LogStatus.WARNING
            )

    def _log_redemption(self, redemption: Redemption):
        self._log(
            f"Bond matured: {redemption.bond.name} x{redemption.lot.quantity}. "
            f"Paid ${redemption.payout:.2f}.",
            LogStatus.INFO
        )

    # ========================================================================
    # PAUSE CONTROL
    # ========================================================================

    def pause(self, reason: str = 'user'):
        """Hold the simulation until every reason is released"""
        self._pause_reasons.add(reason)
        self.time_engine.pause()

    def resume(self, reason: str = 'user'):
        self._pause_reasons.discard(reason)
        if not self._pause_reasons:
            self.time_engine.resume()

    def set_speed(self, multiplier: float):
        """Set simulation speed (1.0 = real-time, 0.0 = unlimited)"""
        self.time_engine.set_speed(multiplier)

    # ========================================================================
    # MANUAL TRADING
    # ========================================================================

    def trade(self, action: OrderAction, symbol: str, quantity: int) -> bool:
        """Execute an equity action now at the current market price"""
        instrument = self.context.market.get(symbol)
        if instrument is None:
            self._log(f"Unknown symbol: {symbol}", LogStatus.WARNING)
            return False

        price = to_decimal(instrument.price)
        label = action_label(action)
        if execute_action(self.ledger, action, symbol, quantity, price):
            self._log(f"{label.capitalize()} {symbol} {quantity} shares @ ${price:.2f}", LogStatus.TRADE)
            return True

        self._log(
            f"{label.capitalize()} failed ({failure_reason(action)}): {symbol} {quantity} shares",
            LogStatus.WARNING
        )
        return False

    def buy(self, symbol: str, quantity: int) -> bool:
        return self.trade(OrderAction.BUY_LONG, symbol, quantity)

    def sell(self, symbol: str, quantity: int) -> bool:
        return self.trade(OrderAction.SELL_LONG, symbol, quantity)

    def short(self, symbol: str, quantity: int) -> bool:
        return self.trade(OrderAction.SELL_SHORT, symbol, quantity)

    def cover(self, symbol: str, quantity: int) -> bool:
        return self.trade(OrderAction.BUY_COVER, symbol, quantity)

    def buy_bond(self, bond_id: str, quantity: int) -> bool:
        bond = find_bond(bond_id)
        if bond is None:
            self._log(f"Unknown bond: {bond_id}", LogStatus.WARNING)
            return False

        price = bond_price(bond, self.context.indicators.interest_rate)
        if self.ledger.buy_bond(bond_id, quantity, price, purchase_time=self.now):
            self._log(f"Bought bond {bond.name} x{quantity} @ ${price:.2f}", LogStatus.TRADE)
            return True

        self._log(f"Bond purchase failed (insufficient cash): {bond.name} x{quantity}", LogStatus.WARNING)
        return False

    def sell_bond(self, bond_id: str, quantity: int) -> bool:
        bond = find_bond(bond_id)
        if bond is None:
            self._log(f"Unknown bond: {bond_id}", LogStatus.WARNING)
            return False

        price = bond_price(bond, self.context.indicators.interest_rate)
        if self.ledger.sell_bond(bond_id, quantity, price):
            self._log(f"Sold bond {bond.name} x{quantity} @ ${price:.2f}", LogStatus.TRADE)
            return True

        self._log(f"Bond sale failed (insufficient holdings): {bond.name} x{quantity}", LogStatus.WARNING)
        return False

    # ========================================================================
    # CONDITIONAL ORDERS
    # ========================================================================

    def place_order(self, symbol: str, action: OrderAction, quantity: int, trigger_price) -> Optional[str]:
        """Create a pending conditional order. Returns its id."""
        if self.context.market.get(symbol) is None:
            self._log(f"Unknown symbol: {symbol}", LogStatus.WARNING)
            return None

        order = self.orders.add_order(symbol, action, quantity, trigger_price, created_at=self.now)
        if order is None:
            self._log(f"Order rejected: {symbol} {quantity} shares", LogStatus.WARNING)
            return None

        condition = 'or below' if TRIGGERS_ON_DIP[action] else 'or above'
        self._log(
            f"Conditional {action_label(action)} order: {symbol} {quantity} shares "
            f"@ ${order.trigger_price:.2f} {condition}",
            LogStatus.ORDER
        )
        return order.id

    def cancel_order(self, order_id: str) -> bool:
        order = self.orders.get(order_id)
        if not self.orders.cancel_order(order_id):
            return False
        self._log(f"Order cancelled: {order.symbol} {order.quantity} shares", LogStatus.INFO)
        return True

    # ========================================================================
    # VALUATION & DISPLAY
    # ========================================================================

    def total_assets(self) -> Decimal:
        return self.ledger.total_assets(self.context.market.price_map(), self.bond_prices)

    def toggle_text_glow(self) -> bool:
        """Flip the display preference and save immediately"""
        self.is_text_glow_enabled = not self.is_text_glow_enabled
        if self.store is not None:
            self.store.save(self.snapshot_state())
        return self.is_text_glow_enabled

    def tick_payload(self) -> dict:
        """Compact per-tick message for stream subscribers"""
        return {
            'type': 'tick',
            'time': self.now,
            'prices': {
                i.symbol: {'price': i.price, 'change_percent': i.change_percent}
                for i in self.context.market.instruments
            },
            'interest_rate': self.context.indicators.interest_rate,
            'cash': float(self.ledger.cash),
            'total_assets': float(self.total_assets()),
        }

    def get_state(self) -> dict:
        """Full read-only view of the session"""
        indicators = self.context.indicators
        snapshot = self.ledger.snapshot()
        return {
            'time': self.now,
            'paused': self.is_paused,
            'is_text_glow_enabled': self.is_text_glow_enabled,
            'indicators': {
                'interest_rate': indicators.interest_rate,
                'inflation_rate': indicators.inflation_rate,
                'gdp_growth': indicators.gdp_growth,
                'unemployment_rate': indicators.unemployment_rate,
            },
            'cash': float(snapshot.cash),
            'total_assets': float(self.total_assets()),
            'instruments': [
                {
                    'symbol': i.symbol,
                    'sector': i.sector.value,
                    'price': i.price,
                    'change': i.change,
                    'change_percent': i.change_percent,
                    'volume': i.volume,
                    'per': i.per,
                    'market_cap': i.market_cap,
                    'dividend_per_share': i.dividend_per_share,
                }
                for i in self.context.market.instruments
            ],
            'portfolio': {
                symbol: {
                    'quantity': item.quantity,
                    'average_price': float(item.average_price),
                    'short_quantity': item.short_quantity,
                    'average_short_price': float(item.average_short_price),
                }
                for symbol, item in snapshot.portfolio.items()
                if item.quantity > 0 or item.short_quantity > 0
            },
            'bonds': [
                {
                    'instance_id': lot.instance_id,
                    'bond_id': lot.bond_id,
                    'quantity': lot.quantity,
                    'purchase_price': float(lot.purchase_price),
                    'purchase_time': lot.purchase_time,
                }
                for lot in snapshot.bonds
            ],
            'bond_prices': {bond_id: float(p) for bond_id, p in self.bond_prices.items()},
            'orders': [
                {
                    'id': o.id,
                    'symbol': o.symbol,
                    'action': o.action.value,
                    'quantity': o.quantity,
                    'trigger_price': float(o.trigger_price),
                    'created_at': o.created_at,
                }
                for o in self.orders.pending()
            ],
            'ai_traders': self.ai_pool.get_all_stats(self.context.market.price_map()),
            'portfolio_history': [
                {'time': p.time, 'value': float(p.value)} for p in self.portfolio_history
            ],
            'logs': [
                {'time': m.time, 'msg': m.msg, 'status': m.status.value}
                for m in self.system_log.recent(self.config.log_length)
            ],
            'news': [
                {'time': m.time, 'msg': m.msg, 'status': m.status.value}
                for m in self.news.recent(self.config.log_length)
            ],
        }

    # ========================================================================
    # CONTROL
    # ========================================================================

    def reset(self):
        """Delete the snapshot and start over with fresh state"""
        if self.store is not None:
            self.store.clear()
        self._initialize(None)
        logger.info("Session reset")

    async def run(self, duration_seconds: Optional[float] = None):
        """
        Run the session.

        Args:
            duration_seconds: Simulated seconds to run (None = forever)
        """
        until_time_us = None
        if duration_seconds:
            until_time_us = self.time_engine.current_time_us + int(duration_seconds * US_PER_SECOND)

        logger.info("Starting session...")

        try:
            await self.time_engine.run(until_time_us=until_time_us)
        finally:
            await self.shutdown()

    async def shutdown(self):
        """
        Stop timers, write a final snapshot and close the stream.

        The final snapshot follows the periodic rule: nothing is written
        while a pause reason is held.
        """
        logger.info("Shutting down session...")

        self.time_engine.stop()
        self.save_snapshot()
        await self.tick_stream.close()

        logger.info("Session shutdown complete")

    def get_stats(self) -> dict:
        """Get session statistics"""
        return {
            'time_engine': self.time_engine.get_stats().__dict__,
            'events_generated': self.event_generator.events_generated,
            'ai_trades': self.ai_pool.total_trades,
            'bonds_redeemed': float(self.bond_resolver.total_redeemed),
            'stream': self.tick_stream.get_stats().__dict__,
            'system_log': self.system_log.get_stats(),
        }
