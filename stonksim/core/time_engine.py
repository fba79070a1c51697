"""
Async discrete event scheduler with pause/resume and speed control.
Zero blocking operations.
"""
import asyncio
import heapq
from typing import Optional, List, Callable, Awaitable
from dataclasses import dataclass
import logging

from .types import Event

logger = logging.getLogger(__name__)

US_PER_SECOND = 1_000_000

@dataclass
class TimeEngineStats:
    """Performance metrics"""
    events_processed: int = 0
    events_scheduled: int = 0
    events_dropped: int = 0
    current_time_us: int = 0
    queue_size: int = 0

class AsyncTimeEngine:
    """
    Non-blocking discrete event simulator with:
    - Pause/resume capability (nothing fires while paused)
    - Speed control (1x, 10x, 100x, unlimited)
    - Bounded queue with backpressure
    - Async event handlers

    Simulated time only advances by dispatching events, so time spent
    paused is never replayed as a burst of missed ticks.
    """

    def __init__(
        self,
        start_time_us: int = 0,
        speed_multiplier: float = 1.0,
        max_queue_size: int = 10_000
    ):
        self.current_time_us = start_time_us
        self.speed_multiplier = speed_multiplier
        self.max_queue_size = max_queue_size

        # Priority queue: (timestamp, priority, counter, event)
        self._event_queue: List[tuple] = []
        self._event_counter = 0  # FIFO for equal timestamp/priority

        # Control flags
        self._paused = False
        self._resumed = asyncio.Event()  # loop gate, also opened by stop()
        self._resumed.set()
        self._running = False

        # Event handlers: event_type -> list of async handlers
        self._handlers: dict = {}

        self.stats = TimeEngineStats(current_time_us=start_time_us)

    # ========================================================================
    # CONTROL METHODS
    # ========================================================================

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def current_seconds(self) -> int:
        return self.current_time_us // US_PER_SECOND

    def pause(self):
        """Pause simulation"""
        if not self._paused:
            self._paused = True
            self._resumed.clear()
            logger.info("Simulation paused")

    def resume(self):
        """Resume simulation"""
        if self._paused:
            self._paused = False
            self._resumed.set()
            logger.info("Simulation resumed")

    def set_speed(self, multiplier: float):
        """
        Set simulation speed.
        - 1.0 = real-time
        - 10.0 = 10x speed
        - 0.0 = unlimited (no delays)
        """
        self.speed_multiplier = multiplier
        logger.info(f"Speed set to {multiplier}x")

    # ========================================================================
    # EVENT SCHEDULING
    # ========================================================================

    def schedule_event(self, event: Event, delay_us: int = 0) -> bool:
        """
        Schedule event at its own timestamp (never in the past) plus delay.
        Returns False if queue full (backpressure).
        """
        if len(self._event_queue) >= self.max_queue_size:
            self.stats.events_dropped += 1
            logger.warning(
                f"Event queue full! Dropped {type(event).__name__} "
                f"({self.stats.events_dropped} total)"
            )
            return False

        timestamp = max(event.timestamp, self.current_time_us) + delay_us
        heapq.heappush(
            self._event_queue,
            (timestamp, event.priority, self._event_counter, event)
        )
        self._event_counter += 1
        self.stats.events_scheduled += 1
        return True

    # ========================================================================
    # EVENT HANDLERS
    # ========================================================================

    def register_handler(
        self,
        event_type: type,
        handler: Callable[[Event], Awaitable[None]]
    ):
        """Register async event handler"""
        self._handlers.setdefault(event_type, []).append(handler)

    async def _dispatch_event(self, event: Event):
        """Dispatch event to all registered handlers"""
        handlers = self._handlers.get(type(event))
        if not handlers:
            logger.debug(f"No handler for {type(event).__name__}")
            return

        results = await asyncio.gather(
            *[handler(event) for handler in handlers],
            return_exceptions=True
        )

        for handler, result in zip(handlers, results):
            if isinstance(result, Exception):
                logger.error(
                    f"Handler {handler.__name__} failed: {result}",
                    exc_info=result
                )

    # ========================================================================
    # SIMULATION LOOP
    # ========================================================================

    async def run(self, until_time_us: Optional[int] = None):
        """
        Main simulation loop.
        Runs until queue empty, stop() is called or until_time_us is reached.
        """
        self._running = True
        if self._paused:
            self._resumed.clear()
        logger.info("Starting simulation")

        try:
            while self._running and self._event_queue:
                await self._resumed.wait()
                if not self._running:
                    break

                timestamp = self._event_queue[0][0]
                if until_time_us is not None and timestamp > until_time_us:
                    self.current_time_us = until_time_us
                    logger.info(f"Reached time limit: {until_time_us}")
                    break

                # Simulate time passage (if speed limited)
                if self.speed_multiplier > 0:
                    time_delta_us = timestamp - self.current_time_us
                    if time_delta_us > 0:
                        await asyncio.sleep(time_delta_us / US_PER_SECOND / self.speed_multiplier)

                # A pause that began during the sleep holds the event back
                await self._resumed.wait()
                if not self._running:
                    break

                timestamp, priority, counter, event = heapq.heappop(self._event_queue)
                self.current_time_us = timestamp

                await self._dispatch_event(event)

                self.stats.events_processed += 1
                self.stats.current_time_us = self.current_time_us
                self.stats.queue_size = len(self._event_queue)

                # Yield control periodically
                if self.stats.events_processed % 100 == 0:
                    await asyncio.sleep(0)

        except asyncio.CancelledError:
            logger.info("Simulation cancelled")
            raise
        finally:
            self._running = False
            logger.info(
                f"Simulation stopped. Processed {self.stats.events_processed} events"
            )

    def stop(self):
        """Stop simulation"""
        self._running = False
        # Wake a paused loop so it sees the stop flag; the pause itself stays
        self._resumed.set()

    # ========================================================================
    # UTILITIES
    # ========================================================================

    def get_stats(self) -> TimeEngineStats:
        """Get current statistics"""
        self.stats.queue_size = len(self._event_queue)
        return self.stats

    def clear_queue(self):
        """Clear all pending events"""
        self._event_queue.clear()
        logger.info("Event queue cleared")
