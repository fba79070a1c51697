"""
Bounded tick stream with backpressure.
Prevents slow consumers from blocking the simulation.
"""
import asyncio
from typing import Any, AsyncIterator, Set
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)

@dataclass
class StreamStats:
    """Stream performance metrics"""
    messages_published: int = 0
    messages_dropped: int = 0
    active_subscribers: int = 0

class BoundedTickStream:
    """
    Non-blocking publisher of per-tick payloads.

    Features:
    - Bounded per-subscriber queues (fixed memory)
    - Drop policy when a subscriber is full (never blocks)
    - Multiple independent subscribers
    - Metrics tracking
    """

    def __init__(self, maxsize: int = 100):
        self.maxsize = maxsize
        self.stats = StreamStats()
        self._subscribers: Set[asyncio.Queue] = set()
        self._closed = False

    # ========================================================================
    # PUBLISHING
    # ========================================================================

    def publish_nowait(self, data: Any) -> bool:
        """
        Fan out to every subscriber without waiting.
        Returns False if any subscriber dropped the message.
        """
        delivered = True
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(data)
            except asyncio.QueueFull:
                delivered = False
                self.stats.messages_dropped += 1
                if self.stats.messages_dropped % 100 == 0:
                    logger.warning(
                        f"Stream backpressure: dropped {self.stats.messages_dropped} messages"
                    )
        self.stats.messages_published += 1
        return delivered

    # ========================================================================
    # SUBSCRIBING
    # ========================================================================

    async def subscribe(self) -> AsyncIterator[Any]:
        """
        Subscribe to stream (creates independent queue).
        Each subscriber gets their own buffer.
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.maxsize)
        self._subscribers.add(queue)
        self.stats.active_subscribers = len(self._subscribers)

        try:
            while not self._closed:
                data = await queue.get()
                if data is None:  # Shutdown signal
                    break
                yield data
        finally:
            self._subscribers.discard(queue)
            self.stats.active_subscribers = len(self._subscribers)

    # ========================================================================
    # UTILITIES
    # ========================================================================

    def get_stats(self) -> StreamStats:
        return self.stats

    async def close(self):
        """Close stream and notify all subscribers"""
        self._closed = True
        for queue in self._subscribers:
            try:
                queue.put_nowait(None)
            except asyncio.QueueFull:
                # Make room for the shutdown signal
                queue.get_nowait()
                queue.put_nowait(None)
        self._subscribers.clear()
