"""
Rolling user-visible feeds: the system log and the news ticker.
Old entries are evicted automatically.
"""
from collections import deque
from typing import Deque, List
import logging

from ..core.types import LogMessage, LogStatus

logger = logging.getLogger(__name__)


class RollingFeed:
    """Fixed-size window of log messages"""

    def __init__(self, window_size: int = 21):
        self.window_size = window_size
        self.messages: Deque[LogMessage] = deque(maxlen=window_size)
        self.total_messages = 0
        self.evicted_messages = 0

    def add(self, time: int, msg: str, status: LogStatus) -> LogMessage:
        """Append a message (auto-evicts oldest)"""
        if len(self.messages) >= self.window_size:
            self.evicted_messages += 1

        message = LogMessage(time=time, msg=msg, status=status)
        self.messages.append(message)
        self.total_messages += 1
        return message

    def recent(self, count: int = 20) -> List[LogMessage]:
        return list(self.messages)[-count:]

    def clear(self):
        self.messages.clear()

    def get_stats(self) -> dict:
        return {
            'window_size': self.window_size,
            'count': len(self.messages),
            'total_messages': self.total_messages,
            'evicted_messages': self.evicted_messages,
        }
