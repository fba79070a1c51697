"""
AI trader strategies and the pool that runs them.
"""

from .base import AITraderPool, STRATEGY_DECIDERS, decide, default_traders

__all__ = [
    "AITraderPool",
    "STRATEGY_DECIDERS",
    "decide",
    "default_traders"
]
