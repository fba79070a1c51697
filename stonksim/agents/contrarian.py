"""
Contrarian strategy - buys the biggest loser, takes profit on held winners.
"""
from typing import Optional, Sequence

from ..core.types import AITrader, AIDecision, Instrument, TradeSide

BUY_THRESHOLD = -1.5  # percent
SELL_THRESHOLD = 1.5


def decide(trader: AITrader, instruments: Sequence[Instrument]) -> Optional[AIDecision]:
    if not instruments:
        return None

    ranked = sorted(instruments, key=lambda i: i.change_percent, reverse=True)
    worst = ranked[-1]
    if worst.change_percent < BUY_THRESHOLD:
        return AIDecision(side=TradeSide.BUY, symbol=worst.symbol)

    held = trader.held_symbols()
    owned = [i for i in ranked if i.symbol in held]
    if owned and owned[0].change_percent > SELL_THRESHOLD:
        return AIDecision(side=TradeSide.SELL, symbol=owned[0].symbol)
    return None
