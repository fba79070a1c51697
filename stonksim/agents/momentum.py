"""
Momentum strategy - buys strength, dumps held weakness.
"""
from typing import Optional, Sequence

from ..core.types import AITrader, AIDecision, Instrument, TradeSide

BUY_THRESHOLD = 1.0  # percent
SELL_THRESHOLD = -1.0


def decide(trader: AITrader, instruments: Sequence[Instrument]) -> Optional[AIDecision]:
    """
    Buy the top performer of the tick if it gained more than 1%.
    Otherwise sell the worst held position if it lost more than 1%.
    """
    if not instruments:
        return None

    ranked = sorted(instruments, key=lambda i: i.change_percent, reverse=True)
    best = ranked[0]
    if best.change_percent > BUY_THRESHOLD:
        return AIDecision(side=TradeSide.BUY, symbol=best.symbol)

    held = trader.held_symbols()
    owned = [i for i in ranked if i.symbol in held]
    if owned and owned[-1].change_percent < SELL_THRESHOLD:
        return AIDecision(side=TradeSide.SELL, symbol=owned[-1].symbol)
    return None
