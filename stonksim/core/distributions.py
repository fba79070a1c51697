"""
Random draws for the price process.

Standard normals come from the Box-Muller transform over uniform draws of
a numpy Generator, so a seeded generator reproduces a session exactly.
"""
import math
from typing import Dict, Iterable, List, Sequence, Tuple
import logging

import numpy as np

logger = logging.getLogger(__name__)


def standard_normal(rng: np.random.Generator, size=None):
    """
    Box-Muller standard normal.

    `1 - rng.random()` lies in (0, 1], so the logarithm is always finite.
    Returns a float when size is None, else an ndarray.
    """
    u = 1.0 - rng.random(size)
    v = rng.random(size)
    z = np.sqrt(-2.0 * np.log(u)) * np.cos(2.0 * np.pi * v)
    if size is None:
        return float(z)
    return z


class CorrelationGraph:
    """
    Fixed symbol pairs sampled jointly.

    Each symbol may belong to at most one pair so that every symbol
    receives exactly one shock per tick.
    """

    def __init__(self, pairs: Iterable[Tuple[str, str, float]]):
        self.pairs: List[Tuple[str, str, float]] = []
        seen = set()

        for symbol_a, symbol_b, rho in pairs:
            if not -1.0 <= rho <= 1.0:
                raise ValueError(f"Correlation out of range for {symbol_a}/{symbol_b}: {rho}")
            for symbol in (symbol_a, symbol_b):
                if symbol in seen:
                    raise ValueError(f"Symbol {symbol} appears in more than one correlated pair")
                seen.add(symbol)
            self.pairs.append((symbol_a, symbol_b, rho))

        self.paired_symbols = frozenset(seen)

    def sample(self, rng: np.random.Generator, symbols: Sequence[str]) -> Dict[str, float]:
        """Draw one shock per symbol, correlated within each configured pair"""
        shocks: Dict[str, float] = {}

        for symbol_a, symbol_b, rho in self.pairs:
            z1 = standard_normal(rng)
            z2 = standard_normal(rng)
            shocks[symbol_a] = z1
            shocks[symbol_b] = rho * z1 + math.sqrt(1.0 - rho * rho) * z2

        unpaired = [s for s in symbols if s not in self.paired_symbols]
        if unpaired:
            draws = standard_normal(rng, len(unpaired))
            for symbol, z in zip(unpaired, draws):
                shocks[symbol] = float(z)

        # Pairs may name symbols outside this market; keep only the ones we trade
        shocks = {s: shocks[s] for s in symbols}
        logger.debug(f"Sampled {len(shocks)} shocks")
        return shocks
