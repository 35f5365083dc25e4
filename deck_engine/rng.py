"""
Seedable randomness for the resolution engine.

Production sessions get a fresh unpredictable seed; tests pass a fixed one.
Both go through the same RandomSource so there is no test-only draw path.
"""

import random
import secrets
from typing import Optional, Sequence


class RandomSource:
    """Reproducible random stream bound to a single session."""

    def __init__(self, seed: Optional[int] = None):
        if seed is None:
            seed = secrets.randbits(64)
        self.seed = seed
        self._random = random.Random(seed)

    def random(self) -> float:
        """Return the next float in [0.0, 1.0)."""
        return self._random.random()

    def weighted_index(self, weights: Sequence[float]) -> int:
        """Pick an index with probability proportional to its weight."""
        total = sum(weights)
        if total <= 0:
            raise ValueError("Weights must sum to a positive value")
        target = self.random() * total
        running = 0.0
        for i, weight in enumerate(weights):
            running += weight
            if target < running:
                return i
        # Float rounding can leave target == total; fall back to the last positive weight
        for i in range(len(weights) - 1, -1, -1):
            if weights[i] > 0:
                return i
        raise ValueError("No positive weight to choose from")

    def chance(self, probability: float) -> bool:
        """Return True with the given probability."""
        if probability >= 1.0:
            return True
        if probability <= 0.0:
            return False
        return self.random() < probability

    def __repr__(self) -> str:
        return f"RandomSource(seed={self.seed})"
