"""Reseedable random source shared by the market, negotiation and exit models."""

from __future__ import annotations

import math
import random


class RandomVariate:
    """Uniform and standard-normal draws from one seedable generator.

    All engine randomness flows through a single instance so a session can be
    replayed exactly by reseeding it.
    """

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)

    def reseed(self, seed: int | None) -> None:
        self._rng.seed(seed)

    def random(self) -> float:
        """Uniform draw in ``[0, 1)``."""
        return self._rng.random()

    def uniform(self, low: float, high: float) -> float:
        """Uniform draw in ``[low, high)``."""
        return low + (high - low) * self._rng.random()

    def next_standard_normal(self) -> float:
        """Standard normal sample via the Box-Muller transform.

        Both uniforms are redrawn while exactly zero so ``log(u)`` is finite.
        """
        u = 0.0
        v = 0.0
        while u == 0.0:
            u = self._rng.random()
        while v == 0.0:
            v = self._rng.random()
        return math.sqrt(-2.0 * math.log(u)) * math.cos(2.0 * math.pi * v)
