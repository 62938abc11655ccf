"""
Seeded randomness for scores, the division shuffle and demo squads.
A fixed seed reproduces the same season; None draws from system entropy.
"""
from __future__ import annotations

import random
from typing import MutableSequence, Sequence, TypeVar

T = TypeVar("T")


class SeededRNG:
    """Thin wrapper over random.Random so every consumer takes the same injectable source."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)
        self._seed = seed

    @property
    def seed(self) -> int | None:
        return self._seed

    def random(self) -> float:
        return self._rng.random()

    def randint(self, low: int, high: int) -> int:
        return self._rng.randint(low, high)

    def choice(self, options: Sequence[T]) -> T:
        return self._rng.choice(options)

    def shuffle(self, items: MutableSequence) -> None:
        self._rng.shuffle(items)
