"""Thread-safe random source shared by reviewer selectors."""

from __future__ import annotations

import random
import threading
from typing import Protocol


class RandomSource(Protocol):
    """Minimal random interface consumed by the weighted selector."""

    def random(self) -> float: ...

    def randrange(self, n: int) -> int: ...


class SynchronizedRandom:
    """A ``random.Random`` guarded by a lock.

    One instance is created per process and injected into every selector,
    so concurrent passes never interleave inside the generator state.
    Pass a seed to get reproducible draws in tests.
    """

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)
        self._lock = threading.Lock()

    def random(self) -> float:
        """Return a float uniformly drawn from [0, 1)."""
        with self._lock:
            return self._rng.random()

    def randrange(self, n: int) -> int:
        """Return an integer uniformly drawn from [0, n)."""
        with self._lock:
            return self._rng.randrange(n)

    def seed(self, seed: int | None) -> None:
        """Reseed the underlying generator."""
        with self._lock:
            self._rng.seed(seed)
