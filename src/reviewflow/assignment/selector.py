"""Workload-weighted random reviewer selection.

Each candidate gets weight ``1 / (recent_reviews + 1)``. A single uniform
draw walks the normalized cumulative weights, so a user with no recent
reviews is picked far more often than a busy one while nobody is ever
ruled out. The selector knows nothing about labels or exclusions; callers
hand it an already filtered pool.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Mapping, Sequence
from typing import Any, TypeVar
from uuid import UUID

import structlog

from reviewflow.assignment.random_source import RandomSource

logger = structlog.get_logger(__name__)

T = TypeVar("T")

KeyFunc = Callable[[Any], Hashable]


def _user_id(candidate: object) -> UUID:
    return candidate.id  # type: ignore[attr-defined]


class WeightedSelector:
    """Inverse-workload weighted sampler.

    Attributes:
        random_source: Source of uniform draws, shared across selectors.
        key: Maps a candidate to its key in the workload mapping.
    """

    def __init__(self, random_source: RandomSource, key: KeyFunc = _user_id) -> None:
        self.random_source = random_source
        self.key = key

    def weight(self, candidate: T, workload: Mapping[Hashable, int]) -> float:
        """Selection weight of a candidate. Missing workload counts as 0."""
        count = max(workload.get(self.key(candidate), 0), 0)
        return 1.0 / (count + 1)

    def pick_one(
        self,
        pool: Sequence[T],
        workload: Mapping[Hashable, int],
    ) -> T | None:
        """Pick one candidate, favouring lower workload.

        Args:
            pool: Candidates to choose from.
            workload: Recent review count per candidate key.

        Returns:
            The chosen candidate, or None for an empty pool.
        """
        if not pool:
            return None
        if len(pool) == 1:
            return pool[0]

        weights = [self.weight(candidate, workload) for candidate in pool]
        total = sum(weights)

        r = self.random_source.random()
        cumulative = 0.0
        for candidate, weight in zip(pool, weights):
            cumulative += weight / total
            if r <= cumulative:
                return candidate

        # Float drift can leave the last cumulative value just below r
        return pool[self.random_source.randrange(len(pool))]

    def pick_many(
        self,
        pool: Sequence[T],
        n: int,
        workload: Mapping[Hashable, int],
    ) -> list[T]:
        """Pick up to ``n`` distinct candidates without replacement.

        Args:
            pool: Candidates to choose from.
            n: Number of candidates wanted.
            workload: Recent review count per candidate key.

        Returns:
            The chosen candidates. When the pool holds ``n`` or fewer
            candidates the whole pool is returned in its original order.
        """
        if n <= 0 or not pool:
            return []
        if len(pool) <= n:
            return list(pool)

        remaining = list(pool)
        chosen: list[T] = []
        while len(chosen) < n and remaining:
            picked = self.pick_one(remaining, workload)
            if picked is None:
                break
            chosen.append(picked)
            remaining.remove(picked)

        logger.debug("weighted_pick_many", requested=n, pool_size=len(pool), picked=len(chosen))
        return chosen
