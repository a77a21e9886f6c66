"""Unit tests for the weighted reviewer selector and its random source."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from unittest.mock import MagicMock
from uuid import UUID, uuid4

import pytest

from reviewflow.assignment.random_source import SynchronizedRandom
from reviewflow.assignment.selector import WeightedSelector


@dataclass(eq=False)
class Candidate:
    name: str
    id: UUID = field(default_factory=uuid4)


def make_pool(*names: str) -> list[Candidate]:
    return [Candidate(name) for name in names]


class FixedRandom:
    """Random source returning a fixed draw and recording randrange calls."""

    def __init__(self, value: float) -> None:
        self.value = value
        self.randrange_calls: list[int] = []

    def random(self) -> float:
        return self.value

    def randrange(self, n: int) -> int:
        self.randrange_calls.append(n)
        return n - 1


class TestSynchronizedRandom:
    """Tests for SynchronizedRandom."""

    def test_seeded_sequences_repeat(self) -> None:
        a = SynchronizedRandom(seed=7)
        b = SynchronizedRandom(seed=7)
        assert [a.random() for _ in range(5)] == [b.random() for _ in range(5)]
        assert [a.randrange(10) for _ in range(5)] == [b.randrange(10) for _ in range(5)]

    def test_reseed(self) -> None:
        rng = SynchronizedRandom(seed=1)
        first = rng.random()
        rng.seed(1)
        assert rng.random() == first

    def test_randrange_bounds(self) -> None:
        rng = SynchronizedRandom(seed=3)
        assert all(0 <= rng.randrange(4) < 4 for _ in range(200))


class TestPickOne:
    """Tests for WeightedSelector.pick_one."""

    def test_empty_pool(self) -> None:
        selector = WeightedSelector(SynchronizedRandom(seed=1))
        assert selector.pick_one([], {}) is None

    def test_single_candidate_uses_no_randomness(self) -> None:
        source = MagicMock()
        selector = WeightedSelector(source)
        only = Candidate("alice")

        assert selector.pick_one([only], {}) is only
        source.random.assert_not_called()
        source.randrange.assert_not_called()

    def test_low_draw_selects_first(self) -> None:
        pool = make_pool("alice", "bob", "carol")
        selector = WeightedSelector(FixedRandom(0.0))
        assert selector.pick_one(pool, {}) is pool[0]

    def test_cumulative_walk_respects_weights(self) -> None:
        # Weights 1/1 and 1/4 normalize to 0.8 and 0.2
        alice, bob = make_pool("alice", "bob")
        workload = {alice.id: 0, bob.id: 3}

        assert WeightedSelector(FixedRandom(0.79)).pick_one([alice, bob], workload) is alice
        assert WeightedSelector(FixedRandom(0.81)).pick_one([alice, bob], workload) is bob

    def test_drift_past_end_falls_back_to_uniform_index(self) -> None:
        pool = make_pool("alice", "bob", "carol")
        source = FixedRandom(1.5)
        selector = WeightedSelector(source)

        assert selector.pick_one(pool, {}) is pool[2]
        assert source.randrange_calls == [3]

    def test_missing_and_negative_workload_count_as_zero(self) -> None:
        selector = WeightedSelector(SynchronizedRandom(seed=1))
        candidate = Candidate("alice")
        assert selector.weight(candidate, {}) == 1.0
        assert selector.weight(candidate, {candidate.id: -5}) == 1.0
        assert selector.weight(candidate, {candidate.id: 4}) == pytest.approx(0.2)

    def test_idle_user_preferred_over_busy_user(self) -> None:
        idle, busy = make_pool("idle", "busy")
        workload = {idle.id: 0, busy.id: 100}
        selector = WeightedSelector(SynchronizedRandom(seed=42))

        picks = Counter(selector.pick_one([idle, busy], workload).name for _ in range(1000))

        assert picks["idle"] > 800

    def test_custom_key(self) -> None:
        selector = WeightedSelector(FixedRandom(0.6), key=lambda c: c.name)
        alice, bob = make_pool("alice", "bob")
        # alice weight 1/10, bob weight 1: bob dominates
        assert selector.pick_one([alice, bob], {"alice": 9}) is bob


class TestPickMany:
    """Tests for WeightedSelector.pick_many."""

    def test_non_positive_n(self) -> None:
        selector = WeightedSelector(SynchronizedRandom(seed=1))
        pool = make_pool("alice", "bob")
        assert selector.pick_many(pool, 0, {}) == []
        assert selector.pick_many(pool, -2, {}) == []

    def test_empty_pool(self) -> None:
        selector = WeightedSelector(SynchronizedRandom(seed=1))
        assert selector.pick_many([], 3, {}) == []

    def test_small_pool_returned_whole_in_order(self) -> None:
        source = MagicMock()
        selector = WeightedSelector(source)
        pool = make_pool("alice", "bob", "carol")

        assert selector.pick_many(pool, 3, {}) == pool
        assert selector.pick_many(pool, 5, {}) == pool
        source.random.assert_not_called()

    def test_picks_are_distinct(self) -> None:
        selector = WeightedSelector(SynchronizedRandom(seed=11))
        pool = make_pool("a", "b", "c", "d", "e", "f")

        for _ in range(200):
            picked = selector.pick_many(pool, 3, {})
            assert len(picked) == 3
            assert len({c.id for c in picked}) == 3
            assert all(c in pool for c in picked)

    def test_does_not_mutate_pool(self) -> None:
        selector = WeightedSelector(SynchronizedRandom(seed=5))
        pool = make_pool("a", "b", "c", "d")
        snapshot = list(pool)

        selector.pick_many(pool, 2, {})

        assert pool == snapshot

    def test_seeded_selection_is_reproducible(self) -> None:
        pool = make_pool("a", "b", "c", "d", "e")
        workload = {pool[0].id: 3, pool[1].id: 1}

        first = WeightedSelector(SynchronizedRandom(seed=99)).pick_many(pool, 2, workload)
        second = WeightedSelector(SynchronizedRandom(seed=99)).pick_many(pool, 2, workload)

        assert [c.name for c in first] == [c.name for c in second]
