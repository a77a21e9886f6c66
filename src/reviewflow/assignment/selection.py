"""Reviewer selection algorithm.

Phase 1 picks one reviewer per MR label that has reviewers configured,
walking labels in lexicographic order so results are reproducible with a
seeded random source, and stops once the requested count is reached. An
MR with more configured labels than requested reviewers therefore gets
reviewers from the first labels only. Phase 2 tops the selection up to
the requested count from the leftover label reviewers and the
repository's default pool. MRs without configured labels draw straight
from the default pool.

Returning fewer reviewers than requested is a normal outcome when the
pools run dry.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from reviewflow.assignment.pool import CandidatePoolResolver
from reviewflow.assignment.selector import WeightedSelector
from reviewflow.database.models.merge_request import MergeRequest
from reviewflow.database.models.user import User
from reviewflow.database.queries.workload import DEFAULT_WINDOW_DAYS, get_recent_review_counts

logger = structlog.get_logger(__name__)


class ReviewerSelector:
    """Selects reviewers for a merge request.

    Attributes:
        selector: Weighted sampler used for every draw.
        resolver: Candidate pool resolver.
        workload_window_days: Trailing window for recent review counts.
    """

    def __init__(
        self,
        selector: WeightedSelector,
        resolver: CandidatePoolResolver | None = None,
        workload_window_days: int = DEFAULT_WINDOW_DAYS,
    ) -> None:
        self.selector = selector
        self.resolver = resolver or CandidatePoolResolver()
        self.workload_window_days = workload_window_days
        self._logger = logger.bind(component="ReviewerSelector")

    async def _workload(self, session: AsyncSession, users: Iterable[User]) -> dict[UUID, int]:
        return await get_recent_review_counts(
            session,
            [u.id for u in users],
            window_days=self.workload_window_days,
        )

    async def select(
        self,
        session: AsyncSession,
        mr: MergeRequest,
        min_count: int,
        exclude: Iterable[UUID] = (),
    ) -> list[User]:
        """Select up to ``min_count`` new reviewers for an MR.

        Args:
            session: Active async database session.
            mr: Merge request being assigned.
            min_count: Number of reviewers wanted. Values below 1 mean 1.
            exclude: User IDs that must not be selected, typically the
                MR's current reviewers.

        Returns:
            Distinct selected users. Never contains the author, a user on
            vacation, or an excluded user.
        """
        if min_count <= 0:
            min_count = 1

        pools = await self.resolver.resolve(session, mr, exclude)
        label_groups = pools.label_groups

        if not label_groups:
            workload = await self._workload(session, pools.default_pool)
            selected = self.selector.pick_many(pools.default_pool, min_count, workload)
            self._log_outcome(mr, min_count, selected)
            return selected

        seen: dict[UUID, User] = {}
        for label in sorted(label_groups):
            for user in label_groups[label]:
                seen.setdefault(user.id, user)
        newcomers = [u for u in pools.default_pool if u.id not in seen]
        workload = await self._workload(session, [*seen.values(), *newcomers])

        # Phase 1: one reviewer per label, never more than requested
        selected: list[User] = []
        selected_ids: set[UUID] = set()
        for label in sorted(label_groups):
            if len(selected) >= min_count:
                break
            candidates = [u for u in label_groups[label] if u.id not in selected_ids]
            picked = self.selector.pick_one(candidates, workload)
            if picked is None:
                self._logger.info("label_group_exhausted", label=label, mr_id=str(mr.id))
                continue
            selected.append(picked)
            selected_ids.add(picked.id)

        # Phase 2: top up from leftover label reviewers and the default pool
        if len(selected) < min_count:
            combined = [u for u in seen.values() if u.id not in selected_ids]
            combined.extend(newcomers)
            selected.extend(
                self.selector.pick_many(combined, min_count - len(selected), workload)
            )

        self._log_outcome(mr, min_count, selected)
        return selected

    def _log_outcome(self, mr: MergeRequest, requested: int, selected: list[User]) -> None:
        if len(selected) < requested:
            self._logger.warning(
                "reviewer_shortfall",
                mr_id=str(mr.id),
                requested=requested,
                selected=len(selected),
            )
        else:
            self._logger.debug(
                "reviewers_selected",
                mr_id=str(mr.id),
                selected=[u.username for u in selected],
            )
