"""Candidate pool resolution for reviewer assignment.

Turns an MR's labels and its repository's reviewer configuration into the
pools the selection algorithm draws from. Every pool is filtered by the
same three rules: never the MR author, never a user on vacation, never a
user in the caller's exclusion set.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from reviewflow.database.models.merge_request import MergeRequest
from reviewflow.database.models.user import User
from reviewflow.database.queries.reviewers import (
    get_eligible_users,
    get_label_reviewers,
    get_possible_reviewer_ids,
)

logger = structlog.get_logger(__name__)


@dataclass
class CandidatePools:
    """Eligible reviewers for one MR.

    Attributes:
        label_groups: Label name to eligible label reviewers. Labels whose
            group is empty after filtering are omitted.
        default_pool: Eligible users of the repository's default pool.
    """

    label_groups: dict[str, list[User]] = field(default_factory=dict)
    default_pool: list[User] = field(default_factory=list)


class CandidatePoolResolver:
    """Resolves label groups and the default pool for a merge request."""

    def __init__(self) -> None:
        self._logger = logger.bind(component="CandidatePoolResolver")

    @staticmethod
    def _excluded_ids(mr: MergeRequest, exclude: Iterable[UUID]) -> set[UUID]:
        excluded = set(exclude)
        excluded.add(mr.author_id)
        return excluded

    async def resolve_label_groups(
        self,
        session: AsyncSession,
        mr: MergeRequest,
        exclude: Iterable[UUID] = (),
    ) -> dict[str, list[User]]:
        """Resolve the eligible reviewers of each configured MR label.

        Args:
            session: Active async database session.
            mr: Merge request being assigned.
            exclude: Additional user IDs to leave out.

        Returns:
            Label name to eligible users, in configuration order. Empty when
            the MR has no labels or none of them has reviewers configured.
        """
        label_names = mr.label_names
        if not label_names:
            return {}

        rows = await get_label_reviewers(session, mr.repository_id, label_names)
        if not rows:
            return {}

        configured: dict[str, list[UUID]] = {}
        for row in rows:
            configured.setdefault(row.label_name, []).append(row.user_id)

        all_ids = [uid for ids in configured.values() for uid in ids]
        eligible = await get_eligible_users(
            session, all_ids, self._excluded_ids(mr, exclude)
        )

        groups: dict[str, list[User]] = {}
        for label, user_ids in configured.items():
            members = [eligible[uid] for uid in dict.fromkeys(user_ids) if uid in eligible]
            if members:
                groups[label] = members
            else:
                self._logger.debug("label_group_empty", label=label, mr_id=str(mr.id))
        return groups

    async def resolve_default_pool(
        self,
        session: AsyncSession,
        mr: MergeRequest,
        exclude: Iterable[UUID] = (),
    ) -> list[User]:
        """Resolve the eligible users of the repository's default pool."""
        user_ids = await get_possible_reviewer_ids(session, mr.repository_id)
        eligible = await get_eligible_users(
            session, user_ids, self._excluded_ids(mr, exclude)
        )
        return [eligible[uid] for uid in dict.fromkeys(user_ids) if uid in eligible]

    async def resolve(
        self,
        session: AsyncSession,
        mr: MergeRequest,
        exclude: Iterable[UUID] = (),
    ) -> CandidatePools:
        """Resolve both the label groups and the default pool."""
        excluded = list(exclude)
        return CandidatePools(
            label_groups=await self.resolve_label_groups(session, mr, excluded),
            default_pool=await self.resolve_default_pool(session, mr, excluded),
        )
