"""Reviewer configuration queries for Reviewflow.

Provides async functions that read label reviewers, the default reviewer
pool, release managers, and the eligible (not excluded, not on vacation)
subset of a set of users.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from reviewflow.database.models.review_config import (
    LabelReviewer,
    PossibleReviewer,
    ReleaseManager,
)
from reviewflow.database.models.user import User


async def get_label_reviewers(
    session: AsyncSession,
    repository_id: UUID,
    label_names: Iterable[str],
) -> list[LabelReviewer]:
    """Get label reviewer rows for the given labels of a repository.

    Args:
        session: Active async database session.
        repository_id: Repository to search within.
        label_names: Label names to match.

    Returns:
        Matching LabelReviewer rows ordered by creation time.
    """
    names = list(label_names)
    if not names:
        return []

    stmt = (
        select(LabelReviewer)
        .where(LabelReviewer.repository_id == repository_id)
        .where(LabelReviewer.label_name.in_(names))
        .order_by(LabelReviewer.created_at.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_possible_reviewer_ids(
    session: AsyncSession,
    repository_id: UUID,
) -> list[UUID]:
    """Get user IDs of a repository's default reviewer pool."""
    stmt = (
        select(PossibleReviewer.user_id)
        .where(PossibleReviewer.repository_id == repository_id)
        .order_by(PossibleReviewer.created_at.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_eligible_users(
    session: AsyncSession,
    user_ids: Iterable[UUID],
    exclude_ids: Iterable[UUID] = (),
) -> dict[UUID, User]:
    """Load users that may be assigned as reviewers.

    A user is eligible when it is in ``user_ids``, not in ``exclude_ids``,
    and not on vacation.

    Args:
        session: Active async database session.
        user_ids: Candidate user IDs.
        exclude_ids: User IDs that must not be returned.

    Returns:
        Mapping of user ID to User for every eligible candidate.
    """
    excluded = set(exclude_ids)
    ids = [uid for uid in dict.fromkeys(user_ids) if uid not in excluded]
    if not ids:
        return {}

    stmt = (
        select(User)
        .where(User.id.in_(ids))
        .where(User.on_vacation.is_(False))
    )
    result = await session.execute(stmt)
    return {user.id: user for user in result.scalars().all()}


async def get_release_managers(
    session: AsyncSession,
    repository_id: UUID,
) -> list[User]:
    """Get the release managers of a repository."""
    stmt = (
        select(ReleaseManager)
        .where(ReleaseManager.repository_id == repository_id)
        .order_by(ReleaseManager.created_at.asc())
    )
    result = await session.execute(stmt)
    return [row.user for row in result.scalars().all()]
