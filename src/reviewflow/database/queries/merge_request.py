"""Merge request query functions for Reviewflow.

Provides async functions for selecting MRs that need reviewers, checking
label-based exclusions, reading the repository assign count, appending
reviewers, and recording the last announced review state.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy import exists, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from reviewflow.database.models.merge_request import MergeRequest, MergeRequestState
from reviewflow.database.models.repository import Chat, RepositorySubscription
from reviewflow.database.models.review_config import (
    DEFAULT_ASSIGN_COUNT,
    BlockLabel,
    ReleaseLabel,
    RepositorySLA,
)
from reviewflow.database.models.user import User

logger = structlog.get_logger(__name__)


async def get_merge_request(
    session: AsyncSession,
    merge_request_id: UUID,
) -> MergeRequest | None:
    """Retrieve a merge request by ID."""
    stmt = select(MergeRequest).where(MergeRequest.id == merge_request_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_assignable_merge_requests(
    session: AsyncSession,
    created_after: datetime,
) -> list[MergeRequest]:
    """List open MRs that are candidates for reviewer assignment.

    An MR qualifies when it is opened, not a draft, not merged, belongs to a
    repository with at least one chat subscription, and was created in
    GitLab after ``created_after``.

    Args:
        session: Active async database session.
        created_after: Lower bound on the GitLab creation time.

    Returns:
        Matching MRs, oldest first.
    """
    subscribed = exists().where(
        RepositorySubscription.repository_id == MergeRequest.repository_id
    )
    stmt = (
        select(MergeRequest)
        .where(MergeRequest.state == MergeRequestState.opened)
        .where(MergeRequest.draft.is_(False))
        .where(MergeRequest.merged_at.is_(None))
        .where(subscribed)
        .where(MergeRequest.gitlab_created_at > created_after)
        .order_by(MergeRequest.gitlab_created_at.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def _repository_label_matches(
    session: AsyncSession,
    model: type[BlockLabel] | type[ReleaseLabel],
    mr: MergeRequest,
) -> bool:
    names = mr.label_names
    if not names:
        return False
    stmt = (
        select(func.count())
        .select_from(model)
        .where(model.repository_id == mr.repository_id)
        .where(model.label_name.in_(names))
    )
    result = await session.execute(stmt)
    return result.scalar_one() > 0


async def has_release_label(session: AsyncSession, mr: MergeRequest) -> bool:
    """Whether the MR carries one of its repository's release labels."""
    return await _repository_label_matches(session, ReleaseLabel, mr)


async def is_blocked(session: AsyncSession, mr: MergeRequest) -> bool:
    """Whether the MR carries one of its repository's block labels."""
    return await _repository_label_matches(session, BlockLabel, mr)


async def get_assign_count(session: AsyncSession, repository_id: UUID) -> int:
    """Get the minimum reviewer count of a repository.

    Returns DEFAULT_ASSIGN_COUNT when no SLA row exists or the stored value
    is not positive.
    """
    stmt = select(RepositorySLA.assign_count).where(
        RepositorySLA.repository_id == repository_id
    )
    result = await session.execute(stmt)
    assign_count = result.scalar_one_or_none()
    if assign_count is None or assign_count <= 0:
        return DEFAULT_ASSIGN_COUNT
    return assign_count


async def get_subscribed_chats(
    session: AsyncSession,
    repository_id: UUID,
) -> list[Chat]:
    """Get the chats subscribed to a repository."""
    stmt = (
        select(RepositorySubscription)
        .where(RepositorySubscription.repository_id == repository_id)
        .order_by(RepositorySubscription.created_at.asc())
    )
    result = await session.execute(stmt)
    return [sub.chat for sub in result.scalars().all()]


async def add_reviewers(
    session: AsyncSession,
    mr: MergeRequest,
    users: Iterable[User],
) -> list[User]:
    """Append users to the MR's reviewer set.

    Existing reviewers are kept; users already present are skipped. The
    caller owns the transaction.

    Returns:
        The users that were actually added.
    """
    present = {reviewer.id for reviewer in mr.reviewers}
    added: list[User] = []
    for user in users:
        if user.id in present:
            continue
        mr.reviewers.append(user)
        present.add(user.id)
        added.append(user)

    await session.flush()

    logger.info(
        "reviewers_persisted",
        mr_id=str(mr.id),
        added=[u.username for u in added],
        total=len(mr.reviewers),
    )
    return added


async def set_last_notified_state(
    session: AsyncSession,
    merge_request_id: UUID,
    state: str,
) -> None:
    """Record the review state most recently announced for an MR.

    The caller owns the transaction.
    """
    stmt = (
        update(MergeRequest)
        .where(MergeRequest.id == merge_request_id)
        .values(last_notified_state=state)
    )
    await session.execute(stmt)
    await session.flush()
