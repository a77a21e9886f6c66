"""Workload read model for Reviewflow.

Counts how many reviews each user picked up recently so the weighted
selector can favour less loaded reviewers. A review counts when the user
sits in the reviewer set of an MR created inside the trailing window.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from reviewflow.database.models.base import utcnow
from reviewflow.database.models.merge_request import MergeRequest, merge_request_reviewers

logger = structlog.get_logger(__name__)

DEFAULT_WINDOW_DAYS = 14


async def get_recent_review_counts(
    session: AsyncSession,
    user_ids: Iterable[UUID],
    window_days: int = DEFAULT_WINDOW_DAYS,
    now: datetime | None = None,
) -> dict[UUID, int]:
    """Count recent reviewer assignments per user.

    Args:
        session: Active async database session.
        user_ids: Users to count for.
        window_days: Size of the trailing window in days.
        now: Reference time (defaults to the current UTC time).

    Returns:
        Mapping of user ID to assignment count. Users without recent
        assignments are absent from the mapping.
    """
    ids = list(dict.fromkeys(user_ids))
    if not ids:
        return {}

    cutoff = (now or utcnow()) - timedelta(days=window_days)
    stmt = (
        select(merge_request_reviewers.c.user_id, func.count())
        .select_from(merge_request_reviewers)
        .join(MergeRequest, MergeRequest.id == merge_request_reviewers.c.merge_request_id)
        .where(MergeRequest.gitlab_created_at > cutoff)
        .where(merge_request_reviewers.c.user_id.in_(ids))
        .group_by(merge_request_reviewers.c.user_id)
    )
    result = await session.execute(stmt)
    counts = {user_id: count for user_id, count in result.all()}

    logger.debug(
        "recent_review_counts_loaded",
        requested=len(ids),
        with_reviews=len(counts),
        window_days=window_days,
    )
    return counts
