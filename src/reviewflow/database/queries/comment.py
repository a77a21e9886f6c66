"""MR comment query functions for Reviewflow."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from reviewflow.database.models.activity import MRComment


async def list_comments(
    session: AsyncSession,
    merge_request_id: UUID,
) -> list[MRComment]:
    """List all comments of a merge request, oldest first."""
    stmt = (
        select(MRComment)
        .where(MRComment.merge_request_id == merge_request_id)
        .order_by(MRComment.gitlab_created_at.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())
