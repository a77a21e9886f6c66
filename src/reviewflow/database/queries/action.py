"""MR action log query functions for Reviewflow.

The action log is append-only and written by the sync process. The only
mutation performed here is flipping ``notified`` from False to True.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy import ColumnElement, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from reviewflow.database.models.activity import MRAction, MRActionType

logger = structlog.get_logger(__name__)


async def list_unnotified_actions(
    session: AsyncSession,
    action_types: Iterable[MRActionType],
    newer_than: datetime | None = None,
    limit: int = 100,
) -> list[MRAction]:
    """List actions of the given types that have not been handled yet.

    Args:
        session: Active async database session.
        action_types: Action types to include.
        newer_than: Optional lower bound on the action timestamp.
        limit: Maximum number of actions returned.

    Returns:
        Matching actions, oldest first.
    """
    stmt = (
        select(MRAction)
        .where(MRAction.notified.is_(False))
        .where(MRAction.action_type.in_(list(action_types)))
    )
    if newer_than is not None:
        stmt = stmt.where(MRAction.timestamp > newer_than)
    stmt = stmt.order_by(MRAction.timestamp.asc()).limit(limit)

    result = await session.execute(stmt)
    return list(result.scalars().all())


async def _flip_notified(
    session: AsyncSession,
    *criteria: ColumnElement[bool],
) -> int:
    # Select first so the count does not depend on driver rowcount support
    stmt = select(MRAction.id).where(MRAction.notified.is_(False), *criteria)
    ids = list((await session.execute(stmt)).scalars().all())
    if not ids:
        return 0

    await session.execute(
        update(MRAction)
        .where(MRAction.id.in_(ids))
        .values(notified=True)
        .execution_options(synchronize_session="evaluate")
    )
    return len(ids)


async def mark_actions_notified(
    session: AsyncSession,
    action_ids: Iterable[UUID],
) -> int:
    """Mark actions as notified.

    Only rows still unnotified are touched, so repeated calls are no-ops.
    The caller owns the transaction.

    Returns:
        Number of rows flipped.
    """
    ids = list(action_ids)
    if not ids:
        return 0
    return await _flip_notified(session, MRAction.id.in_(ids))


async def mark_stale_actions_notified(
    session: AsyncSession,
    older_than: datetime,
) -> int:
    """Mark every unnotified action older than ``older_than`` as notified.

    The caller owns the transaction.

    Returns:
        Number of rows flipped.
    """
    flipped = await _flip_notified(session, MRAction.timestamp < older_than)
    if flipped:
        logger.info("stale_actions_marked", count=flipped, older_than=older_than.isoformat())
    return flipped


async def get_action(
    session: AsyncSession,
    action_id: UUID,
) -> MRAction | None:
    """Retrieve an action by ID."""
    stmt = select(MRAction).where(MRAction.id == action_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()
