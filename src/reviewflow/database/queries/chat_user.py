"""Chat user lookup queries for Reviewflow."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from reviewflow.database.models.repository import ChatUser


async def find_chat_user_ids(
    session: AsyncSession,
    usernames: Iterable[str],
) -> dict[str, str]:
    """Map GitLab usernames to chat-bot user IDs.

    A chat user matches a username when its ID is ``<username>@...`` or the
    username itself.

    Returns:
        Mapping of username to chat user ID for every username found.
    """
    names = [name for name in dict.fromkeys(usernames) if name]
    if not names:
        return {}

    stmt = select(ChatUser.user_id).where(
        or_(*(ChatUser.user_id.startswith(name, autoescape=True) for name in names))
    )
    result = await session.execute(stmt)

    wanted = set(names)
    found: dict[str, str] = {}
    for user_id in result.scalars().all():
        username = user_id.split("@", 1)[0] if "@" in user_id else user_id
        if username in wanted and username not in found:
            found[username] = user_id
    return found
