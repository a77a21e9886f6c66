"""Chat message formatting for Reviewflow.

Builds the texts sent to chats and to individual users, and resolves how a
GitLab user should be mentioned: by email, else by a chat user whose ID
starts with the GitLab username, else by the plain username.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from reviewflow.database.models.merge_request import MergeRequest
from reviewflow.database.models.user import User
from reviewflow.database.queries.chat_user import find_chat_user_ids


def sanitize_title(title: str) -> str:
    """Collapse newlines and repeated whitespace in an MR title."""
    return " ".join(title.split())


async def resolve_mentions(
    session: AsyncSession,
    users: Iterable[User],
) -> dict[UUID, str]:
    """Resolve a mention identifier for each user with a single lookup.

    Args:
        session: Active async database session.
        users: Users to resolve.

    Returns:
        Mapping of user ID to mention identifier.
    """
    unique = list({user.id: user for user in users}.values())
    mentions: dict[UUID, str] = {}
    without_email: list[User] = []
    for user in unique:
        if user.email:
            mentions[user.id] = user.email
        else:
            without_email.append(user)

    if without_email:
        chat_ids = await find_chat_user_ids(session, (u.username for u in without_email))
        for user in without_email:
            mentions[user.id] = chat_ids.get(user.username, user.username)

    return mentions


def format_mentions(users: Sequence[User], mentions: dict[UUID, str]) -> str:
    """Render ``@[...]`` mentions joined by commas."""
    return ", ".join(f"@[{mentions.get(u.id, u.username)}]" for u in users)


def _reviewer_word(count: int) -> str:
    return "reviewer" if count == 1 else "reviewers"


def _header(mr: MergeRequest) -> str:
    return f"{sanitize_title(mr.title)}\n{mr.web_url or ''}"


def build_assignment_message(
    mr: MergeRequest,
    new_reviewers: Sequence[User],
    mentions: dict[UUID, str],
) -> str:
    """Chat announcement for an MR that received its first reviewers."""
    author = mentions.get(mr.author.id, mr.author.username)
    return (
        f"{_header(mr)}\n"
        f"by @[{author}] {_reviewer_word(len(new_reviewers))}: "
        f"{format_mentions(new_reviewers, mentions)}"
    )


def build_backfill_message(
    mr: MergeRequest,
    new_reviewers: Sequence[User],
    mentions: dict[UUID, str],
) -> str:
    """Chat announcement for reviewers added to an MR that already had some."""
    return (
        f"{_header(mr)}\n"
        f"Additional {_reviewer_word(len(new_reviewers))}: "
        f"{format_mentions(new_reviewers, mentions)}"
    )


def build_review_request_dm(mr: MergeRequest) -> str:
    return f"New MR for review [{mr.repository.name}]:\n{_header(mr)}"


def build_needs_fixes_dm(mr: MergeRequest) -> str:
    return (
        f"Your MR needs fixes [{mr.repository.name}]:\n{_header(mr)}\n"
        "Reviewer left comments"
    )


def build_ready_for_review_dm(mr: MergeRequest) -> str:
    return f"MR ready for re-review [{mr.repository.name}]:\n{_header(mr)}"


def build_reviewer_removed_dm(mr: MergeRequest) -> str:
    return f"You were removed from review [{mr.repository.name}]:\n{_header(mr)}"


def build_fully_approved_dm(mr: MergeRequest) -> str:
    return f"Your MR is fully approved [{mr.repository.name}]:\n{_header(mr)}"


def build_ready_for_release_dm(mr: MergeRequest) -> str:
    return f"MR ready for release [{mr.repository.name}]:\n{_header(mr)}"


def build_merged_dm(mr: MergeRequest) -> str:
    return f"Your MR was merged [{mr.repository.name}]:\n{_header(mr)}"
