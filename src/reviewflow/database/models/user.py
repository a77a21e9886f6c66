"""User model for Reviewflow.

Defines the GitLab user table. Users are synced externally; the core only
reads them, including the ``on_vacation`` flag that removes a user from
every candidate pool.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from reviewflow.database.models.base import Base, TimestampMixin


class User(TimestampMixin, Base):
    """A GitLab user known to Reviewflow.

    Attributes:
        gitlab_id: GitLab user ID (unique).
        username: GitLab username.
        name: Display name.
        email: Email address; doubles as the chat-bot DM identifier.
        on_vacation: Excluded from reviewer assignment while True.
    """

    __tablename__ = "users"

    gitlab_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    username: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    email: Mapped[str | None] = mapped_column(Text, nullable=True, index=True)
    on_vacation: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"User(username={self.username!r}, gitlab_id={self.gitlab_id})"
