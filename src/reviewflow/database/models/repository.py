"""Repository and chat subscription models for Reviewflow.

A repository is "watched" once at least one chat subscribes to it; only
watched repositories take part in reviewer assignment.
"""

from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reviewflow.database.models.base import Base, TimestampMixin


class Repository(TimestampMixin, Base):
    """A GitLab project tracked by Reviewflow.

    Attributes:
        gitlab_id: GitLab project ID (unique).
        name: Project name.
        web_url: Project web URL.
    """

    __tablename__ = "repositories"

    gitlab_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    web_url: Mapped[str | None] = mapped_column(Text, nullable=True)


class Chat(TimestampMixin, Base):
    """A chat the bot can post into.

    Attributes:
        chat_id: Chat-bot identifier of the chat.
        title: Human-readable chat title.
    """

    __tablename__ = "chats"

    chat_id: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)


class ChatUser(TimestampMixin, Base):
    """A chat-bot user seen by the bot.

    Used to build mentions for GitLab users without an email: the
    ``user_id`` usually looks like ``<username>@<domain>``.
    """

    __tablename__ = "chat_users"

    user_id: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    first_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_name: Mapped[str | None] = mapped_column(Text, nullable=True)


class RepositorySubscription(TimestampMixin, Base):
    """Links a chat to a repository for assignment announcements."""

    __tablename__ = "repository_subscriptions"
    __table_args__ = (UniqueConstraint("repository_id", "chat_ref_id"),)

    repository_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    chat_ref_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("chats.id", ondelete="CASCADE"),
        nullable=False,
    )

    chat: Mapped[Chat] = relationship("Chat", lazy="selectin")
