"""Merge request activity models for Reviewflow.

Defines MRComment (synced discussion notes, read-only to the core) and
MRAction (append-only event log whose ``notified`` flag is the only column
the core ever writes).
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reviewflow.database.models.base import Base, TimestampMixin
from reviewflow.database.models.merge_request import MergeRequest
from reviewflow.database.models.user import User


class MRActionType(enum.Enum):
    """Kinds of events recorded in the MR action log."""

    reviewer_assigned = "reviewer_assigned"
    reviewer_removed = "reviewer_removed"
    comment_added = "comment_added"
    comment_resolved = "comment_resolved"
    approved = "approved"
    unapproved = "unapproved"
    fully_approved = "fully_approved"
    draft_toggled = "draft_toggled"
    merged = "merged"
    closed = "closed"


class MRComment(TimestampMixin, Base):
    """A discussion note on a merge request.

    Attributes:
        gitlab_note_id: GitLab note ID (unique).
        gitlab_discussion_id: Discussion (thread) the note belongs to.
        resolvable: Whether the note can be resolved.
        resolved: Whether the note has been resolved.
        resolved_at: Resolution time reported by GitLab.
        gitlab_created_at: Creation time reported by GitLab.
    """

    __tablename__ = "mr_comments"

    merge_request_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("merge_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    gitlab_note_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    gitlab_discussion_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    author_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    resolvable: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    resolved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    resolved_by_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    gitlab_created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )


class MRAction(TimestampMixin, Base):
    """An entry of the append-only merge request event log.

    Attributes:
        merge_request_id: MR the event happened on.
        action_type: Kind of event.
        actor_id: User who caused the event (None for system events).
        target_user_id: User the event is about (e.g. removed reviewer).
        timestamp: When the event happened.
        notified: Set once the event has been handled; never reset.
        metadata_json: Free-form JSON context written by the sync process.
    """

    __tablename__ = "mr_actions"

    merge_request_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("merge_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action_type: Mapped[MRActionType] = mapped_column(
        Enum(MRActionType, name="mr_action_type", native_enum=False, length=50),
        nullable=False,
        index=True,
    )
    actor_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    target_user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    notified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        index=True,
    )
    metadata_json: Mapped[str | None] = mapped_column("metadata", Text, nullable=True)

    # Relationships
    merge_request: Mapped[MergeRequest] = relationship("MergeRequest", lazy="selectin")
    target_user: Mapped[User | None] = relationship(
        "User",
        foreign_keys=[target_user_id],
        lazy="selectin",
    )
