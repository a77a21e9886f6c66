"""Merge request model for Reviewflow.

Defines the MergeRequest table, its label/reviewer/approver association
tables, and the MergeRequestState enum. Rows are created and refreshed by
the external sync process; the core only appends reviewers and updates
``last_notified_state``.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reviewflow.database.models.base import Base, TimestampMixin
from reviewflow.database.models.repository import Repository
from reviewflow.database.models.user import User

merge_request_labels = Table(
    "merge_request_labels",
    Base.metadata,
    Column("merge_request_id", ForeignKey("merge_requests.id", ondelete="CASCADE"), primary_key=True),
    Column("label_id", ForeignKey("labels.id", ondelete="CASCADE"), primary_key=True),
)

merge_request_reviewers = Table(
    "merge_request_reviewers",
    Base.metadata,
    Column("merge_request_id", ForeignKey("merge_requests.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)

merge_request_approvers = Table(
    "merge_request_approvers",
    Base.metadata,
    Column("merge_request_id", ForeignKey("merge_requests.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class MergeRequestState(enum.Enum):
    """Lifecycle state of a merge request as reported by GitLab.

    States:
        opened: Open and reviewable.
        merged: Merged into the target branch.
        closed: Closed without merging.
    """

    opened = "opened"
    merged = "merged"
    closed = "closed"


class Label(TimestampMixin, Base):
    """A GitLab label name."""

    __tablename__ = "labels"

    name: Mapped[str] = mapped_column(Text, unique=True, nullable=False)


class MergeRequest(TimestampMixin, Base):
    """A GitLab merge request mirrored into the datastore.

    Attributes:
        gitlab_id: Global GitLab MR ID.
        iid: Repository-scoped MR number.
        source_branch: Branch the change comes from.
        target_branch: Branch the change goes into.
        title: MR title.
        description: MR description.
        state: Lifecycle state.
        draft: Draft/WIP flag.
        web_url: MR web URL.
        gitlab_created_at: Creation time reported by GitLab.
        merged_at: Merge time, if merged.
        last_notified_state: Review state most recently announced to people.
            Empty string until the first announcement.
        repository: Owning repository.
        author: MR author.
        labels: Current label set.
        reviewers: Current reviewer set.
        approvers: Users who approved the MR.
    """

    __tablename__ = "merge_requests"
    __table_args__ = (UniqueConstraint("repository_id", "iid"),)

    gitlab_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    iid: Mapped[int] = mapped_column(Integer, nullable=False)
    repository_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
    )
    source_branch: Mapped[str | None] = mapped_column(Text, nullable=True)
    target_branch: Mapped[str | None] = mapped_column(Text, nullable=True)
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    state: Mapped[MergeRequestState] = mapped_column(
        default=MergeRequestState.opened,
        nullable=False,
    )
    draft: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    web_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    gitlab_created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
    )
    merged_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    last_notified_state: Mapped[str] = mapped_column(
        Text,
        default="",
        server_default="",
        nullable=False,
    )

    # Relationships
    repository: Mapped[Repository] = relationship("Repository", lazy="selectin")
    author: Mapped[User] = relationship("User", lazy="selectin")
    labels: Mapped[list[Label]] = relationship(
        "Label",
        secondary=merge_request_labels,
        lazy="selectin",
    )
    reviewers: Mapped[list[User]] = relationship(
        "User",
        secondary=merge_request_reviewers,
        lazy="selectin",
    )
    approvers: Mapped[list[User]] = relationship(
        "User",
        secondary=merge_request_approvers,
        lazy="selectin",
    )

    @property
    def label_names(self) -> list[str]:
        """Names of the labels currently on the MR."""
        return [label.name for label in self.labels]
