"""Per-repository review configuration models for Reviewflow.

These tables are maintained by the chat command front end and are read-only
to the assignment engine:

- LabelReviewer: reviewers pre-assigned to a label, taking priority over
  the default pool.
- PossibleReviewer: the repository-wide default pool.
- RepositorySLA: minimum number of simultaneous reviewers.
- BlockLabel / ReleaseLabel: labels that exclude an MR from assignment.
- ReleaseManager: users told when an MR becomes fully approved.
"""

from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reviewflow.database.models.base import Base, TimestampMixin
from reviewflow.database.models.user import User

DEFAULT_ASSIGN_COUNT = 1


class LabelReviewer(TimestampMixin, Base):
    """Assigns a user to a label within a repository."""

    __tablename__ = "label_reviewers"
    __table_args__ = (UniqueConstraint("repository_id", "label_name", "user_id"),)

    repository_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"),
        nullable=False,
    )
    label_name: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    user: Mapped[User] = relationship("User", lazy="selectin")


class PossibleReviewer(TimestampMixin, Base):
    """Places a user in a repository's default reviewer pool."""

    __tablename__ = "possible_reviewers"
    __table_args__ = (UniqueConstraint("repository_id", "user_id"),)

    repository_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    user: Mapped[User] = relationship("User", lazy="selectin")


class RepositorySLA(TimestampMixin, Base):
    """Review SLA settings of a repository.

    Attributes:
        assign_count: Minimum number of simultaneous reviewers.
    """

    __tablename__ = "repository_slas"

    repository_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    assign_count: Mapped[int] = mapped_column(
        Integer,
        default=DEFAULT_ASSIGN_COUNT,
        nullable=False,
    )


class BlockLabel(TimestampMixin, Base):
    """A label that marks MRs as blocked."""

    __tablename__ = "block_labels"
    __table_args__ = (UniqueConstraint("repository_id", "label_name"),)

    repository_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"),
        nullable=False,
    )
    label_name: Mapped[str] = mapped_column(Text, nullable=False)


class ReleaseLabel(TimestampMixin, Base):
    """A label that marks release MRs."""

    __tablename__ = "release_labels"
    __table_args__ = (UniqueConstraint("repository_id", "label_name"),)

    repository_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"),
        nullable=False,
    )
    label_name: Mapped[str] = mapped_column(Text, nullable=False)


class ReleaseManager(TimestampMixin, Base):
    """A user responsible for releasing a repository."""

    __tablename__ = "release_managers"
    __table_args__ = (UniqueConstraint("repository_id", "user_id"),)

    repository_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    user: Mapped[User] = relationship("User", lazy="selectin")
