"""SQLAlchemy ORM models for Reviewflow.

This module defines the database schema: repositories and chat
subscriptions, users, merge requests with their labels, reviewers and
approvers, per-repository review configuration, and MR activity
(comments and the action event log).

All models use SQLAlchemy 2.0 declarative style with Mapped[] type annotations.
"""

from reviewflow.database.models.activity import MRAction, MRActionType, MRComment
from reviewflow.database.models.base import Base, TimestampMixin, utcnow
from reviewflow.database.models.merge_request import (
    Label,
    MergeRequest,
    MergeRequestState,
    merge_request_approvers,
    merge_request_labels,
    merge_request_reviewers,
)
from reviewflow.database.models.repository import (
    Chat,
    ChatUser,
    Repository,
    RepositorySubscription,
)
from reviewflow.database.models.review_config import (
    DEFAULT_ASSIGN_COUNT,
    BlockLabel,
    LabelReviewer,
    PossibleReviewer,
    ReleaseLabel,
    ReleaseManager,
    RepositorySLA,
)
from reviewflow.database.models.user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "utcnow",
    "Repository",
    "Chat",
    "ChatUser",
    "RepositorySubscription",
    "User",
    "Label",
    "MergeRequest",
    "MergeRequestState",
    "merge_request_labels",
    "merge_request_reviewers",
    "merge_request_approvers",
    "DEFAULT_ASSIGN_COUNT",
    "LabelReviewer",
    "PossibleReviewer",
    "RepositorySLA",
    "BlockLabel",
    "ReleaseLabel",
    "ReleaseManager",
    "MRComment",
    "MRAction",
    "MRActionType",
]
