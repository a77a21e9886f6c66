"""Database query functions for Reviewflow.

This module provides async query functions for all database entities:
- Workload counts over recent reviewer assignments
- Reviewer configuration (label reviewers, default pool, release managers)
- Merge request selection, exclusion checks and reviewer persistence
- MR action log draining and notified marking
- Comment and chat user lookups
"""

from reviewflow.database.queries.action import (
    get_action,
    list_unnotified_actions,
    mark_actions_notified,
    mark_stale_actions_notified,
)
from reviewflow.database.queries.chat_user import find_chat_user_ids
from reviewflow.database.queries.comment import list_comments
from reviewflow.database.queries.merge_request import (
    add_reviewers,
    get_assign_count,
    get_merge_request,
    get_subscribed_chats,
    has_release_label,
    is_blocked,
    list_assignable_merge_requests,
    set_last_notified_state,
)
from reviewflow.database.queries.reviewers import (
    get_eligible_users,
    get_label_reviewers,
    get_possible_reviewer_ids,
    get_release_managers,
)
from reviewflow.database.queries.workload import get_recent_review_counts

__all__ = [
    # Action log queries
    "get_action",
    "list_unnotified_actions",
    "mark_actions_notified",
    "mark_stale_actions_notified",
    # Chat user queries
    "find_chat_user_ids",
    # Comment queries
    "list_comments",
    # Merge request queries
    "add_reviewers",
    "get_assign_count",
    "get_merge_request",
    "get_subscribed_chats",
    "has_release_label",
    "is_blocked",
    "list_assignable_merge_requests",
    "set_last_notified_state",
    # Reviewer configuration queries
    "get_eligible_users",
    "get_label_reviewers",
    "get_possible_reviewer_ids",
    "get_release_managers",
    # Workload queries
    "get_recent_review_counts",
]
