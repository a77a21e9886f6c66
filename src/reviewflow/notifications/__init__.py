"""Chat notifications for Reviewflow.

This package provides:
- Message builders and mention resolution
- The review state deriver and its transition table
- The dedup engine that drains the MR action log
"""

from reviewflow.notifications.dedup import (
    NotificationDedupEngine,
    NotificationPassReport,
    SingleShotReport,
    StateChangeReport,
)
from reviewflow.notifications.review_state import (
    NOTIFICATION_TRANSITIONS,
    NotificationTarget,
    ReviewState,
    derive_review_state,
    notification_for,
)

__all__ = [
    "NOTIFICATION_TRANSITIONS",
    "NotificationDedupEngine",
    "NotificationPassReport",
    "NotificationTarget",
    "ReviewState",
    "SingleShotReport",
    "StateChangeReport",
    "derive_review_state",
    "notification_for",
]
