"""Review state machine for merge requests.

An open MR is either waiting on reviewers (``on_review``) or waiting on its
author (``on_fixes``). The state is derived from comments, never stored as
truth; what is stored is the state most recently announced to people
(``MergeRequest.last_notified_state``), which starts out ``unset``.

Transitions are observed, not forced. ``NOTIFICATION_TRANSITIONS`` lists
every (announced, derived) pair and who, if anyone, must be told.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from typing import Protocol

import structlog

logger = structlog.get_logger(__name__)


class ReviewState(str, enum.Enum):
    """Review cycle state of an open merge request.

    States:
        unset: Nothing announced yet (persisted as an empty string).
        on_review: No unresolved resolvable comments; reviewers are up.
        on_fixes: At least one unresolved resolvable comment; author is up.
    """

    unset = ""
    on_review = "on_review"
    on_fixes = "on_fixes"

    @classmethod
    def from_persisted(cls, value: str | None) -> ReviewState:
        """Parse a stored ``last_notified_state`` value.

        Unknown values are treated as ``unset``.
        """
        if not value:
            return cls.unset
        try:
            return cls(value)
        except ValueError:
            logger.warning("unknown_notified_state", value=value)
            return cls.unset


class NotificationTarget(str, enum.Enum):
    """Who must be notified for an observed transition."""

    none = "none"
    author_needs_fixes = "author_needs_fixes"
    reviewers_ready_for_review = "reviewers_ready_for_review"


# Authoritative transition table: (last announced, derived now) -> recipients
NOTIFICATION_TRANSITIONS: dict[tuple[ReviewState, ReviewState], NotificationTarget] = {
    (ReviewState.unset, ReviewState.unset): NotificationTarget.none,
    # The initial assignment message already announced the review
    (ReviewState.unset, ReviewState.on_review): NotificationTarget.none,
    (ReviewState.unset, ReviewState.on_fixes): NotificationTarget.author_needs_fixes,
    (ReviewState.on_review, ReviewState.unset): NotificationTarget.none,
    (ReviewState.on_review, ReviewState.on_review): NotificationTarget.none,
    (ReviewState.on_review, ReviewState.on_fixes): NotificationTarget.author_needs_fixes,
    (ReviewState.on_fixes, ReviewState.unset): NotificationTarget.none,
    (ReviewState.on_fixes, ReviewState.on_review): NotificationTarget.reviewers_ready_for_review,
    (ReviewState.on_fixes, ReviewState.on_fixes): NotificationTarget.none,
}


class ResolvableComment(Protocol):
    resolvable: bool
    resolved: bool


def derive_review_state(comments: Iterable[ResolvableComment]) -> ReviewState:
    """Derive the review state from an MR's comments.

    Returns ``on_fixes`` if any comment is resolvable and unresolved,
    ``on_review`` otherwise.
    """
    if any(c.resolvable and not c.resolved for c in comments):
        return ReviewState.on_fixes
    return ReviewState.on_review


def notification_for(previous: ReviewState, current: ReviewState) -> NotificationTarget:
    """Look up who must be notified for a transition."""
    return NOTIFICATION_TRANSITIONS[(previous, current)]
