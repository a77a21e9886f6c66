"""Notification dedup engine for Reviewflow.

Drains the MR action log and turns it into chat notifications, sending a
message only when something people care about actually changed:

- Comment actions (``comment_added``/``comment_resolved``) drive the review
  state machine in ``review_state``. The derived state is compared with the
  MR's ``last_notified_state`` and a message goes out only on a real
  transition. All actions of the MR in the batch are marked notified
  whether or not a message was sent.
- Single-shot actions (``reviewer_removed``, ``fully_approved``,
  ``merged``) are each announced once and then marked notified.
- A staleness sweep marks old actions notified without evaluating them,
  bounding the cost of catching up after an outage.

Every MR or action is its own unit of work: a failure is logged and the
item is retried on the next pass.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import timedelta
from uuid import UUID

import structlog
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from reviewflow.config import NotificationConfig
from reviewflow.database.models.activity import MRAction, MRActionType
from reviewflow.database.models.base import utcnow
from reviewflow.database.models.merge_request import MergeRequest, MergeRequestState
from reviewflow.database.models.user import User
from reviewflow.database.queries.action import (
    get_action,
    list_unnotified_actions,
    mark_actions_notified,
    mark_stale_actions_notified,
)
from reviewflow.database.queries.comment import list_comments
from reviewflow.database.queries.merge_request import get_merge_request, set_last_notified_state
from reviewflow.database.queries.reviewers import get_release_managers
from reviewflow.integrations.chat import ChatService
from reviewflow.logging import bind_mr_context, clear_mr_context
from reviewflow.notifications import messages
from reviewflow.notifications.review_state import (
    NotificationTarget,
    ReviewState,
    derive_review_state,
    notification_for,
)

logger = structlog.get_logger(__name__)

SessionFactory = Callable[[], AsyncSession]

STATE_CHANGE_ACTIONS: tuple[MRActionType, ...] = (
    MRActionType.comment_added,
    MRActionType.comment_resolved,
)

SINGLE_SHOT_ACTIONS: tuple[MRActionType, ...] = (
    MRActionType.reviewer_removed,
    MRActionType.fully_approved,
    MRActionType.merged,
)


class StateChangeReport(BaseModel):
    """Outcome of one state-change drain.

    Attributes:
        merge_requests: MRs with pending comment actions.
        transitions: MRs whose announced state changed.
        messages_sent: Direct messages delivered.
        closed_skipped: MRs no longer open whose actions were discarded.
        failed: MRs left for the next pass after an error.
    """

    merge_requests: int = 0
    transitions: int = 0
    messages_sent: int = 0
    closed_skipped: int = 0
    failed: int = 0


class SingleShotReport(BaseModel):
    """Outcome of one single-shot drain."""

    actions: int = 0
    messages_sent: int = 0
    failed: int = 0


class NotificationPassReport(BaseModel):
    """Outcome of a full notification pass."""

    state_changes: StateChangeReport
    single_shot: SingleShotReport
    stale_swept: int = 0


class NotificationDedupEngine:
    """Turns unnotified MR actions into transition-only notifications.

    Attributes:
        session_factory: Callable returning a new ``AsyncSession``.
        chat: Chat service used for direct messages.
        config: Notification windows and limits.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        chat: ChatService,
        config: NotificationConfig | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.chat = chat
        self.config = config or NotificationConfig()
        self._logger = logger.bind(component="NotificationDedupEngine")

    async def run_notification_pass(self) -> NotificationPassReport:
        """Run the state-change drain, the single-shot drain and the sweep."""
        state_changes = await self.process_state_changes()
        single_shot = await self.process_single_shot_actions()
        swept = await self.sweep_stale_actions()
        return NotificationPassReport(
            state_changes=state_changes,
            single_shot=single_shot,
            stale_swept=swept,
        )

    # ------------------------------------------------------------------
    # Review state machine
    # ------------------------------------------------------------------

    async def process_state_changes(self) -> StateChangeReport:
        """Evaluate MRs with unnotified comment actions.

        Returns:
            Counters describing the drain.
        """
        report = StateChangeReport()
        newer_than = utcnow() - timedelta(minutes=self.config.state_change_window_minutes)

        async with self.session_factory() as session:
            actions = await list_unnotified_actions(
                session,
                STATE_CHANGE_ACTIONS,
                newer_than=newer_than,
                limit=self.config.batch_limit,
            )

        batches: dict[UUID, list[UUID]] = {}
        for action in actions:
            batches.setdefault(action.merge_request_id, []).append(action.id)

        for mr_id, action_ids in batches.items():
            report.merge_requests += 1
            bind_mr_context(str(mr_id))
            try:
                await self._process_mr_batch(mr_id, action_ids, report)
            except Exception:
                report.failed += 1
                self._logger.exception("state_change_processing_failed", mr_id=str(mr_id))
            finally:
                clear_mr_context()

        if batches:
            self._logger.info("state_changes_processed", **report.model_dump())
        return report

    async def _process_mr_batch(
        self,
        mr_id: UUID,
        action_ids: list[UUID],
        report: StateChangeReport,
    ) -> None:
        async with self.session_factory() as session:
            mr = await get_merge_request(session, mr_id)

            if mr is None or mr.state != MergeRequestState.opened:
                await mark_actions_notified(session, action_ids)
                await session.commit()
                report.closed_skipped += 1
                self._logger.debug(
                    "closed_mr_actions_discarded",
                    mr_id=str(mr_id),
                    actions=len(action_ids),
                )
                return

            comments = await list_comments(session, mr.id)
            current = derive_review_state(comments)
            previous = ReviewState.from_persisted(mr.last_notified_state)
            target = notification_for(previous, current)

            if target is NotificationTarget.author_needs_fixes:
                if await self._send_dm(mr.author, messages.build_needs_fixes_dm(mr)):
                    report.messages_sent += 1
            elif target is NotificationTarget.reviewers_ready_for_review:
                for reviewer in self._pending_reviewers(mr):
                    if await self._send_dm(reviewer, messages.build_ready_for_review_dm(mr)):
                        report.messages_sent += 1

            if current is not previous:
                await set_last_notified_state(session, mr.id, current.value)
                report.transitions += 1
                self._logger.info(
                    "review_state_transition",
                    mr_id=str(mr.id),
                    from_state=previous.value or "unset",
                    to_state=current.value,
                    notified=target.value,
                )

            await mark_actions_notified(session, action_ids)
            await session.commit()

    @staticmethod
    def _pending_reviewers(mr: MergeRequest) -> list[User]:
        """Reviewers who have not approved the MR yet."""
        approver_ids = {approver.id for approver in mr.approvers}
        return [r for r in mr.reviewers if r.id not in approver_ids]

    # ------------------------------------------------------------------
    # Single-shot actions
    # ------------------------------------------------------------------

    async def process_single_shot_actions(self) -> SingleShotReport:
        """Announce reviewer removals, full approvals and merges once each."""
        report = SingleShotReport()

        async with self.session_factory() as session:
            actions = await list_unnotified_actions(
                session,
                SINGLE_SHOT_ACTIONS,
                limit=self.config.batch_limit,
            )
        action_ids = [action.id for action in actions]

        for action_id in action_ids:
            report.actions += 1
            try:
                report.messages_sent += await self._process_single_shot(action_id)
            except Exception:
                report.failed += 1
                self._logger.exception("single_shot_processing_failed", action_id=str(action_id))

        if action_ids:
            self._logger.info("single_shot_actions_processed", **report.model_dump())
        return report

    async def _process_single_shot(self, action_id: UUID) -> int:
        async with self.session_factory() as session:
            action = await get_action(session, action_id)
            if action is None or action.notified:
                return 0

            sent = 0
            mr = action.merge_request
            if action.action_type is MRActionType.reviewer_removed:
                sent += await self._send_dm(action.target_user, messages.build_reviewer_removed_dm(mr))
            elif action.action_type is MRActionType.fully_approved:
                sent += await self._notify_fully_approved(session, action)
            elif action.action_type is MRActionType.merged:
                sent += await self._send_dm(mr.author, messages.build_merged_dm(mr))

            await mark_actions_notified(session, [action_id])
            await session.commit()
            return sent

    async def _notify_fully_approved(self, session: AsyncSession, action: MRAction) -> int:
        mr = action.merge_request
        # Looked up before any DM so a failed lookup leaves nothing half-sent
        managers = await get_release_managers(session, mr.repository_id)

        sent = int(await self._send_dm(mr.author, messages.build_fully_approved_dm(mr)))
        text = messages.build_ready_for_release_dm(mr)
        for manager in managers:
            sent += await self._send_dm(manager, text)
        return sent

    # ------------------------------------------------------------------
    # Staleness sweep
    # ------------------------------------------------------------------

    async def sweep_stale_actions(self) -> int:
        """Mark actions older than the stale cutoff as notified.

        Returns:
            Number of actions swept.
        """
        older_than = utcnow() - timedelta(minutes=self.config.stale_cutoff_minutes)
        async with self.session_factory() as session:
            swept = await mark_stale_actions_notified(session, older_than)
            await session.commit()
        return swept

    async def _send_dm(self, user: User | None, text: str) -> bool:
        """Send a direct message, skipping users without an identity."""
        if user is None or not user.email:
            self._logger.debug(
                "dm_skipped_no_identity",
                username=user.username if user is not None else None,
            )
            return False
        return await self.chat.send_text(user.email, text)
