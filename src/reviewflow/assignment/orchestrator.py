"""Reviewer assignment pass.

Scans open MRs that lack enough reviewers, selects new ones, pushes the
full reviewer set to GitLab, announces the assignment in every subscribed
chat, persists the new reviewers locally, and DMs each of them.

The remote update happens before anything is written locally. If GitLab
rejects it the MR is left untouched and retried on the next pass, which
keeps a second pass over an unchanged backlog free of remote calls and
messages.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from uuid import UUID

import structlog
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from reviewflow.assignment.selection import ReviewerSelector
from reviewflow.config import AssignmentConfig
from reviewflow.database.models.base import utcnow
from reviewflow.database.models.merge_request import MergeRequest
from reviewflow.database.models.user import User
from reviewflow.database.queries.merge_request import (
    add_reviewers,
    get_assign_count,
    get_merge_request,
    get_subscribed_chats,
    has_release_label,
    is_blocked,
    list_assignable_merge_requests,
)
from reviewflow.integrations.chat import ChatService
from reviewflow.integrations.gitlab import CodeReviewService
from reviewflow.logging import bind_mr_context, clear_mr_context
from reviewflow.notifications import messages

logger = structlog.get_logger(__name__)

SessionFactory = Callable[[], AsyncSession]

DEFAULT_LOOKBACK = timedelta(days=2)


class AssignmentPassReport(BaseModel):
    """Outcome of one assignment pass.

    Attributes:
        examined: MRs returned by the candidate query.
        assigned: MRs that received at least one new reviewer.
        skipped: MRs needing nothing, excluded by label, or with no
            available reviewers.
        failed: MRs abandoned after a remote or database error.
    """

    examined: int = 0
    assigned: int = 0
    skipped: int = 0
    failed: int = 0


class AssignmentOrchestrator:
    """Runs reviewer assignment over the open MR backlog.

    Attributes:
        session_factory: Callable returning a new ``AsyncSession``.
        selector: Reviewer selection algorithm.
        code_review: Remote code-review service.
        chat: Chat service for announcements and DMs.
        start_time: Only MRs created after this instant are considered.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        selector: ReviewerSelector,
        code_review: CodeReviewService,
        chat: ChatService,
        config: AssignmentConfig | None = None,
    ) -> None:
        config = config or AssignmentConfig()
        self.session_factory = session_factory
        self.selector = selector
        self.code_review = code_review
        self.chat = chat
        self.start_time: datetime = config.start_time or (utcnow() - DEFAULT_LOOKBACK)
        self._logger = logger.bind(component="AssignmentOrchestrator")

    async def run_assignment_pass(self) -> AssignmentPassReport:
        """Assign reviewers to every MR that needs them.

        Returns:
            Counters describing the pass.
        """
        report = AssignmentPassReport()

        async with self.session_factory() as session:
            candidates = await list_assignable_merge_requests(session, self.start_time)
            mr_ids = [mr.id for mr in candidates]

        if not mr_ids:
            self._logger.debug("no_merge_requests_to_assign")
            return report

        for mr_id in mr_ids:
            report.examined += 1
            bind_mr_context(str(mr_id))
            try:
                assigned = await self._assign_merge_request(mr_id)
            except Exception:
                report.failed += 1
                self._logger.exception("assignment_failed", mr_id=str(mr_id))
                continue
            finally:
                clear_mr_context()

            if assigned:
                report.assigned += 1
            else:
                report.skipped += 1

        self._logger.info("assignment_pass_complete", **report.model_dump())
        return report

    async def _assign_merge_request(self, mr_id: UUID) -> bool:
        """Assign reviewers to a single MR in its own session.

        Returns:
            True when at least one reviewer was added.
        """
        async with self.session_factory() as session:
            mr = await get_merge_request(session, mr_id)
            if mr is None:
                return False
            bind_mr_context(str(mr.id), repository=mr.repository.name)

            if await has_release_label(session, mr):
                self._logger.debug("skipped_release_label", iid=mr.iid)
                return False
            if await is_blocked(session, mr):
                self._logger.debug("skipped_blocked", iid=mr.iid)
                return False

            min_count = await get_assign_count(session, mr.repository_id)
            existing = list(mr.reviewers)
            needed = min_count - len(existing)
            if needed <= 0:
                return False

            new_reviewers = await self.selector.select(
                session, mr, needed, exclude=[r.id for r in existing]
            )
            if not new_reviewers:
                self._logger.warning(
                    "no_available_reviewers",
                    iid=mr.iid,
                    needed=needed,
                )
                return False

            reviewer_ids = [r.gitlab_id for r in existing] + [r.gitlab_id for r in new_reviewers]
            await self.code_review.update_reviewers(
                mr.repository.gitlab_id, mr.iid, reviewer_ids
            )

            await self._announce(session, mr, new_reviewers, backfill=bool(existing))
            await add_reviewers(session, mr, new_reviewers)
            await session.commit()

            self._logger.info(
                "reviewers_assigned",
                iid=mr.iid,
                reviewers=[r.username for r in new_reviewers],
                backfill=bool(existing),
            )

            await self._send_review_requests(mr, new_reviewers)
            return True

    async def _announce(
        self,
        session: AsyncSession,
        mr: MergeRequest,
        new_reviewers: list[User],
        backfill: bool,
    ) -> None:
        mentions = await messages.resolve_mentions(session, [mr.author, *new_reviewers])
        if backfill:
            text = messages.build_backfill_message(mr, new_reviewers, mentions)
        else:
            text = messages.build_assignment_message(mr, new_reviewers, mentions)

        for chat in await get_subscribed_chats(session, mr.repository_id):
            if not await self.chat.send_text(chat.chat_id, text):
                self._logger.warning("chat_announcement_failed", chat_id=chat.chat_id)

    async def _send_review_requests(self, mr: MergeRequest, reviewers: list[User]) -> None:
        text = messages.build_review_request_dm(mr)
        for reviewer in reviewers:
            if not reviewer.email:
                self._logger.debug("dm_skipped_no_identity", username=reviewer.username)
                continue
            await self.chat.send_text(reviewer.email, text)
