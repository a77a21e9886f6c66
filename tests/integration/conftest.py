"""Pytest fixtures for integration tests.

Provides async database fixtures backed by SQLite (aiosqlite), a data
factory for seeding users, repositories, merge requests and reviewer
configuration, and in-memory fakes for the GitLab and chat services.

The database lives in a per-test file rather than ``:memory:`` because
the assignment and notification passes open their own sessions; with a
file every session gets its own connection and sees only committed data.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncGenerator, Sequence

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from reviewflow.database.models import (
    Base,
    BlockLabel,
    Chat,
    ChatUser,
    Label,
    LabelReviewer,
    MergeRequest,
    MergeRequestState,
    MRAction,
    MRActionType,
    MRComment,
    PossibleReviewer,
    ReleaseLabel,
    ReleaseManager,
    Repository,
    RepositorySLA,
    RepositorySubscription,
    User,
)
from reviewflow.database.models.base import utcnow
from reviewflow.integrations.gitlab import GitLabAPIError


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a file-backed SQLite async engine with all tables.

    Yields:
        Configured AsyncEngine instance.
    """
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'reviewflow.db'}",
        echo=False,
    )

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(
    engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the test engine."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a new async database session for each test.

    Yields:
        AsyncSession instance for the test.
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


class DataFactory:
    """Seeds rows for integration tests. Rows are flushed, not committed."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._gitlab_ids = itertools.count(1000)
        self._labels: dict[str, Label] = {}

    async def _add(self, obj: Any) -> Any:
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def user(
        self,
        username: str,
        email: str | None = None,
        on_vacation: bool = False,
    ) -> User:
        return await self._add(
            User(
                gitlab_id=next(self._gitlab_ids),
                username=username,
                name=username.title(),
                email=email,
                on_vacation=on_vacation,
            )
        )

    async def repository(
        self,
        name: str = "backend",
        chat_id: str | None = "team-chat",
    ) -> Repository:
        """Create a repository, subscribed to ``chat_id`` unless it is None."""
        repo = await self._add(
            Repository(
                gitlab_id=next(self._gitlab_ids),
                name=name,
                web_url=f"https://gitlab.example.com/acme/{name}",
            )
        )
        if chat_id is not None:
            await self.subscribe(repo, chat_id)
        return repo

    async def subscribe(self, repo: Repository, chat_id: str) -> Chat:
        chat = await self._add(Chat(chat_id=chat_id, title=chat_id))
        await self._add(RepositorySubscription(repository_id=repo.id, chat_ref_id=chat.id))
        return chat

    async def label(self, name: str) -> Label:
        if name not in self._labels:
            self._labels[name] = await self._add(Label(name=name))
        return self._labels[name]

    async def merge_request(
        self,
        repo: Repository,
        author: User,
        title: str = "Add feature",
        labels: Sequence[str] = (),
        reviewers: Sequence[User] = (),
        approvers: Sequence[User] = (),
        created_at: datetime | None = None,
        state: MergeRequestState = MergeRequestState.opened,
        draft: bool = False,
        last_notified_state: str = "",
    ) -> MergeRequest:
        iid = next(self._gitlab_ids)
        mr = MergeRequest(
            gitlab_id=next(self._gitlab_ids),
            iid=iid,
            repository_id=repo.id,
            author_id=author.id,
            title=title,
            state=state,
            draft=draft,
            web_url=f"{repo.web_url}/-/merge_requests/{iid}",
            gitlab_created_at=created_at or utcnow(),
            last_notified_state=last_notified_state,
            labels=[await self.label(name) for name in labels],
            reviewers=list(reviewers),
            approvers=list(approvers),
        )
        return await self._add(mr)

    async def label_reviewers(self, repo: Repository, label: str, *users: User) -> None:
        for user in users:
            await self._add(LabelReviewer(repository_id=repo.id, label_name=label, user_id=user.id))

    async def possible_reviewers(self, repo: Repository, *users: User) -> None:
        for user in users:
            await self._add(PossibleReviewer(repository_id=repo.id, user_id=user.id))

    async def sla(self, repo: Repository, assign_count: int) -> RepositorySLA:
        return await self._add(RepositorySLA(repository_id=repo.id, assign_count=assign_count))

    async def block_label(self, repo: Repository, label: str) -> BlockLabel:
        return await self._add(BlockLabel(repository_id=repo.id, label_name=label))

    async def release_label(self, repo: Repository, label: str) -> ReleaseLabel:
        return await self._add(ReleaseLabel(repository_id=repo.id, label_name=label))

    async def release_manager(self, repo: Repository, user: User) -> ReleaseManager:
        return await self._add(ReleaseManager(repository_id=repo.id, user_id=user.id))

    async def chat_user(self, user_id: str) -> ChatUser:
        return await self._add(ChatUser(user_id=user_id))

    async def comment(
        self,
        mr: MergeRequest,
        author: User,
        resolvable: bool = True,
        resolved: bool = False,
        created_at: datetime | None = None,
    ) -> MRComment:
        return await self._add(
            MRComment(
                merge_request_id=mr.id,
                gitlab_note_id=next(self._gitlab_ids),
                author_id=author.id,
                body="Please fix",
                resolvable=resolvable,
                resolved=resolved,
                gitlab_created_at=created_at or utcnow(),
            )
        )

    async def action(
        self,
        mr: MergeRequest,
        action_type: MRActionType,
        timestamp: datetime | None = None,
        target_user: User | None = None,
        notified: bool = False,
    ) -> MRAction:
        return await self._add(
            MRAction(
                merge_request_id=mr.id,
                action_type=action_type,
                target_user_id=target_user.id if target_user else None,
                timestamp=timestamp or utcnow(),
                notified=notified,
            )
        )


@pytest_asyncio.fixture
async def factory(db_session: AsyncSession) -> DataFactory:
    """Data factory writing through the test session."""
    return DataFactory(db_session)


@dataclass
class FakeCodeReview:
    """Records reviewer updates instead of calling GitLab."""

    fail: bool = False
    updates: list[tuple[int, int, list[int]]] = field(default_factory=list)

    async def list_merge_requests(self, project_id, state=None, labels=None, target_branch=None):
        return []

    async def get_merge_request(self, project_id: int, iid: int) -> dict[str, Any]:
        return {"project_id": project_id, "iid": iid}

    async def update_reviewers(self, project_id: int, iid: int, reviewer_ids) -> dict[str, Any]:
        if self.fail:
            raise GitLabAPIError("GitLab API error 500", status_code=500)
        self.updates.append((project_id, iid, list(reviewer_ids)))
        return {"iid": iid}


@dataclass
class FakeChat:
    """Records sent messages instead of calling the bot API."""

    delivered: bool = True
    sent: list[tuple[str, str]] = field(default_factory=list)

    async def send_text(self, chat_id: str, text: str) -> bool:
        self.sent.append((chat_id, text))
        return self.delivered

    def to(self, chat_id: str) -> list[str]:
        return [text for target, text in self.sent if target == chat_id]


@pytest.fixture
def code_review() -> FakeCodeReview:
    return FakeCodeReview()


@pytest.fixture
def chat() -> FakeChat:
    return FakeChat()
