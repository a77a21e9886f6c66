"""Integration modules for external systems."""

from __future__ import annotations

from reviewflow.integrations.chat import ChatBotClient, ChatService
from reviewflow.integrations.gitlab import CodeReviewService, GitLabAPIError, GitLabClient

__all__ = [
    "ChatBotClient",
    "ChatService",
    "CodeReviewService",
    "GitLabAPIError",
    "GitLabClient",
]
