"""Chat bot client for the messaging capability.

``ChatService`` is the only messaging verb Reviewflow needs: send a text to
a chat or a direct-message identifier and learn whether it was delivered.
``ChatBotClient`` implements it for the VK Teams bot API. Sends never
raise; failures are logged and reported as False so a missing DM never
aborts a batch.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import httpx

from reviewflow.config import ChatConfig
from reviewflow.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class ChatService(Protocol):
    """Capabilities of the chat bot used by Reviewflow."""

    async def send_text(self, chat_id: str, text: str) -> bool:
        """Send a plain text message. Returns True if delivered."""
        ...


class ChatBotClient:
    """VK Teams bot API client implementing ``ChatService``."""

    def __init__(self, config: ChatConfig) -> None:
        self.config = config
        self.logger = get_logger(__name__)
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout_seconds)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def send_text(self, chat_id: str, text: str) -> bool:
        """Send a text message to a chat or user.

        Returns True if successful, False otherwise.
        """
        if not chat_id:
            self.logger.debug("chat_send_skipped", reason="empty chat id")
            return False

        if not self.config.enabled:
            self.logger.info("chat_disabled", chat_id=chat_id, text=text)
            return True

        try:
            client = await self._get_client()
            response = await client.get(
                f"{self.config.base_url.rstrip('/')}/messages/sendText",
                params={"token": self.config.token, "chatId": chat_id, "text": text},
            )
        except httpx.RequestError as e:
            self.logger.error("chat_send_error", chat_id=chat_id, error=str(e))
            return False

        if not response.is_success:
            self.logger.warning(
                "chat_send_failed",
                chat_id=chat_id,
                status_code=response.status_code,
                response_text=response.text[:200],
            )
            return False

        try:
            ok = bool(response.json().get("ok", False))
        except ValueError:
            ok = False

        if ok:
            self.logger.info("chat_message_sent", chat_id=chat_id)
        else:
            self.logger.warning(
                "chat_send_rejected",
                chat_id=chat_id,
                response_text=response.text[:200],
            )
        return ok
