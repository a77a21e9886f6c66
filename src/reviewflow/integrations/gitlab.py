"""GitLab API client for the code-review service capability.

The assignment engine only needs a handful of verbs from GitLab, described
by the ``CodeReviewService`` protocol so tests can substitute an in-memory
double. ``GitLabClient`` implements it over the GitLab v4 REST API.

The client performs HTTP calls, error translation and pagination only; it
makes no business decisions. Errors are raised as ``GitLabAPIError``.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

import httpx

from reviewflow.config import GitLabConfig
from reviewflow.logging import get_logger

logger = get_logger(__name__)


class GitLabAPIError(Exception):
    """Raised when a GitLab API call fails.

    Attributes:
        status_code: HTTP status code, or None for transport errors.
        detail: Response body excerpt or transport error message.
    """

    def __init__(self, message: str, status_code: int | None = None, detail: str = ""):
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


@runtime_checkable
class CodeReviewService(Protocol):
    """Capabilities of the remote code-review system used by Reviewflow."""

    async def list_merge_requests(
        self,
        project_id: int,
        state: str | None = None,
        labels: Sequence[str] | None = None,
        target_branch: str | None = None,
    ) -> list[dict[str, Any]]:
        """List merge requests of a project, following pagination."""
        ...

    async def get_merge_request(self, project_id: int, iid: int) -> dict[str, Any]:
        """Get a single merge request."""
        ...

    async def update_reviewers(
        self,
        project_id: int,
        iid: int,
        reviewer_ids: Sequence[int],
    ) -> dict[str, Any]:
        """Replace the reviewer set of a merge request."""
        ...


class GitLabClient:
    """GitLab v4 API client implementing ``CodeReviewService``."""

    def __init__(
        self,
        config: GitLabConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Args:
            config: GitLab configuration (base URL, token, timeouts).
            http_client: Optional shared client; one is created lazily
                otherwise and closed by ``close()``.
        """
        self.config = config
        self._base_url = config.base_url.rstrip("/")
        self._client = http_client
        self._owns_client = http_client is None
        self._logger = logger.bind(component="GitLabClient")

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout_seconds)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _headers(self) -> dict[str, str]:
        return {"PRIVATE-TOKEN": self.config.token}

    def _url(self, path: str) -> str:
        return f"{self._base_url}/api/v4{path}"

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        client = await self._get_client()
        try:
            response = await client.request(
                method,
                self._url(path),
                headers=self._headers(),
                params=params,
                json=json,
            )
        except httpx.RequestError as e:
            raise GitLabAPIError(
                f"GitLab request {method} {path} failed: {e}",
                detail=str(e),
            ) from e

        if response.status_code >= 400:
            raise GitLabAPIError(
                f"GitLab API error {response.status_code} on {method} {path}",
                status_code=response.status_code,
                detail=response.text[:200],
            )
        return response

    async def list_merge_requests(
        self,
        project_id: int,
        state: str | None = None,
        labels: Sequence[str] | None = None,
        target_branch: str | None = None,
    ) -> list[dict[str, Any]]:
        """List merge requests of a project.

        GitLab v4 API: GET /projects/:id/merge_requests. Pages are followed
        through the ``X-Next-Page`` header until it is empty.
        """
        params: dict[str, Any] = {"per_page": self.config.per_page, "page": 1}
        if state:
            params["state"] = state
        if labels:
            params["labels"] = ",".join(labels)
        if target_branch:
            params["target_branch"] = target_branch

        items: list[dict[str, Any]] = []
        while True:
            response = await self._request(
                "GET", f"/projects/{project_id}/merge_requests", params=params
            )
            items.extend(response.json())
            next_page = response.headers.get("X-Next-Page", "")
            if not next_page:
                break
            params["page"] = int(next_page)

        self._logger.debug(
            "gitlab_merge_requests_listed",
            project_id=project_id,
            count=len(items),
        )
        return items

    async def get_merge_request(self, project_id: int, iid: int) -> dict[str, Any]:
        """Get a merge request (GET /projects/:id/merge_requests/:iid)."""
        response = await self._request("GET", f"/projects/{project_id}/merge_requests/{iid}")
        return response.json()

    async def update_reviewers(
        self,
        project_id: int,
        iid: int,
        reviewer_ids: Sequence[int],
    ) -> dict[str, Any]:
        """Set the reviewers of a merge request.

        GitLab v4 API: PUT /projects/:id/merge_requests/:iid with
        ``reviewer_ids``. The given list replaces the current reviewer set.
        """
        response = await self._request(
            "PUT",
            f"/projects/{project_id}/merge_requests/{iid}",
            json={"reviewer_ids": list(reviewer_ids)},
        )
        self._logger.info(
            "gitlab_reviewers_updated",
            project_id=project_id,
            iid=iid,
            reviewer_ids=list(reviewer_ids),
        )
        return response.json()
