"""Integration tests for the GitLab API client."""

from __future__ import annotations

import json

import httpx
import pytest
import respx

from reviewflow.config import GitLabConfig
from reviewflow.integrations.gitlab import CodeReviewService, GitLabAPIError, GitLabClient

BASE_URL = "https://gitlab.example.com"
MR_LIST_URL = f"{BASE_URL}/api/v4/projects/42/merge_requests"


@pytest.fixture
def config() -> GitLabConfig:
    return GitLabConfig(base_url=f"{BASE_URL}/", token="glpat-secret", per_page=2)


def test_client_satisfies_protocol(config: GitLabConfig) -> None:
    assert isinstance(GitLabClient(config), CodeReviewService)


@respx.mock
@pytest.mark.asyncio
async def test_list_merge_requests_follows_pages(config: GitLabConfig) -> None:
    """Pages are requested until X-Next-Page is empty."""
    pages = {
        "1": httpx.Response(200, json=[{"iid": 1}, {"iid": 2}], headers={"X-Next-Page": "2"}),
        "2": httpx.Response(200, json=[{"iid": 3}], headers={"X-Next-Page": ""}),
    }

    def respond(request: httpx.Request) -> httpx.Response:
        return pages[request.url.params["page"]]

    route = respx.get(MR_LIST_URL).mock(side_effect=respond)
    client = GitLabClient(config)

    result = await client.list_merge_requests(42, state="opened", labels=["backend", "urgent"])
    await client.close()

    assert [mr["iid"] for mr in result] == [1, 2, 3]
    assert route.call_count == 2
    first = route.calls[0].request
    assert first.headers["PRIVATE-TOKEN"] == "glpat-secret"
    assert first.url.params["per_page"] == "2"
    assert first.url.params["state"] == "opened"
    assert first.url.params["labels"] == "backend,urgent"
    assert "target_branch" not in first.url.params


@respx.mock
@pytest.mark.asyncio
async def test_get_merge_request(config: GitLabConfig) -> None:
    respx.get(f"{MR_LIST_URL}/7").mock(
        return_value=httpx.Response(200, json={"iid": 7, "title": "Add payments API"})
    )
    client = GitLabClient(config)

    result = await client.get_merge_request(42, 7)
    await client.close()

    assert result["title"] == "Add payments API"


@respx.mock
@pytest.mark.asyncio
async def test_update_reviewers_sends_full_set(config: GitLabConfig) -> None:
    route = respx.put(f"{MR_LIST_URL}/7").mock(
        return_value=httpx.Response(200, json={"iid": 7, "reviewers": [{"id": 10}, {"id": 11}]})
    )
    client = GitLabClient(config)

    await client.update_reviewers(42, 7, (10, 11))
    await client.close()

    assert route.called
    assert json.loads(route.calls.last.request.content) == {"reviewer_ids": [10, 11]}


@respx.mock
@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [403, 404, 500, 502])
async def test_http_errors_raise(config: GitLabConfig, status_code: int) -> None:
    respx.put(f"{MR_LIST_URL}/7").mock(return_value=httpx.Response(status_code, text="nope"))
    client = GitLabClient(config)

    with pytest.raises(GitLabAPIError) as exc_info:
        await client.update_reviewers(42, 7, [10])
    await client.close()

    assert exc_info.value.status_code == status_code
    assert exc_info.value.detail == "nope"


@respx.mock
@pytest.mark.asyncio
async def test_transport_error_raises(config: GitLabConfig) -> None:
    respx.get(MR_LIST_URL).mock(side_effect=httpx.ConnectError("Connection refused"))
    client = GitLabClient(config)

    with pytest.raises(GitLabAPIError) as exc_info:
        await client.list_merge_requests(42)
    await client.close()

    assert exc_info.value.status_code is None
    assert "Connection refused" in exc_info.value.detail


@respx.mock
@pytest.mark.asyncio
async def test_shared_http_client_is_not_closed(config: GitLabConfig) -> None:
    respx.get(f"{MR_LIST_URL}/7").mock(return_value=httpx.Response(200, json={"iid": 7}))

    async with httpx.AsyncClient() as http_client:
        client = GitLabClient(config, http_client=http_client)
        await client.get_merge_request(42, 7)
        await client.close()

        assert not http_client.is_closed
