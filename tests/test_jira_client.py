"""Tests for the JIRA REST API client functions."""

import json

import httpx
import pytest

from pushhooks.services.jira_client import add_comment, transition_issue

API_URL = "http://jira.example"


@pytest.mark.anyio
async def test_transition_issue_posts_transition_with_comment() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(204)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        await transition_issue(client, API_URL, "JIRA-1", "2", "Issue solved with [abc|url].")

    assert len(captured) == 1
    req = captured[0]
    assert str(req.url) == "http://jira.example/rest/api/2/issue/JIRA-1/transitions"
    assert json.loads(req.content) == {
        "update": {"comment": [{"add": {"body": "Issue solved with [abc|url]."}}]},
        "transition": {"id": "2"},
    }


@pytest.mark.anyio
async def test_add_comment_posts_body() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(201, json={"id": "10000"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        result = await add_comment(client, API_URL + "/", "JIRA-1", "mentioned JIRA-1 in commit")

    assert result is None
    req = captured[0]
    assert str(req.url) == "http://jira.example/rest/api/2/issue/JIRA-1/comment"
    assert json.loads(req.content) == {"body": "mentioned JIRA-1 in commit"}
    assert req.headers["accept"] == "application/json"


@pytest.mark.anyio
async def test_basic_auth_is_sent() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(201)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        await add_comment(client, API_URL, "JIRA-1", "hi", auth=("bot", "secret"))

    assert captured[0].headers["authorization"].startswith("Basic ")


@pytest.mark.anyio
async def test_error_status_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"errorMessages": ["Issue does not exist"]})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(httpx.HTTPStatusError) as exc_info:
            await transition_issue(client, API_URL, "JIRA-404", "2", "gone")

    assert exc_info.value.response.status_code == 404


@pytest.mark.anyio
async def test_add_comment_accepts_non_json_success() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(201, text="<html>ok</html>")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        assert await add_comment(client, API_URL, "JIRA-1", "hi") is None
