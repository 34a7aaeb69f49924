"""Tests for push hook delivery and default branch protection."""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from sqlalchemy.dialects import postgresql

from pushhooks.services.push_data import build_push_data
from pushhooks.services.ref_change import RefChange, RefChangeKind, classify
from pushhooks.services.webhooks import (
    HttpWebhookTransport,
    InMemoryWebhookTransport,
    developers_can_push,
    execute_push_hooks,
    protect_default_branch,
)

NEWREV = "6d394385cf567f80a8fd85055db1ab4c5295806f"
OLDREV = "570e7b2abdd848b95f2f578043fc23bd6f6fd24d"


def _hooks_session(urls: list[str]) -> AsyncMock:
    """Mock session whose execute() returns the given hook URLs."""
    session = AsyncMock()
    result = MagicMock()
    result.scalars.return_value.all.return_value = urls
    session.execute.return_value = result
    return session


def _insert_session(inserted_id: int | None) -> AsyncMock:
    """Mock session whose INSERT ... RETURNING yields ``inserted_id``."""
    session = AsyncMock()
    result = MagicMock()
    result.scalar_one_or_none.return_value = inserted_id
    session.execute.return_value = result
    return session


def _statement_params(session: AsyncMock) -> dict:
    stmt = session.execute.call_args.args[0]
    return stmt.compile(dialect=postgresql.dialect()).params


def _push_data(project, user, ref="refs/heads/master", oldrev=OLDREV):
    return build_push_data(
        project,
        user,
        oldrev,
        NEWREV,
        ref,
        [],
        base_url="http://localhost",
        clone_url_prefix="git@localhost:",
    )


# ---------------------------------------------------------------------------
# execute_push_hooks
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_branch_push_delivers_to_every_hook(make_project, make_user) -> None:
    project, user = make_project(), make_user()
    session = _hooks_session(["http://ci.example/hook", "http://chat.example/hook"])
    transport = InMemoryWebhookTransport()
    push_data = _push_data(project, user)

    change = classify(OLDREV, NEWREV, "refs/heads/master", "master")

    fired = await execute_push_hooks(session, transport, project, change, push_data)

    assert fired == 2
    assert [d["url"] for d in transport.deliveries] == [
        "http://ci.example/hook",
        "http://chat.example/hook",
    ]
    assert transport.deliveries[0]["payload"] == push_data.model_dump(mode="json")
    assert transport.deliveries[0]["default_branch"] is True


@pytest.mark.anyio
async def test_tag_push_never_delivers(make_project, make_user) -> None:
    project, user = make_project(), make_user()
    session = _hooks_session(["http://ci.example/hook"])
    transport = InMemoryWebhookTransport()

    fired = await execute_push_hooks(
        session,
        transport,
        project,
        classify(NEWREV, NEWREV, "refs/tags/v1.0.0", "master"),
        _push_data(project, user, ref="refs/tags/v1.0.0", oldrev=NEWREV),
    )

    assert fired == 0
    assert transport.deliveries == []
    session.execute.assert_not_called()


@pytest.mark.anyio
async def test_non_default_branch_flag_is_passed(make_project, make_user) -> None:
    project, user = make_project(), make_user()
    session = _hooks_session(["http://ci.example/hook"])
    transport = InMemoryWebhookTransport()

    await execute_push_hooks(
        session,
        transport,
        project,
        classify(OLDREV, NEWREV, "refs/heads/feature", "master"),
        _push_data(project, user, ref="refs/heads/feature"),
    )

    assert transport.deliveries[0]["default_branch"] is False


@pytest.mark.anyio
async def test_project_without_hooks_fires_nothing(make_project, make_user) -> None:
    project, user = make_project(), make_user()
    transport = InMemoryWebhookTransport()

    fired = await execute_push_hooks(
        _hooks_session([]),
        transport,
        project,
        RefChange(RefChangeKind.BRANCH_REMOVED, branch_name="old"),
        _push_data(project, user),
    )

    assert fired == 0
    assert transport.deliveries == []


# ---------------------------------------------------------------------------
# HttpWebhookTransport
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_http_transport_posts_json() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        await HttpWebhookTransport(client).deliver(
            "http://ci.example/hook", {"ref": "refs/heads/master"}, default_branch=True
        )

    assert len(captured) == 1
    req = captured[0]
    assert req.method == "POST"
    assert json.loads(req.content) == {"ref": "refs/heads/master"}
    assert req.headers["x-push-event"] == "push"
    assert req.headers["x-push-default-branch"] == "true"


@pytest.mark.anyio
async def test_http_transport_swallows_error_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        transport = HttpWebhookTransport(client)
        await transport.deliver("http://ci.example/hook", {}, default_branch=False)


@pytest.mark.anyio
async def test_http_transport_swallows_connection_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        transport = HttpWebhookTransport(client)
        await transport.deliver("http://ci.example/hook", {}, default_branch=False)


# ---------------------------------------------------------------------------
# protect_default_branch
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_default_protection_blocks_developers(make_project) -> None:
    """With no project level, the instance default (full protection) applies."""
    session = _insert_session(1)

    created = await protect_default_branch(session, make_project(), "master", 2)

    assert created is True
    assert _statement_params(session) == {
        "project_id": 1,
        "name": "master",
        "developers_can_push": False,
    }


@pytest.mark.anyio
async def test_developers_can_push_level(make_project) -> None:
    session = _insert_session(1)

    await protect_default_branch(session, make_project(), "master", 1)

    assert _statement_params(session)["developers_can_push"] is True


@pytest.mark.anyio
async def test_no_protection_level_skips_insert(make_project) -> None:
    session = _insert_session(1)

    created = await protect_default_branch(session, make_project(), "master", 0)

    assert created is False
    session.execute.assert_not_called()


@pytest.mark.anyio
async def test_project_level_overrides_default(make_project) -> None:
    session = _insert_session(1)

    await protect_default_branch(session, make_project(branch_protection=1), "main", 2)

    params = _statement_params(session)
    assert params["name"] == "main"
    assert params["developers_can_push"] is True


@pytest.mark.anyio
async def test_project_opt_out_overrides_default(make_project) -> None:
    session = _insert_session(1)

    created = await protect_default_branch(session, make_project(branch_protection=0), "main", 2)

    assert created is False
    session.execute.assert_not_called()


@pytest.mark.anyio
async def test_existing_protection_is_not_an_error(make_project) -> None:
    """ON CONFLICT DO NOTHING returns no row for an already protected branch."""
    session = _insert_session(None)

    created = await protect_default_branch(session, make_project(), "master", 2)

    assert created is False
    stmt = session.execute.call_args.args[0]
    sql = str(stmt.compile(dialect=postgresql.dialect()))
    assert "ON CONFLICT ON CONSTRAINT uq_protected_branches_project_name DO NOTHING" in sql


@pytest.mark.parametrize(("level", "expected"), [(1, True), (2, False), (5, False)])
def test_developers_can_push_mapping(level: int, expected: bool) -> None:
    assert developers_can_push(level) is expected