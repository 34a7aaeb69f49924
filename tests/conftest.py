"""Shared test fixtures: mock DB session, model factories and FastAPI test client."""

from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from pushhooks.db.models import Project, User
from pushhooks.db.session import get_db_session
from pushhooks.dependencies import get_push_service, get_task_queue
from pushhooks.main import app
from pushhooks.services.git_push import GitPushService
from pushhooks.services.history import Commit
from pushhooks.services.task_queue import InMemoryTaskQueue

OLDREV = "570e7b2abdd848b95f2f578043fc23bd6f6fd24d"
NEWREV = "6d394385cf567f80a8fd85055db1ab4c5295806f"


def _make_project(**overrides) -> Project:
    fields = {
        "id": 1,
        "name": "widgets",
        "path_with_namespace": "acme/widgets",
        "description": "Widget factory",
        "default_branch": "master",
        "branch_protection": None,
        "issues_tracker": "internal",
        "issues_tracker_url": None,
    }
    fields.update(overrides)
    return Project(**fields)


def _make_user(**overrides) -> User:
    fields = {"id": 7, "username": "pusher", "name": "Pat Pusher", "email": "pat@example.com"}
    fields.update(overrides)
    return User(**fields)


def _make_commit(**overrides) -> Commit:
    fields = {
        "id": NEWREV,
        "message": "Add widget polishing",
        "author_name": "Ada Author",
        "author_email": "ada@example.com",
        "authored_date": datetime(2026, 10, 1, 12, 30, tzinfo=timezone.utc),
        "parent_ids": (OLDREV,),
    }
    fields.update(overrides)
    return Commit(**fields)


@pytest.fixture
def anyio_backend() -> str:
    """Run anyio-marked tests on asyncio, the event loop the service targets."""
    return "asyncio"


@pytest.fixture
def make_project() -> Callable[..., Project]:
    """Factory for transient Project rows with sensible defaults."""
    return _make_project


@pytest.fixture
def make_user() -> Callable[..., User]:
    """Factory for transient User rows with sensible defaults."""
    return _make_user


@pytest.fixture
def make_commit() -> Callable[..., Commit]:
    """Factory for history Commit objects with sensible defaults."""
    return _make_commit


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """Create a mock async database session.

    The mock's execute method returns successfully, simulating a healthy DB.
    ``add`` is synchronous in SQLAlchemy, so it is a plain MagicMock.
    """
    session = AsyncMock(spec=AsyncSession)
    session.execute.return_value = None
    session.add = MagicMock()
    return session


@pytest.fixture
def mock_task_queue() -> InMemoryTaskQueue:
    """Create a fresh in-memory task queue for test inspection."""
    return InMemoryTaskQueue()


@pytest.fixture
def mock_push_service() -> AsyncMock:
    """Create a mock push pipeline whose ``execute`` is awaitable."""
    return AsyncMock(spec=GitPushService)


@pytest.fixture
async def client(
    mock_db_session: AsyncMock,
    mock_task_queue: InMemoryTaskQueue,
    mock_push_service: AsyncMock,
) -> AsyncGenerator[AsyncClient, None]:
    """Yield an httpx AsyncClient with dependencies overridden.

    Uses the mock session so tests don't require a running database, an
    in-memory task queue for inspecting enqueued tasks, and a mock push
    service for controlling pipeline results.
    """

    async def _override_db_session() -> AsyncGenerator[AsyncSession, None]:
        yield mock_db_session  # type: ignore[misc]

    app.dependency_overrides[get_db_session] = _override_db_session
    app.dependency_overrides[get_task_queue] = lambda: mock_task_queue
    app.dependency_overrides[get_push_service] = lambda: mock_push_service
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
