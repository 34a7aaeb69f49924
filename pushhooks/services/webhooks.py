"""Outbound push webhooks and default branch protection.

Delivery goes through a ``WebhookTransport``. Production code uses
``HttpWebhookTransport`` which POSTs the payload with a shared httpx client;
tests use ``InMemoryWebhookTransport`` which records deliveries for
assertion. Delivery is best-effort: a failed POST is logged and dropped.
"""

from __future__ import annotations

from typing import Protocol

import httpx
import structlog
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from pushhooks.db.models import Project, ProjectHook, ProtectedBranch
from pushhooks.schemas.push import PushEvent
from pushhooks.services.ref_change import RefChange, RefChangeKind

logger = structlog.get_logger()

PROTECTION_NONE = 0
PROTECTION_DEV_CAN_PUSH = 1
PROTECTION_FULL = 2


class WebhookTransport(Protocol):
    """Protocol for delivering a push payload to one hook URL."""

    async def deliver(self, url: str, payload: dict, *, default_branch: bool) -> None:
        """Send ``payload`` to ``url``. Must not raise on delivery failure."""
        ...


class HttpWebhookTransport:
    """Production transport posting JSON with httpx."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def deliver(self, url: str, payload: dict, *, default_branch: bool) -> None:
        """POST the payload; log and swallow transport or HTTP errors."""
        headers = {
            "Content-Type": "application/json",
            "X-Push-Event": "push",
            "X-Push-Default-Branch": "true" if default_branch else "false",
        }
        try:
            resp = await self._client.post(url, json=payload, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("webhook_delivery_failed", url=url, error=str(exc))
            return
        logger.debug("webhook_delivered", url=url, status_code=resp.status_code)


class InMemoryWebhookTransport:
    """Test double that records deliveries for assertions."""

    def __init__(self) -> None:
        self.deliveries: list[dict] = []

    async def deliver(self, url: str, payload: dict, *, default_branch: bool) -> None:
        """Append the delivery to the in-memory list."""
        self.deliveries.append({"url": url, "payload": payload, "default_branch": default_branch})


async def execute_push_hooks(
    session: AsyncSession,
    transport: WebhookTransport,
    project: Project,
    change: RefChange,
    push_data: PushEvent,
) -> int:
    """Deliver the payload to every push hook of the project.

    Only branch changes fire hooks; tag and other non-branch pushes are
    ignored. Returns the number of hooks the payload was handed to.
    """
    if change.kind is RefChangeKind.NON_BRANCH_REF:
        return 0

    result = await session.execute(
        select(ProjectHook.url).where(
            ProjectHook.project_id == project.id,
            ProjectHook.push_events.is_(True),
        )
    )
    urls = list(result.scalars().all())

    payload = push_data.model_dump(mode="json")
    for url in urls:
        await transport.deliver(url, payload, default_branch=change.is_default_branch)

    logger.info("push_hooks_executed", project_id=project.id, hooks=len(urls))
    return len(urls)


def developers_can_push(level: int) -> bool:
    """Map a protection level to the protected branch permission flag."""
    return level == PROTECTION_DEV_CAN_PUSH


async def protect_default_branch(
    session: AsyncSession,
    project: Project,
    branch: str,
    default_level: int,
) -> bool:
    """Protect a newly created default branch according to the project level.

    ``project.branch_protection`` wins over ``default_level`` when set. Level
    0 leaves the branch unprotected, 1 lets developers push, anything else
    restricts pushes to privileged users. An existing protection for the
    branch is left alone.

    Returns True when a new protected branch row was created.
    """
    level = project.branch_protection
    if level is None:
        level = default_level
    if level == PROTECTION_NONE:
        return False

    stmt = (
        pg_insert(ProtectedBranch)
        .values(
            project_id=project.id,
            name=branch,
            developers_can_push=developers_can_push(level),
        )
        .on_conflict_do_nothing(constraint="uq_protected_branches_project_name")
        .returning(ProtectedBranch.id)
    )
    result = await session.execute(stmt)
    created = result.scalar_one_or_none() is not None

    logger.info(
        "default_branch_protected",
        project_id=project.id,
        branch=branch,
        developers_can_push=developers_can_push(level),
        created=created,
    )
    return created
