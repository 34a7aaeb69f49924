"""Pydantic response models for the health check endpoint."""

from typing import Literal

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Response model for the /healthz endpoint.

    ``status`` is "degraded" when the repositories root is missing: pushes
    are still recorded and hooks still fire, but without commits.
    """

    status: Literal["ok", "degraded"]
    service: str
    database: Literal["connected"]
    repositories: Literal["available", "missing"]
    task_queue: Literal["cloud_tasks", "in_memory"]
