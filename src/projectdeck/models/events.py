"""Lifecycle event models."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Events published by the lifecycle manager."""

    PROJECT_OPENED = "project.opened"
    PROJECT_CLOSED = "project.closed"
    PROJECT_SWITCHED = "project.switched"
    WORKTREE_ADDED = "worktree.added"
    WORKTREE_REMOVED = "worktree.removed"
    WORKTREE_SWITCHED = "worktree.switched"
    PORTS_ALLOCATED = "ports.allocated"
    PORTS_RELEASED = "ports.released"
    PORTS_EXHAUSTED = "ports.exhausted"
    MIGRATION_COMPLETED = "migration.completed"


class LifecycleEvent(BaseModel):
    """Notification emitted after a lifecycle state change is committed."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    event_type: EventType
    project_id: str | None = None
    worktree_id: str | None = None
    payload: dict[str, str | int | float | bool | None] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
