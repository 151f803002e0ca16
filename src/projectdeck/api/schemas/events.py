"""Lifecycle event API schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from projectdeck.models.events import LifecycleEvent


class EventResponse(BaseModel):
    """Journaled lifecycle event."""

    id: str
    event_type: str
    project_id: str | None
    worktree_id: str | None
    payload: dict[str, str | int | float | bool | None]
    timestamp: datetime

    @classmethod
    def from_event(cls, event: LifecycleEvent) -> EventResponse:
        return cls(
            id=event.id,
            event_type=event.event_type.value,
            project_id=event.project_id,
            worktree_id=event.worktree_id,
            payload=event.payload,
            timestamp=event.timestamp,
        )


class EventsResponse(BaseModel):
    items: list[EventResponse]
