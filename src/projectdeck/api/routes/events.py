"""Lifecycle event journal routes."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status

from projectdeck.api.deps import get_store
from projectdeck.api.schemas.events import EventResponse, EventsResponse
from projectdeck.db.store import SQLiteStore
from projectdeck.models.events import EventType

router = APIRouter(prefix="/api/v1/events", tags=["events"])


def _parse_event_type(value: str | None) -> EventType | None:
    if value is None:
        return None
    try:
        return EventType(value)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in EventType)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid event_type {value!r}; expected one of: {allowed}",
        ) from exc


@router.get("", response_model=EventsResponse)
async def list_events(
    project_id: str | None = None,
    worktree_id: str | None = None,
    event_type: str | None = None,
    since: datetime | None = Query(default=None),
    until: datetime | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1, le=1000),
    store: SQLiteStore = Depends(get_store),
) -> EventsResponse:
    """Journaled events in chronological order; ``limit`` keeps the newest."""
    events = await store.list_events(
        project_id=project_id,
        worktree_id=worktree_id,
        event_type=_parse_event_type(event_type),
        since=since,
        until=until,
    )
    if limit is not None:
        events = events[-limit:]
    return EventsResponse(items=[EventResponse.from_event(event) for event in events])
