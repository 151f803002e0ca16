"""Async SQLite persistence for lifecycle state and events."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

import aiosqlite

from projectdeck.db.migrations import apply_migrations
from projectdeck.models.events import EventType, LifecycleEvent


class KeyValueStore(Protocol):
    """Durable string storage keyed by name."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...


class SQLiteStore:
    """Key-value entries and the lifecycle event journal."""

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(self._db_path)
        conn.row_factory = aiosqlite.Row
        try:
            await apply_migrations(conn)
            yield conn
        finally:
            await conn.close()

    async def get(self, key: str) -> str | None:
        async with self.connection() as conn:
            cursor = await conn.execute("SELECT value FROM kv_entries WHERE key = ?", (key,))
            row = await cursor.fetchone()
        if row is None:
            return None
        return str(row["value"])

    async def set(self, key: str, value: str) -> None:
        async with self.connection() as conn:
            await conn.execute(
                """
                INSERT INTO kv_entries(key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value=excluded.value,
                    updated_at=excluded.updated_at
                """,
                (key, value, datetime.now(UTC).isoformat()),
            )
            await conn.commit()

    async def delete(self, key: str) -> None:
        async with self.connection() as conn:
            await conn.execute("DELETE FROM kv_entries WHERE key = ?", (key,))
            await conn.commit()

    async def append_event(self, event: LifecycleEvent) -> None:
        async with self.connection() as conn:
            await conn.execute(
                """
                INSERT INTO lifecycle_events(
                    id, event_type, project_id, worktree_id, payload, timestamp
                )
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    event.id,
                    event.event_type.value,
                    event.project_id,
                    event.worktree_id,
                    json.dumps(event.payload),
                    event.timestamp.astimezone(UTC).isoformat(),
                ),
            )
            await conn.commit()

    async def list_events(
        self,
        *,
        project_id: str | None = None,
        worktree_id: str | None = None,
        event_type: EventType | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[LifecycleEvent]:
        query = "SELECT * FROM lifecycle_events WHERE 1 = 1"
        params: list[str] = []

        if project_id:
            query += " AND project_id = ?"
            params.append(project_id)

        if worktree_id:
            query += " AND worktree_id = ?"
            params.append(worktree_id)

        if event_type:
            query += " AND event_type = ?"
            params.append(event_type.value)

        if since:
            query += " AND timestamp >= ?"
            params.append(since.astimezone(UTC).isoformat())

        if until:
            query += " AND timestamp <= ?"
            params.append(until.astimezone(UTC).isoformat())

        query += " ORDER BY timestamp ASC"

        async with self.connection() as conn:
            cursor = await conn.execute(query, tuple(params))
            rows = await cursor.fetchall()

        return [self._event_from_row(row) for row in rows]

    @staticmethod
    def _event_from_row(row: aiosqlite.Row) -> LifecycleEvent:
        return LifecycleEvent(
            id=str(row["id"]),
            event_type=EventType(str(row["event_type"])),
            project_id=str(row["project_id"]) if row["project_id"] else None,
            worktree_id=str(row["worktree_id"]) if row["worktree_id"] else None,
            payload=json.loads(str(row["payload"])),
            timestamp=datetime.fromisoformat(str(row["timestamp"])),
        )
