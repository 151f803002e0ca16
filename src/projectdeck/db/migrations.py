"""SQLite migrations for projectdeck storage."""

from __future__ import annotations

import aiosqlite

SCHEMA_VERSION = 1


async def apply_migrations(conn: aiosqlite.Connection) -> None:
    """Create the key-value and event tables if missing and set schema version."""
    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version INTEGER PRIMARY KEY
        )
        """
    )

    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS kv_entries (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
    )

    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS lifecycle_events (
            id TEXT PRIMARY KEY,
            event_type TEXT NOT NULL,
            project_id TEXT,
            worktree_id TEXT,
            payload TEXT NOT NULL,
            timestamp TEXT NOT NULL
        )
        """
    )

    await conn.execute("DELETE FROM schema_migrations")
    await conn.execute("INSERT INTO schema_migrations(version) VALUES (?)", (SCHEMA_VERSION,))
    await conn.commit()
