"""One-time import of the legacy single-workspace list."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from pydantic import ValidationError

from projectdeck.core.project_manager import ProjectManager
from projectdeck.db.store import KeyValueStore
from projectdeck.models.events import EventType, LifecycleEvent
from projectdeck.models.legacy import LegacyWorkspaceBlob

logger = logging.getLogger(__name__)

LEGACY_STATE_KEY = "projectdeck-legacy-workspaces"
MIGRATION_KEY = "projectdeck-migration-v2"
MIGRATION_DONE = "done"


@dataclass(slots=True)
class MigrationReport:
    """Outcome of a migration attempt."""

    skipped: bool = False
    migrated: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class LegacyMigrator:
    """Replay legacy workspaces through :meth:`ProjectManager.open_project` once."""

    def __init__(
        self,
        store: KeyValueStore,
        manager: ProjectManager,
        *,
        legacy_key: str = LEGACY_STATE_KEY,
        flag_key: str = MIGRATION_KEY,
    ) -> None:
        self._store = store
        self._manager = manager
        self._legacy_key = legacy_key
        self._flag_key = flag_key
        self._lock = asyncio.Lock()

    async def needs_migration(self) -> bool:
        return await self._store.get(self._flag_key) != MIGRATION_DONE

    async def migrate(self) -> MigrationReport:
        async with self._lock:
            return await self._migrate_once()

    async def _migrate_once(self) -> MigrationReport:
        if not await self.needs_migration():
            return MigrationReport(skipped=True)

        report = MigrationReport()
        paths = await self._read_legacy_paths()
        if paths:
            logger.info("Migrating %d workspace(s) to the project model", len(paths))

        for path in paths:
            try:
                await self._manager.open_project(path)
            except Exception:
                logger.exception("Failed to migrate workspace %s", path)
                report.failed.append(path)
            else:
                logger.info("Migrated workspace %s", path)
                report.migrated.append(path)

        # Set even after partial failure: migration is attempted at most once.
        await self._store.set(self._flag_key, MIGRATION_DONE)
        self._manager.events.publish(
            LifecycleEvent(
                event_type=EventType.MIGRATION_COMPLETED,
                payload={"migrated": len(report.migrated), "failed": len(report.failed)},
            )
        )
        logger.info("Workspace migration complete")
        return report

    async def _read_legacy_paths(self) -> list[str]:
        raw = await self._store.get(self._legacy_key)
        if raw is None:
            return []
        try:
            blob = LegacyWorkspaceBlob.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("Ignoring unreadable legacy workspace state: %s", exc)
            return []
        return blob.state.open_workspaces
