"""Wiring of the lifecycle manager and its collaborators."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from projectdeck.config import Settings
from projectdeck.core.command_runner import CommandRunner, SubprocessCommandRunner
from projectdeck.core.event_bus import EventBus, EventJournal
from projectdeck.core.git_manager import GitManager
from projectdeck.core.migration import LegacyMigrator, MigrationReport
from projectdeck.core.port_allocator import PortAllocator
from projectdeck.core.project_manager import ProjectManager
from projectdeck.core.shared_context import SharedContextInitializer
from projectdeck.db.store import SQLiteStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Lifecycle:
    """Owned handle on the store, manager and migrator of one installation."""

    store: SQLiteStore
    git: GitManager
    manager: ProjectManager
    migrator: LegacyMigrator
    shared_context: SharedContextInitializer

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        runner: CommandRunner | None = None,
    ) -> Lifecycle:
        store = SQLiteStore(settings.db_path)
        events = EventBus()
        shared_context = SharedContextInitializer(settings.shared_context_root)
        events.subscribe(shared_context.handle_event)
        events.subscribe(EventJournal(store).handle_event)

        git = GitManager(
            runner
            if runner is not None
            else SubprocessCommandRunner(timeout_seconds=settings.git_timeout_seconds)
        )
        manager = ProjectManager(
            store,
            git,
            shared_context_root=settings.shared_context_root,
            allocator=PortAllocator(settings.port_ranges, strict=settings.strict_ports),
            events=events,
        )
        migrator = LegacyMigrator(store, manager)
        return cls(
            store=store,
            git=git,
            manager=manager,
            migrator=migrator,
            shared_context=shared_context,
        )

    async def start(self) -> MigrationReport:
        """Load persisted state, then run the legacy migration if still pending."""
        await self.manager.load()
        report = await self.migrator.migrate()
        if report.failed:
            logger.warning("%d legacy workspace(s) could not be migrated", len(report.failed))
        return report

    async def stop(self) -> None:
        await self.manager.events.drain()
