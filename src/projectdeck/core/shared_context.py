"""Per-project shared context directories."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from projectdeck.models.events import EventType, LifecycleEvent

logger = logging.getLogger(__name__)

DEFAULT_FILES: dict[str, str] = {
    "worktrees.json": "[]",
    "ports.json": "{}",
    "shared/governance.md": "# Governance\n",
}


class SharedContextInitializer:
    """Create the shared context layout when a project is first opened."""

    def __init__(self, root: Path) -> None:
        self._root = root

    def path_for(self, project_id: str) -> Path:
        return self._root / project_id

    async def initialize(self, shared_path: Path) -> None:
        await asyncio.to_thread(self._create_layout, shared_path)

    async def handle_event(self, event: LifecycleEvent) -> None:
        if event.event_type is not EventType.PROJECT_OPENED or not event.payload.get("created"):
            return
        shared_path = event.payload.get("shared_context_path")
        if not isinstance(shared_path, str):
            return
        try:
            await self.initialize(Path(shared_path))
        except OSError:
            logger.exception("Failed to initialize shared context at %s", shared_path)

    @staticmethod
    def _create_layout(shared_path: Path) -> None:
        (shared_path / "shared" / "knowledge").mkdir(parents=True, exist_ok=True)
        for relative, content in DEFAULT_FILES.items():
            target = shared_path / relative
            if not target.exists():
                target.write_text(content, encoding="utf-8")
