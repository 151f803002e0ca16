"""Project and worktree lifecycle management."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from pydantic import ValidationError

from projectdeck.core.event_bus import EventBus
from projectdeck.core.git_manager import GitManager
from projectdeck.core.identity import (
    extract_project_name,
    hash_string,
    normalize_remote,
    worktree_id_from_branch,
)
from projectdeck.core.port_allocator import PortAllocator
from projectdeck.db.store import KeyValueStore
from projectdeck.models.events import EventType, LifecycleEvent
from projectdeck.models.project import (
    LifecycleState,
    PortAllocation,
    PortClass,
    Project,
    Worktree,
)

logger = logging.getLogger(__name__)

STATE_KEY = "projectdeck-projects"
UNKNOWN_BRANCH = "unknown"


class ProjectManager:
    """Own the open projects, their worktrees and port assignments.

    Every mutation runs under one lock, including the git lookups it awaits,
    so port scans and commits cannot interleave. After each mutation the
    active pointers are repaired and the state is persisted before any event
    is published. Read accessors return copies.
    """

    def __init__(
        self,
        store: KeyValueStore,
        git: GitManager,
        *,
        shared_context_root: Path,
        allocator: PortAllocator | None = None,
        events: EventBus | None = None,
        state_key: str = STATE_KEY,
    ) -> None:
        self._store = store
        self._git = git
        self._shared_context_root = shared_context_root
        self._allocator = allocator if allocator is not None else PortAllocator()
        self._events = events if events is not None else EventBus()
        self._state_key = state_key
        self._projects: list[Project] = []
        self._active_project_id: str | None = None
        self._lock = asyncio.Lock()

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def active_project_id(self) -> str | None:
        return self._active_project_id

    @property
    def projects(self) -> list[Project]:
        return [project.model_copy(deep=True) for project in self._projects]

    async def load(self) -> None:
        """Replace in-memory state with the persisted record, if readable."""
        async with self._lock:
            state = LifecycleState()
            raw = await self._store.get(self._state_key)
            if raw is not None:
                try:
                    state = LifecycleState.model_validate_json(raw)
                except ValidationError as exc:
                    logger.warning("Ignoring unreadable project state: %s", exc)
            self._projects = self._dedupe(state.projects)
            self._active_project_id = state.active_project_id
            self._repair_invariants()
        logger.info("Loaded %d project(s)", len(self._projects))

    async def open_project(self, folder_path: Path | str) -> Project:
        folder = Path(folder_path).expanduser().resolve()
        async with self._lock:
            remote = await self._git.remote_url(folder)
            project_id = hash_string(normalize_remote(remote) if remote else str(folder))

            existing = self._find_project(project_id)
            if existing is not None:
                added = None
                if not existing.has_worktree_path(folder):
                    added = await self._register_worktree(existing, folder)
                self._active_project_id = project_id
                await self._commit()
                if added is not None:
                    self._publish_worktree_added(existing, added)
                self._publish(EventType.PROJECT_OPENED, project_id, created=False)
                return existing.model_copy(deep=True)

            discovered = await self._git.discover_worktrees(folder)
            worktrees: list[Worktree] = []
            for item in discovered:
                ports = self._allocator.allocate(
                    self._projects, pending=[worktree.ports for worktree in worktrees]
                )
                worktrees.append(
                    Worktree(
                        id=self._unique_worktree_id(worktrees, item.id),
                        path=item.path,
                        branch=item.branch,
                        ports=ports,
                    )
                )
            opened = next((w for w in worktrees if w.path == folder), worktrees[0])

            project = Project(
                id=project_id,
                name=extract_project_name(remote or str(folder)),
                git_remote=remote,
                worktrees=worktrees,
                active_worktree_id=opened.id,
                shared_context_path=self._shared_context_root / project_id,
            )
            self._projects.append(project)
            self._active_project_id = project_id
            await self._commit()

            logger.info(
                "Opened project %s (%s) with %d worktree(s)",
                project.name,
                project.id,
                len(project.worktrees),
            )
            self._publish(
                EventType.PROJECT_OPENED,
                project_id,
                created=True,
                name=project.name,
                shared_context_path=str(project.shared_context_path),
            )
            for worktree in project.worktrees:
                self._publish_exhausted(project, worktree)
            return project.model_copy(deep=True)

    async def close_project(self, project_id: str) -> bool:
        async with self._lock:
            project = self._find_project(project_id)
            if project is None:
                return False
            self._projects.remove(project)
            await self._commit()
            logger.info("Closed project %s (%s)", project.name, project.id)
            self._publish(EventType.PROJECT_CLOSED, project_id)
            return True

    async def switch_project(self, project_id: str) -> bool:
        async with self._lock:
            if self._find_project(project_id) is None:
                return False
            self._active_project_id = project_id
            await self._commit()
            self._publish(EventType.PROJECT_SWITCHED, project_id)
            return True

    async def switch_worktree(self, worktree_id: str, project_id: str | None = None) -> bool:
        """Activate ``worktree_id`` and its owning project.

        Worktree ids are only unique per project; without ``project_id`` the
        first project (in list order) holding the id wins.
        """
        async with self._lock:
            located = self._locate_worktree(worktree_id, project_id)
            if located is None:
                return False
            project, worktree = located
            self._active_project_id = project.id
            project.active_worktree_id = worktree.id
            worktree.touch()
            await self._commit()
            self._publish(
                EventType.WORKTREE_SWITCHED, project.id, worktree.id, path=str(worktree.path)
            )
            return True

    async def add_worktree(
        self,
        project_id: str,
        worktree_path: Path | str,
        purpose: str | None = None,
    ) -> Worktree | None:
        """Register an existing checkout under a project.

        No duplicate-path check is made here; :meth:`open_project` does that.
        """
        async with self._lock:
            project = self._find_project(project_id)
            if project is None:
                return None
            worktree = await self._register_worktree(
                project, Path(worktree_path).expanduser().resolve(), purpose
            )
            await self._commit()
            self._publish_worktree_added(project, worktree)
            return worktree.model_copy(deep=True)

    async def create_worktree(
        self,
        project_id: str,
        branch: str,
        worktree_path: Path | str | None = None,
        *,
        new_branch: bool = True,
        purpose: str | None = None,
    ) -> Worktree | None:
        """Run ``git worktree add`` from the project's active checkout and register it.

        Raises :class:`~projectdeck.core.command_runner.CommandError` when git
        refuses to create the worktree.
        """
        async with self._lock:
            project = self._find_project(project_id)
            if project is None or not project.worktrees:
                return None
            source = project.find_worktree(project.active_worktree_id) or project.worktrees[0]
            target = (
                Path(worktree_path).expanduser().resolve()
                if worktree_path is not None
                else GitManager.default_worktree_path(source.path, branch)
            )
            await self._git.create_worktree(source.path, branch, target, new_branch=new_branch)
            worktree = await self._register_worktree(project, target, purpose)
            await self._commit()
            self._publish_worktree_added(project, worktree)
            return worktree.model_copy(deep=True)

    async def remove_worktree(self, project_id: str, worktree_id: str) -> bool:
        async with self._lock:
            located = self._locate_worktree(worktree_id, project_id)
            if located is None:
                return False
            project, worktree = located
            worktree.ports = PortAllocation()
            project.worktrees.remove(worktree)
            await self._commit()
            self._publish(
                EventType.WORKTREE_REMOVED, project.id, worktree.id, path=str(worktree.path)
            )
            return True

    async def release_ports(self, project_id: str, worktree_id: str) -> bool:
        async with self._lock:
            located = self._locate_worktree(worktree_id, project_id)
            if located is None:
                return False
            project, worktree = located
            worktree.ports = PortAllocation()
            await self._commit()
            self._publish(EventType.PORTS_RELEASED, project.id, worktree.id)
            return True

    async def allocate_ports(self, project_id: str, worktree_id: str) -> PortAllocation | None:
        """Fill any unallocated port fields of an existing worktree."""
        async with self._lock:
            located = self._locate_worktree(worktree_id, project_id)
            if located is None:
                return None
            project, worktree = located
            worktree.ports = self._allocator.allocate(self._projects, current=worktree.ports)
            await self._commit()
            self._publish(
                EventType.PORTS_ALLOCATED, project.id, worktree.id, **worktree.ports.model_dump()
            )
            self._publish_exhausted(project, worktree)
            return worktree.ports.model_copy()

    def get_allocated_ports(self, port_class: PortClass) -> set[int]:
        return self._allocator.used_ports(self._projects, port_class)

    def get(self, project_id: str) -> Project | None:
        project = self._find_project(project_id)
        return project.model_copy(deep=True) if project is not None else None

    def list(self) -> list[Project]:
        return self.projects

    def get_active_project(self) -> Project | None:
        if self._active_project_id is None:
            return None
        return self.get(self._active_project_id)

    def get_active_worktree(self) -> Worktree | None:
        if self._active_project_id is None:
            return None
        project = self._find_project(self._active_project_id)
        if project is None:
            return None
        worktree = project.find_worktree(project.active_worktree_id)
        return worktree.model_copy(deep=True) if worktree is not None else None

    async def _register_worktree(
        self,
        project: Project,
        path: Path,
        purpose: str | None = None,
    ) -> Worktree:
        branch = await self._git.current_branch(path) or path.name or UNKNOWN_BRANCH
        worktree = Worktree(
            id=self._unique_worktree_id(project.worktrees, worktree_id_from_branch(branch)),
            path=path,
            branch=branch,
            purpose=purpose,
            ports=self._allocator.allocate(self._projects),
        )
        project.worktrees.append(worktree)
        return worktree

    async def _commit(self) -> None:
        self._repair_invariants()
        state = LifecycleState(
            projects=self._projects,
            active_project_id=self._active_project_id,
        )
        await self._store.set(self._state_key, state.model_dump_json(by_alias=True))

    def _repair_invariants(self) -> None:
        """Point every active pointer at a live entity, or clear it."""
        project_ids = [project.id for project in self._projects]
        if self._active_project_id is not None and self._active_project_id not in project_ids:
            self._active_project_id = project_ids[-1] if project_ids else None

        for project in self._projects:
            if project.find_worktree(project.active_worktree_id) is None:
                project.active_worktree_id = project.worktrees[0].id if project.worktrees else ""
            for worktree in project.worktrees:
                worktree.is_active = worktree.id == project.active_worktree_id

    def _find_project(self, project_id: str) -> Project | None:
        return next((project for project in self._projects if project.id == project_id), None)

    def _locate_worktree(
        self,
        worktree_id: str,
        project_id: str | None = None,
    ) -> tuple[Project, Worktree] | None:
        for project in self._projects:
            if project_id is not None and project.id != project_id:
                continue
            worktree = project.find_worktree(worktree_id)
            if worktree is not None:
                return project, worktree
        return None

    @staticmethod
    def _unique_worktree_id(existing: list[Worktree], base_id: str) -> str:
        taken = {worktree.id for worktree in existing}
        if base_id not in taken:
            return base_id
        suffix = 2
        while f"{base_id}-{suffix}" in taken:
            suffix += 1
        return f"{base_id}-{suffix}"

    @staticmethod
    def _dedupe(projects: list[Project]) -> list[Project]:
        seen: set[str] = set()
        unique: list[Project] = []
        for project in projects:
            if project.id in seen:
                logger.warning("Dropping duplicate persisted project %s", project.id)
                continue
            seen.add(project.id)
            unique.append(project)
        return unique

    def _publish_worktree_added(self, project: Project, worktree: Worktree) -> None:
        self._publish(
            EventType.WORKTREE_ADDED,
            project.id,
            worktree.id,
            path=str(worktree.path),
            branch=worktree.branch,
        )
        self._publish_exhausted(project, worktree)

    def _publish_exhausted(self, project: Project, worktree: Worktree) -> None:
        missing = worktree.ports.missing()
        if missing:
            self._publish(
                EventType.PORTS_EXHAUSTED,
                project.id,
                worktree.id,
                port_classes=",".join(port_class.value for port_class in missing),
            )

    def _publish(
        self,
        event_type: EventType,
        project_id: str | None = None,
        worktree_id: str | None = None,
        **payload: str | int | float | bool | None,
    ) -> None:
        self._events.publish(
            LifecycleEvent(
                event_type=event_type,
                project_id=project_id,
                worktree_id=worktree_id,
                payload=payload,
            )
        )
