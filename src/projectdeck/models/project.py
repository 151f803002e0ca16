"""Project, worktree and port domain models."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class PortClass(str, Enum):
    """Categories of server ports reserved per worktree."""

    DEV = "dev"
    API = "api"
    PREVIEW = "preview"


class PortRange(BaseModel):
    """Inclusive port range reserved for one port class."""

    model_config = ConfigDict(frozen=True)

    start: int = Field(ge=1, le=65535)
    end: int = Field(ge=1, le=65535)

    @model_validator(mode="after")
    def _check_order(self) -> PortRange:
        if self.start > self.end:
            msg = f"Port range start {self.start} is greater than end {self.end}"
            raise ValueError(msg)
        return self

    def __contains__(self, port: object) -> bool:
        return isinstance(port, int) and self.start <= port <= self.end

    def overlaps(self, other: PortRange) -> bool:
        return self.start <= other.end and other.start <= self.end


class _PersistedModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PortAllocation(_PersistedModel):
    """Ports assigned to a worktree; ``0`` means unallocated."""

    dev: int = 0
    api: int = 0
    preview: int = 0

    def get(self, port_class: PortClass) -> int:
        return int(getattr(self, port_class.value))

    def set(self, port_class: PortClass, port: int) -> None:
        setattr(self, port_class.value, port)

    def missing(self) -> list[PortClass]:
        """Port classes that currently hold no port."""
        return [port_class for port_class in PortClass if self.get(port_class) == 0]


class Worktree(_PersistedModel):
    """A git worktree registered under a project."""

    id: str
    path: Path
    branch: str
    purpose: str | None = None
    ports: PortAllocation = Field(default_factory=PortAllocation)
    is_active: bool = False
    last_active: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def touch(self) -> None:
        """Mark this worktree as just activated."""
        self.last_active = datetime.now(UTC)


class Project(_PersistedModel):
    """A tracked repository and its worktrees."""

    id: str
    name: str
    git_remote: str = ""
    worktrees: list[Worktree] = Field(default_factory=list)
    active_worktree_id: str = ""
    shared_context_path: Path

    def find_worktree(self, worktree_id: str) -> Worktree | None:
        return next((w for w in self.worktrees if w.id == worktree_id), None)

    def has_worktree_path(self, path: Path) -> bool:
        return any(w.path == path for w in self.worktrees)


class LifecycleState(_PersistedModel):
    """Persisted record of open projects and the focused one."""

    projects: list[Project] = Field(default_factory=list)
    active_project_id: str | None = None
