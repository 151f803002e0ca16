"""Project and worktree API schemas."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel

from projectdeck.models.project import PortAllocation, Project, Worktree


class OpenProjectRequest(BaseModel):
    """Payload for opening a folder as a project."""

    path: Path


class AddWorktreeRequest(BaseModel):
    """Payload for registering an existing worktree checkout."""

    path: Path
    purpose: str | None = None


class CreateWorktreeRequest(BaseModel):
    """Payload for creating a worktree with ``git worktree add``."""

    branch: str
    path: Path | None = None
    new_branch: bool = True
    purpose: str | None = None


class ProjectsResponse(BaseModel):
    """Collection response for projects."""

    items: list[Project]
    active_project_id: str | None = None


class WorktreeResponse(BaseModel):
    """Single worktree payload."""

    worktree: Worktree


class PortsResponse(BaseModel):
    """Port allocation of one worktree."""

    ports: PortAllocation


class BranchResponse(BaseModel):
    """Branch available for a new worktree."""

    name: str
    is_remote: bool


class BranchesResponse(BaseModel):
    """Collection of branches."""

    items: list[BranchResponse]
