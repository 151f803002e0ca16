"""Common route helpers."""

from __future__ import annotations

from fastapi import HTTPException, status

from projectdeck.core.project_manager import ProjectManager
from projectdeck.models.project import Project


def require_project(project_id: str, manager: ProjectManager) -> Project:
    """Load project or return 404."""
    project = manager.get(project_id)
    if project is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return project


def require_found(found: bool, detail: str) -> None:
    if not found:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
