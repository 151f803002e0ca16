"""Project routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from projectdeck.api.deps import get_git_manager, get_project_manager
from projectdeck.api.routes.common import require_found, require_project
from projectdeck.api.schemas.projects import (
    BranchesResponse,
    BranchResponse,
    OpenProjectRequest,
    ProjectsResponse,
)
from projectdeck.core.git_manager import GitManager
from projectdeck.core.port_allocator import PortExhaustedError
from projectdeck.core.project_manager import ProjectManager
from projectdeck.models.project import Project

router = APIRouter(prefix="/api/v1/projects", tags=["projects"])


@router.get("", response_model=ProjectsResponse)
async def list_projects(manager: ProjectManager = Depends(get_project_manager)) -> ProjectsResponse:
    return ProjectsResponse(items=manager.list(), active_project_id=manager.active_project_id)


@router.post("/open")
async def open_project(
    request: OpenProjectRequest,
    manager: ProjectManager = Depends(get_project_manager),
) -> dict[str, Project]:
    try:
        project = await manager.open_project(request.path)
    except PortExhaustedError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return {"project": project}


@router.get("/active")
async def get_active_project(
    manager: ProjectManager = Depends(get_project_manager),
) -> dict[str, Project | None]:
    return {"project": manager.get_active_project()}


@router.get("/{project_id}")
async def get_project(
    project_id: str, manager: ProjectManager = Depends(get_project_manager)
) -> dict[str, Project]:
    return {"project": require_project(project_id, manager)}


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_project(
    project_id: str,
    manager: ProjectManager = Depends(get_project_manager),
) -> None:
    require_found(await manager.close_project(project_id), "Project not found")


@router.post("/{project_id}/activate")
async def switch_project(
    project_id: str,
    manager: ProjectManager = Depends(get_project_manager),
) -> dict[str, str]:
    require_found(await manager.switch_project(project_id), "Project not found")
    return {"active_project_id": project_id}


@router.get("/{project_id}/branches", response_model=BranchesResponse)
async def list_branches(
    project_id: str,
    manager: ProjectManager = Depends(get_project_manager),
    git: GitManager = Depends(get_git_manager),
) -> BranchesResponse:
    project = require_project(project_id, manager)
    source = project.find_worktree(project.active_worktree_id)
    if source is None:
        return BranchesResponse(items=[])
    branches = await git.list_branches(source.path)
    return BranchesResponse(
        items=[BranchResponse(name=branch.name, is_remote=branch.is_remote) for branch in branches]
    )
