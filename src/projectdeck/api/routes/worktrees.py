"""Worktree and port routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from projectdeck.api.deps import get_project_manager
from projectdeck.api.routes.common import require_found
from projectdeck.api.schemas.projects import (
    AddWorktreeRequest,
    CreateWorktreeRequest,
    PortsResponse,
    WorktreeResponse,
)
from projectdeck.core.command_runner import CommandError
from projectdeck.core.port_allocator import PortExhaustedError
from projectdeck.core.project_manager import ProjectManager
from projectdeck.models.project import Worktree

router = APIRouter(prefix="/api/v1", tags=["worktrees"])


@router.get("/worktrees/active")
async def get_active_worktree(
    manager: ProjectManager = Depends(get_project_manager),
) -> dict[str, Worktree | None]:
    return {"worktree": manager.get_active_worktree()}


@router.post(
    "/projects/{project_id}/worktrees",
    status_code=status.HTTP_201_CREATED,
    response_model=WorktreeResponse,
)
async def add_worktree(
    project_id: str,
    request: AddWorktreeRequest,
    manager: ProjectManager = Depends(get_project_manager),
) -> WorktreeResponse:
    try:
        worktree = await manager.add_worktree(project_id, request.path, request.purpose)
    except PortExhaustedError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    if worktree is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return WorktreeResponse(worktree=worktree)


@router.post(
    "/projects/{project_id}/worktrees/create",
    status_code=status.HTTP_201_CREATED,
    response_model=WorktreeResponse,
)
async def create_worktree(
    project_id: str,
    request: CreateWorktreeRequest,
    manager: ProjectManager = Depends(get_project_manager),
) -> WorktreeResponse:
    try:
        worktree = await manager.create_worktree(
            project_id,
            request.branch,
            request.path,
            new_branch=request.new_branch,
            purpose=request.purpose,
        )
    except CommandError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except PortExhaustedError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    if worktree is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return WorktreeResponse(worktree=worktree)


@router.delete(
    "/projects/{project_id}/worktrees/{worktree_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_worktree(
    project_id: str,
    worktree_id: str,
    manager: ProjectManager = Depends(get_project_manager),
) -> None:
    require_found(await manager.remove_worktree(project_id, worktree_id), "Worktree not found")


@router.post("/projects/{project_id}/worktrees/{worktree_id}/activate")
async def switch_worktree(
    project_id: str,
    worktree_id: str,
    manager: ProjectManager = Depends(get_project_manager),
) -> dict[str, str]:
    require_found(
        await manager.switch_worktree(worktree_id, project_id=project_id), "Worktree not found"
    )
    return {"active_project_id": project_id, "active_worktree_id": worktree_id}


@router.post(
    "/projects/{project_id}/worktrees/{worktree_id}/ports/release",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def release_ports(
    project_id: str,
    worktree_id: str,
    manager: ProjectManager = Depends(get_project_manager),
) -> None:
    require_found(await manager.release_ports(project_id, worktree_id), "Worktree not found")


@router.post(
    "/projects/{project_id}/worktrees/{worktree_id}/ports/allocate",
    response_model=PortsResponse,
)
async def allocate_ports(
    project_id: str,
    worktree_id: str,
    manager: ProjectManager = Depends(get_project_manager),
) -> PortsResponse:
    try:
        ports = await manager.allocate_ports(project_id, worktree_id)
    except PortExhaustedError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    if ports is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Worktree not found")
    return PortsResponse(ports=ports)
