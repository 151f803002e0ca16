"""Shared API dependency providers."""

from __future__ import annotations

from fastapi import Request

from projectdeck.core.git_manager import GitManager
from projectdeck.core.lifecycle import Lifecycle
from projectdeck.core.project_manager import ProjectManager
from projectdeck.db.store import SQLiteStore


def get_lifecycle(request: Request) -> Lifecycle:
    lifecycle: Lifecycle = request.app.state.lifecycle
    return lifecycle


def get_project_manager(request: Request) -> ProjectManager:
    return get_lifecycle(request).manager


def get_git_manager(request: Request) -> GitManager:
    return get_lifecycle(request).git


def get_store(request: Request) -> SQLiteStore:
    return get_lifecycle(request).store
