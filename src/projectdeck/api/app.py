"""FastAPI bridge between a UI process and the lifecycle manager."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from projectdeck.api.routes.events import router as events_router
from projectdeck.api.routes.projects import router as projects_router
from projectdeck.api.routes.worktrees import router as worktrees_router
from projectdeck.config import Settings
from projectdeck.core.lifecycle import Lifecycle

logger = logging.getLogger(__name__)


def create_app(lifecycle: Lifecycle | None = None, settings: Settings | None = None) -> FastAPI:
    if lifecycle is None:
        lifecycle = Lifecycle.from_settings(settings or Settings.from_env())

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        await lifecycle.start()
        try:
            yield
        finally:
            await lifecycle.stop()

    app = FastAPI(title="projectdeck", version="0.1.0", lifespan=lifespan)
    app.state.lifecycle = lifecycle
    app.include_router(projects_router)
    app.include_router(worktrees_router)
    app.include_router(events_router)

    @app.get("/api/v1/health", tags=["system"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


def run() -> None:
    logging.basicConfig(level=logging.INFO)
    settings = Settings.from_env()
    logger.info("Serving projectdeck on %s:%d", settings.host, settings.port)
    uvicorn.run(create_app(settings=settings), host=settings.host, port=settings.port)
