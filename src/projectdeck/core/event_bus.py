"""In-process publication of lifecycle events."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from projectdeck.db.store import SQLiteStore
from projectdeck.models.events import LifecycleEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[LifecycleEvent], Awaitable[None]]


class EventBus:
    """Fan lifecycle events out to subscriber tasks.

    Each handler runs in its own task so a slow or failing subscriber never
    blocks or breaks the publisher.
    """

    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []
        self._tasks: set[asyncio.Task[None]] = set()

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """Register ``handler``; returns a callable that unsubscribes it."""
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def publish(self, event: LifecycleEvent) -> None:
        for handler in list(self._handlers):
            task = asyncio.create_task(self._dispatch(handler, event))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait until every in-flight handler task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    @staticmethod
    async def _dispatch(handler: EventHandler, event: LifecycleEvent) -> None:
        try:
            await handler(event)
        except Exception:
            logger.exception(
                "Event handler %r failed for %s", handler, event.event_type.value
            )


class EventJournal:
    """Subscriber that appends every event to the durable event table."""

    def __init__(self, store: SQLiteStore) -> None:
        self._store = store

    async def handle_event(self, event: LifecycleEvent) -> None:
        await self._store.append_event(event)
