"""Reconciled event sources.

The watcher consumes ``AppEvent`` batches from an ``AppEventSource``.
The file-system notifier and the reconciler that produce them live
outside this package; ``QueueEventSource`` is an in-process source they
(or tests) can publish into.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

from extsync.models.app import AppSnapshot
from extsync.models.events import AppEvent

logger = logging.getLogger(__name__)

AppEventHandler = Callable[[AppEvent], "Awaitable[None] | None"]


@runtime_checkable
class AppEventSource(Protocol):
    """Delivers reconciled batches to a single handler.

    Implementations should await the handler before delivering the next
    batch.  The watcher serializes batches itself as well, so a source
    that does not wait is still safe.
    """

    async def subscribe(self, app: AppSnapshot, handler: AppEventHandler) -> None:
        """Start delivering batches for *app* to *handler*."""
        ...


class SourceClosedError(RuntimeError):
    """Raised when publishing to a closed source."""


class QueueEventSource:
    """``asyncio.Queue`` backed source delivering batches one at a time.

    Each batch is handed to the subscribed handler and awaited before
    the next one is taken off the queue.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[AppEvent | None] = asyncio.Queue()
        self._handler: AppEventHandler | None = None
        self._task: asyncio.Task[None] | None = None
        self._closed = False
        self.app: AppSnapshot | None = None

    @property
    def is_subscribed(self) -> bool:
        return self._handler is not None

    async def subscribe(self, app: AppSnapshot, handler: AppEventHandler) -> None:
        if self._handler is not None:
            raise RuntimeError("QueueEventSource supports a single subscriber")
        self.app = app
        self._handler = handler
        self._task = asyncio.create_task(self._deliver_loop())

    async def publish(self, event: AppEvent) -> None:
        if self._closed:
            raise SourceClosedError("Cannot publish to a closed event source")
        await self._queue.put(event)

    async def join(self) -> None:
        """Wait until every published batch has been handled."""
        await self._queue.join()

    async def close(self) -> None:
        """Stop delivery after the batch currently being handled."""
        if self._closed:
            return
        self._closed = True
        if self._task is not None:
            await self._queue.put(None)
            await self._task
            self._task = None

    async def _deliver_loop(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                if event is None:
                    return
                await self._dispatch(event)
            finally:
                self._queue.task_done()

    async def _dispatch(self, event: AppEvent) -> None:
        if self._handler is None:
            raise RuntimeError("QueueEventSource has no subscribed handler")
        try:
            result = self._handler(event)
            if inspect.isawaitable(result):
                await result
        except Exception:  # noqa: BLE001
            logger.exception("Event handler raised for change at %s", event.path)
