"""Observer list and one-shot readiness latch.

Listeners may be plain callables or coroutine functions.  A failing
listener is logged and skipped; the remaining listeners still run.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

Listener = Callable[..., "Awaitable[None] | None"]


def _listener_name(listener: Listener) -> str:
    return getattr(listener, "__qualname__", None) or repr(listener)


async def _invoke(listener: Listener, *args: Any) -> bool:
    """Call *listener*, awaiting it if needed.  Returns False on failure."""
    try:
        result = listener(*args)
        if inspect.isawaitable(result):
            await result
    except Exception:  # noqa: BLE001
        logger.exception("Listener %s failed", _listener_name(listener))
        return False
    return True


class ListenerRegistry:
    """Ordered list of listeners, notified first-registered-first-invoked.

    Registering the same callable twice keeps both registrations.
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def add(self, listener: Listener) -> None:
        self._listeners.append(listener)

    @property
    def listeners(self) -> list[Listener]:
        """Return a copy of the registered listener list."""
        return list(self._listeners)

    def __len__(self) -> int:
        return len(self._listeners)

    async def notify(self, *args: Any) -> int:
        """Invoke every listener with *args*.

        Returns the number of listeners that failed.
        """
        failures = 0
        for listener in list(self._listeners):
            if not await _invoke(listener, *args):
                failures += 1
        if failures:
            logger.warning(
                "%d/%d listener(s) failed", failures, len(self._listeners)
            )
        return failures


class ReadinessLatch:
    """Fires its listeners exactly once.

    Listeners registered before ``fire()`` are held until it runs;
    listeners registered afterwards are invoked immediately.
    """

    def __init__(self) -> None:
        self._pending: list[Listener] = []
        self._fired = False
        self._late_tasks: set[asyncio.Task[None]] = set()

    @property
    def fired(self) -> bool:
        return self._fired

    def add(self, listener: Listener) -> None:
        if not self._fired:
            self._pending.append(listener)
            return
        self._invoke_late(listener)

    async def fire(self) -> None:
        """Release every held listener.  Later calls are no-ops."""
        if self._fired:
            return
        self._fired = True
        pending, self._pending = self._pending, []
        for listener in pending:
            await _invoke(listener)

    async def drain(self) -> None:
        """Wait for listeners that were invoked after the latch fired."""
        if self._late_tasks:
            await asyncio.gather(*list(self._late_tasks))

    def _invoke_late(self, listener: Listener) -> None:
        try:
            result = listener()
        except Exception:  # noqa: BLE001
            logger.exception("Listener %s failed", _listener_name(listener))
            return
        if not inspect.isawaitable(result):
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(_await(result))
            return
        task = loop.create_task(_await(result))
        self._late_tasks.add(task)
        task.add_done_callback(self._late_tasks.discard)


async def _await(awaitable: Awaitable[Any]) -> None:
    try:
        await awaitable
    except Exception:  # noqa: BLE001
        logger.exception("Listener failed")
