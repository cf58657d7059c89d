"""Incremental build context registry.

Extensions flagged ``is_incremental`` get a live context from a
pluggable ``ContextFactory``.  The registry keeps one context per
handle and routes rebuilds to it instead of a fresh build.

Priority chain for building an extension:
1. A live ``IncrementalContext`` for its handle, if the registry has one.
2. The extension's own non-incremental ``build_for_bundle``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from extsync.models.app import Extension
from extsync.models.build import IncrementalBuildOptions, RebuildResult
from extsync.models.events import AppEvent

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class IncrementalContext(Protocol):
    """A reusable compilation session for one extension."""

    async def rebuild(self) -> RebuildResult:
        """Rebuild from the current sources.

        Errors are reported in the result, and are expected to have
        been printed by the backend already.
        """
        ...

    async def dispose(self) -> None:
        """Release the session's resources."""
        ...


@runtime_checkable
class ContextFactory(Protocol):
    """Creates an ``IncrementalContext`` for an eligible extension."""

    async def create(
        self, extension: Extension, options: IncrementalBuildOptions
    ) -> IncrementalContext:
        """Open a context writing below ``options.output_path``."""
        ...


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class IncrementalContextManager:
    """Tracks live incremental contexts keyed by extension handle.

    Parameters
    ----------
    factory:
        Backend used to create contexts.
    options:
        Output path, dotenv variables, app URL and streams handed to
        the factory for every context it creates.
    """

    def __init__(
        self, factory: ContextFactory, options: IncrementalBuildOptions
    ) -> None:
        self._factory = factory
        self._options = options
        self._contexts: dict[str, IncrementalContext] = {}

    @property
    def options(self) -> IncrementalBuildOptions:
        return self._options

    def context_for(self, handle: str) -> IncrementalContext | None:
        return self._contexts.get(handle)

    @property
    def handles(self) -> list[str]:
        return list(self._contexts)

    def __contains__(self, handle: object) -> bool:
        return handle in self._contexts

    def __len__(self) -> int:
        return len(self._contexts)

    # ------------------------------------------------------------------
    # Create / update / dispose
    # ------------------------------------------------------------------

    async def create_contexts(self, extensions: Iterable[Extension]) -> None:
        """Create a context for every eligible extension without one.

        Every creation runs to completion.  Contexts that were created
        are registered even if a sibling failed, so ``dispose_all``
        still reaches them; the first failure is then re-raised.
        """
        eligible = [
            ext
            for ext in extensions
            if ext.is_incremental and ext.handle not in self._contexts
        ]
        if not eligible:
            return

        outcomes = await asyncio.gather(
            *(self._factory.create(ext, self._options) for ext in eligible),
            return_exceptions=True,
        )
        created: list[str] = []
        errors: list[BaseException] = []
        for ext, outcome in zip(eligible, outcomes):
            if isinstance(outcome, BaseException):
                errors.append(outcome)
                continue
            self._contexts[ext.handle] = outcome
            created.append(ext.handle)

        if created:
            logger.debug(
                "Created %d incremental context(s): %s",
                len(created),
                ", ".join(created),
            )
        if errors:
            raise errors[0]

    async def update_contexts(self, app_event: AppEvent) -> None:
        """Reconcile contexts with the snapshot carried by *app_event*.

        Contexts for handles that vanished or stopped being eligible are
        disposed; eligible extensions without a context get one; the
        rest are left untouched.  New contexts receive the dotenv
        variables of the new snapshot.
        """
        self._options = self._options.model_copy(
            update={"dotenv": dict(app_event.app.dotenv)}
        )
        eligible = {ext.handle for ext in app_event.app.incremental_extensions}
        stale = [handle for handle in self._contexts if handle not in eligible]
        await self._dispose(stale)
        await self.create_contexts(app_event.app.incremental_extensions)

    async def dispose_all(self) -> None:
        await self._dispose(list(self._contexts))

    async def _dispose(self, handles: list[str]) -> None:
        contexts = [self._contexts.pop(handle) for handle in handles]
        if not contexts:
            return
        await asyncio.gather(*(context.dispose() for context in contexts))
        logger.debug("Disposed incremental context(s): %s", ", ".join(handles))
