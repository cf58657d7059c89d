"""App event watcher — the entry point of a development watch session.

Watching an app has three steps:

1. An external file-system notifier detects changes and an external
   reconciler turns them into ``AppEvent`` batches (the updated app plus
   created, updated and deleted extensions).
2. ``AppEventWatcher`` (this module) receives each batch, rebuilds the
   created/updated extensions and removes the build output of deleted
   ones.
3. Consumers registered with ``on_event`` receive the processed batch.

Examples:

1. A file is updated in an extension folder (``extensions/my_ext/index.js``)
   -> the batch carries an UPDATED event for every extension in ``my_ext``
   -> those extensions are rebuilt, then listeners are notified.

2. An extension folder is removed (``extensions/my_ext``)
   -> the batch carries DELETED events for the extensions in ``my_ext``
   -> their folders under the bundle root are purged, then listeners
      are notified.

3. An extension toml is edited so one extension is added and another
   removed
   -> the batch carries one CREATED and one DELETED event
   -> the new extension is built while the old output is purged.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from pathlib import Path

from extsync.config import WatcherSettings, configure_logging
from extsync.config import settings as default_settings
from extsync.core.dispatcher import BuildDispatcher
from extsync.core.incremental import ContextFactory, IncrementalContextManager
from extsync.core.listeners import Listener, ListenerRegistry, ReadinessLatch
from extsync.core.output_store import BuildOutputStore
from extsync.core.session_machine import SessionMachine
from extsync.core.source import AppEventSource
from extsync.models.app import AppSnapshot, Extension
from extsync.models.build import (
    BuildError,
    BuildOk,
    IncrementalBuildOptions,
    summarize_results,
)
from extsync.models.events import AppEvent
from extsync.models.session import SessionState
from extsync.output import OutputContextOptions

logger = logging.getLogger(__name__)


class AppEventWatcher:
    """Keeps an app's extension builds in sync with reconciled changes.

    Parameters
    ----------
    app:
        The app snapshot known at start.
    source:
        Where reconciled ``AppEvent`` batches come from.
    context_factory:
        Backend creating incremental contexts for eligible extensions.
    app_url:
        Public URL of the dev session.  Defaults to ``settings.app_url``.
    options:
        Output streams.  Defaults to ``sys.stdout`` / ``sys.stderr``.
    build_output_path:
        Bundle root.  Defaults to ``settings.bundle_dir`` under the app
        directory.
    settings:
        Watcher settings.  The module-level ``extsync.config.settings``
        if not provided.  ``settings.log_level`` is applied to the
        ``extsync`` logger.
    """

    def __init__(
        self,
        app: AppSnapshot,
        source: AppEventSource,
        context_factory: ContextFactory,
        *,
        app_url: str | None = None,
        options: OutputContextOptions | None = None,
        build_output_path: Path | None = None,
        settings: WatcherSettings | None = None,
    ) -> None:
        self._settings = settings or default_settings
        configure_logging(self._settings.log_level)
        self._app = app
        self._source = source
        self._app_url = app_url if app_url is not None else self._settings.app_url
        self._options = options or OutputContextOptions()

        # Core subsystems
        self.output_store = BuildOutputStore(
            build_output_path or self._settings.bundle_path_for(app.directory)
        )
        self.contexts = IncrementalContextManager(
            context_factory,
            IncrementalBuildOptions(
                output_path=self.output_store.root,
                dotenv=dict(app.dotenv),
                app_url=self._app_url,
                stdout=self._options.stdout,
                stderr=self._options.stderr,
            ),
        )
        self.dispatcher = BuildDispatcher(
            self.contexts, self.output_store, self._options, app_url=self._app_url
        )
        self.session = SessionMachine()

        # Listeners
        self._event_listeners = ListenerRegistry()
        self._ready_latch = ReadinessLatch()

        # Latest result per extension handle
        self._results: dict[str, BuildOk | BuildError] = {}

        self._start_lock = asyncio.Lock()
        self._batch_lock = asyncio.Lock()
        self._start_error: BaseException | None = None

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def app(self) -> AppSnapshot:
        """The current app snapshot."""
        return self._app

    @property
    def build_output_path(self) -> Path:
        return self.output_store.root

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def results(self) -> dict[str, BuildOk | BuildError]:
        """Latest build result for every extension built so far."""
        return dict(self._results)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Prepare the bundle directory, build everything and start watching.

        Safe to call more than once or concurrently; only the first call
        does the work.  Callers that arrive while it runs wait for it.
        A failure before the session is ready, such as an unusable
        output directory, propagates to every caller.
        """
        async with self._start_lock:
            if self._start_error is not None:
                raise self._start_error
            if self.session.is_started:
                return
            self.session.transition(SessionState.STARTING)
            logger.info("Starting watch session for %s", self._app.directory)
            try:
                await self._start_session()
            except Exception as exc:
                self._start_error = exc
                raise
            self.session.transition(SessionState.READY)
            logger.info("Watch session ready (output: %s)", self.build_output_path)
        await self._ready_latch.fire()

    async def _start_session(self) -> None:
        # A leftover bundle from a crashed session is wiped here.
        await self.output_store.reset()

        app = self._app
        await self.contexts.create_contexts(app.incremental_extensions)

        # Initial build failures are reported per extension, never fatal.
        results = await self._build(app.extensions, app)
        ok, failed = summarize_results(results)
        logger.info("Initial build finished: %d ok, %d failed", ok, failed)

        await self._source.subscribe(app, self.handle_app_event)

    async def stop(self) -> None:
        """Stop watching and dispose incremental contexts.  Idempotent."""
        async with self._start_lock:
            if self.session.is_stopped:
                return
            self.session.transition(SessionState.STOPPED)

        close = getattr(self._source, "close", None)
        if close is not None:
            result = close()
            if inspect.isawaitable(result):
                await result

        # Let an in-flight batch finish before tearing contexts down.
        async with self._batch_lock:
            await self.contexts.dispose_all()
        logger.info("Watch session stopped")

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def on_event(self, listener: Listener) -> AppEventWatcher:
        """Register a listener for processed ``AppEvent`` batches.

        Listeners run in registration order, once per processed batch.
        A listener that raises is logged and does not affect the others.
        """
        self._event_listeners.add(listener)
        return self

    def on_start(self, listener: Listener) -> AppEventWatcher:
        """Register a listener for the one-time ready notification.

        If the session is already ready the listener is invoked right
        away.
        """
        self._ready_latch.add(listener)
        return self

    # ------------------------------------------------------------------
    # Batch handling
    # ------------------------------------------------------------------

    async def handle_app_event(self, app_event: AppEvent) -> None:
        """Process one reconciled batch.

        Batches are handled one at a time, in arrival order.  Errors are
        logged and written to stderr; the session keeps listening.
        """
        async with self._batch_lock:
            if self.session.is_stopped:
                logger.debug("Ignoring change at %s: session stopped", app_event.path)
                return
            if app_event.is_empty:
                logger.debug(
                    "Change detected at %s, but no extensions were affected",
                    app_event.path,
                )
                return

            try:
                await self._process(app_event)
            except Exception as exc:
                logger.exception("Error handling event for %s", app_event.path)
                self._options.stderr.write(f"Error handling event: {exc}\n")
                return

            await self._event_listeners.notify(app_event)

    async def _process(self, app_event: AppEvent) -> None:
        self._app = app_event.app
        await self.contexts.update_contexts(app_event)

        app = self._app
        affected = app_event.affected_extensions
        deleted = app_event.deleted_extensions

        # Both sides finish before the batch is released, even if one fails.
        results, purged = await asyncio.gather(
            self._build(affected, app),
            self._purge(deleted),
            return_exceptions=True,
        )
        for outcome in (purged, results):
            if isinstance(outcome, BaseException):
                raise outcome

        ok, failed = summarize_results(results)
        logger.info(
            "Processed change at %s: %d built, %d failed, %d removed",
            app_event.path,
            ok,
            failed,
            len(deleted),
        )

    async def _build(
        self, extensions: list[Extension] | tuple[Extension, ...], app: AppSnapshot
    ) -> list[BuildOk | BuildError]:
        results = await self.dispatcher.build_all(extensions, app)
        for result in results:
            self._results[result.handle] = result
        return results

    async def _purge(self, extensions: list[Extension]) -> None:
        await self.output_store.purge(extensions)
        for ext in extensions:
            self._results.pop(ext.handle, None)
