"""BuildDispatcher — builds every given extension, isolating failures.

Every extension handed to ``build_all`` gets exactly one result.  A
failing build is converted into a ``BuildError`` and never prevents the
other builds from finishing or being reported.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from extsync.core.incremental import IncrementalContextManager
from extsync.core.output_store import BuildOutputStore
from extsync.models.app import AppSnapshot, Extension
from extsync.models.build import (
    BuildError,
    BuildOk,
    ExtensionBuildOptions,
)
from extsync.output import (
    OutputContextOptions,
    PrefixedStream,
    concurrent_output_context,
)

logger = logging.getLogger(__name__)


def _error_message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class BuildDispatcher:
    """Routes each extension to its incremental context or a fresh build.

    Usage
    -----
    >>> dispatcher = BuildDispatcher(contexts, store, options, app_url=url)
    >>> results = await dispatcher.build_all(app.extensions, app)

    Parameters
    ----------
    contexts:
        Registry of live incremental contexts.
    output_store:
        Store whose root every non-incremental build writes into.
    options:
        Streams used for build logs.
    app_url:
        Public URL of the dev session, passed to every build.
    """

    def __init__(
        self,
        contexts: IncrementalContextManager,
        output_store: BuildOutputStore,
        options: OutputContextOptions | None = None,
        *,
        app_url: str | None = None,
    ) -> None:
        self._contexts = contexts
        self._store = output_store
        self._options = options or OutputContextOptions()
        self._app_url = app_url
        self._stdout = PrefixedStream(self._options.stdout)
        self._stderr = PrefixedStream(self._options.stderr)

    async def build_all(
        self, extensions: Iterable[Extension], app: AppSnapshot
    ) -> list[BuildOk | BuildError]:
        """Build all *extensions* concurrently against *app*.

        Returns one result per extension.  Never raises for a build
        failure.
        """
        return list(
            await asyncio.gather(*(self._build_one(ext, app) for ext in extensions))
        )

    async def _build_one(
        self, extension: Extension, app: AppSnapshot
    ) -> BuildOk | BuildError:
        handle = extension.handle
        async with concurrent_output_context(handle, strip_ansi=False):
            try:
                context = self._contexts.context_for(handle)
                if context is not None:
                    rebuild = await context.rebuild()
                    if rebuild.errors:
                        # Already printed by the incremental backend.
                        result: BuildOk | BuildError = BuildError(
                            handle=handle,
                            error="\n".join(msg.text for msg in rebuild.errors),
                        )
                    else:
                        result = BuildOk(handle=handle)
                else:
                    await self._build_extension(extension, app)
                    result = BuildOk(handle=handle)
            except Exception as exc:  # noqa: BLE001
                result = BuildError(handle=handle, error=_error_message(exc))
            finally:
                self._stdout.flush()
                self._stderr.flush()

        if isinstance(result, BuildError):
            logger.warning("Build failed for %s: %s", handle, result.error)
        else:
            logger.debug("Built %s", handle)
        return result

    async def _build_extension(self, extension: Extension, app: AppSnapshot) -> None:
        """Build a non-incremental extension into the shared output root."""
        options = ExtensionBuildOptions(
            app=app,
            stdout=self._stdout,
            stderr=self._stderr,
            use_tasks=False,
            environment="development",
            app_url=self._app_url,
        )
        await extension.build_for_bundle(options, self._store.root)
