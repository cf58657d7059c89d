"""Build output store — one subdirectory per extension.

Storage layout: {root}/{extension.output_folder_id()}/...
The contents of each subdirectory are written by the build backends.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from collections.abc import Iterable
from pathlib import Path

from extsync.models.app import Extension

logger = logging.getLogger(__name__)


class OutputPathError(ValueError):
    """Raised when a folder id would resolve outside the output root."""


def _force_remove(path: Path) -> None:
    """Recursively delete *path*; a missing path is not an error."""
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass
    except NotADirectoryError:
        path.unlink(missing_ok=True)


class BuildOutputStore:
    """Maps extension folder ids to output directories.

    Parameters
    ----------
    root:
        The bundle directory shared by every extension build.
    """

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def output_path_for(self, extension: Extension | str) -> Path:
        """Return the output directory for an extension or folder id.

        Pure: nothing is created on disk.
        """
        folder_id = (
            extension if isinstance(extension, str) else extension.output_folder_id()
        )
        folder = Path(folder_id)
        if not folder_id or folder.is_absolute() or ".." in folder.parts:
            raise OutputPathError(f"Invalid output folder id: {folder_id!r}")
        return self._root / folder

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def reset(self) -> None:
        """Delete any previous bundle directory and create an empty one.

        Errors propagate: a usable output directory is required before
        anything can be built.
        """
        if self._root.exists():
            logger.debug("Removing previous build output at %s", self._root)
            await asyncio.to_thread(_force_remove, self._root)
        await asyncio.to_thread(self._root.mkdir, parents=True, exist_ok=True)

    async def purge(self, extensions: Iterable[Extension | str]) -> None:
        """Remove the output directories of *extensions* concurrently.

        Idempotent: purging an already-removed directory succeeds.
        """
        paths = [self.output_path_for(ext) for ext in extensions]
        if not paths:
            return
        await asyncio.gather(
            *(asyncio.to_thread(_force_remove, path) for path in paths)
        )
        logger.debug("Purged %d output folder(s)", len(paths))
