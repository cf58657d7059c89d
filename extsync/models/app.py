"""Application snapshot and the extension contract it holds.

Extensions are owned by the external reconciler. The watcher only ever
holds an ``AppSnapshot`` and replaces it wholesale on every batch.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, model_validator

if TYPE_CHECKING:
    from extsync.models.build import ExtensionBuildOptions


@runtime_checkable
class Extension(Protocol):
    """Protocol for a buildable extension.

    Any object exposing a stable ``handle``, an ``is_incremental`` flag
    and the two methods below satisfies this protocol.  Whether an
    extension is incremental is fixed when it is created.
    """

    handle: str
    is_incremental: bool

    def output_folder_id(self) -> str:
        """Return the name of this extension's folder under the bundle root."""
        ...

    async def build_for_bundle(
        self, options: ExtensionBuildOptions, output_path: Path
    ) -> None:
        """Build the extension into *output_path* (non-incremental backend)."""
        ...


class AppSnapshot(BaseModel):
    """Immutable view of an application and its extensions.

    Parameters
    ----------
    directory:
        Root directory of the application.
    extensions:
        Every real extension of the app.  Handles must be unique.
    dotenv:
        Variables loaded from the app's ``.env`` file, if any.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    directory: Path
    extensions: tuple[Extension, ...] = ()
    dotenv: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _unique_handles(self) -> AppSnapshot:
        seen: set[str] = set()
        for ext in self.extensions:
            if ext.handle in seen:
                raise ValueError(f"Duplicate extension handle: {ext.handle!r}")
            seen.add(ext.handle)
        return self

    @property
    def handles(self) -> list[str]:
        return [ext.handle for ext in self.extensions]

    @property
    def incremental_extensions(self) -> list[Extension]:
        """Extensions built through a live incremental context."""
        return [ext for ext in self.extensions if ext.is_incremental]

    def extension(self, handle: str) -> Extension | None:
        """Return the extension with *handle*, or None."""
        for ext in self.extensions:
            if ext.handle == handle:
                return ext
        return None
