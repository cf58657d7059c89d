"""Build request and result models."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from extsync.models.app import AppSnapshot


class ExtensionBuildOptions(BaseModel):
    """Parameters handed to an extension's non-incremental build.

    ``stdout`` and ``stderr`` are text streams for human-readable build
    logs.  Interactive task UI is always disabled in watch mode and the
    environment is always ``"development"``.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    app: AppSnapshot
    stdout: Any
    stderr: Any
    use_tasks: bool = False
    environment: Literal["development"] = "development"
    app_url: str | None = None


class IncrementalBuildOptions(BaseModel):
    """Settings shared by every incremental context of a watch session.

    ``output_path`` is the bundle root the watcher resets on start; each
    context writes into its extension's folder below it.  ``dotenv`` is
    refreshed from the snapshot of every processed batch.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    output_path: Path
    dotenv: dict[str, str] = Field(default_factory=dict)
    app_url: str | None = None
    stdout: Any = None
    stderr: Any = None


class BuildMessage(BaseModel):
    """A single structured diagnostic from an incremental backend."""

    model_config = ConfigDict(frozen=True)

    text: str
    location: str | None = None


class RebuildResult(BaseModel):
    """Outcome of an incremental context rebuild."""

    model_config = ConfigDict(frozen=True)

    errors: list[BuildMessage] = []
    warnings: list[BuildMessage] = []


class BuildOk(BaseModel):
    """The extension built successfully."""

    model_config = ConfigDict(frozen=True)

    status: Literal["ok"] = "ok"
    handle: str


class BuildError(BaseModel):
    """The extension failed to build; ``error`` is the combined message."""

    model_config = ConfigDict(frozen=True)

    status: Literal["error"] = "error"
    handle: str
    error: str


BuildResult = Annotated[Union[BuildOk, BuildError], Field(discriminator="status")]


def summarize_results(results: Iterable[BuildOk | BuildError]) -> tuple[int, int]:
    """Return ``(ok_count, error_count)`` for a list of build results."""
    ok = errors = 0
    for result in results:
        if isinstance(result, BuildError):
            errors += 1
        else:
            ok += 1
    return ok, errors
