"""Concurrent output scopes for interleaved build logs.

Several extensions build at the same time and all write to the same
stdout/stderr.  ``concurrent_output_context`` marks the current asyncio
task with a prefix (the extension handle), and ``PrefixedStream``
writes each line it receives behind the prefix of the task that wrote
it.  The prefix is coloured by a Rich console; the line itself is passed
through with its own ANSI escapes unless the scope strips them.

Usage
-----
>>> stdout = PrefixedStream(sys.stdout)
>>> async with concurrent_output_context("my-ext"):
...     stdout.write("bundled in 20ms\\n")
my-ext │ bundled in 20ms
"""

from __future__ import annotations

import sys
import zlib
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from rich.console import Console
from rich.text import Text

_PREFIX_STYLES: tuple[str, ...] = (
    "cyan",
    "magenta",
    "green",
    "yellow",
    "blue",
    "bright_cyan",
    "bright_magenta",
    "bright_green",
)

_SEPARATOR = " │ "


class OutputContextOptions(BaseModel):
    """Streams the watcher writes build output and errors to."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    stdout: Any = Field(default_factory=lambda: sys.stdout)
    stderr: Any = Field(default_factory=lambda: sys.stderr)


class OutputScope(BaseModel):
    """The prefix and ANSI policy active for the current task."""

    model_config = ConfigDict(frozen=True)

    prefix: str
    strip_ansi: bool = False


_current_scope: ContextVar[OutputScope | None] = ContextVar(
    "extsync_output_scope", default=None
)


def current_scope() -> OutputScope | None:
    return _current_scope.get()


def current_prefix() -> str | None:
    scope = _current_scope.get()
    return scope.prefix if scope else None


@asynccontextmanager
async def concurrent_output_context(
    prefix: str, *, strip_ansi: bool = False
) -> AsyncIterator[OutputScope]:
    """Attribute all ``PrefixedStream`` output inside the block to *prefix*.

    Each asyncio task runs in its own context copy, so concurrent
    scopes never see each other's prefix.
    """
    scope = OutputScope(prefix=prefix, strip_ansi=strip_ansi)
    token = _current_scope.set(scope)
    try:
        yield scope
    finally:
        _current_scope.reset(token)


def prefix_style(prefix: str) -> str:
    """Stable colour for a prefix, so one extension keeps one colour."""
    return _PREFIX_STYLES[zlib.crc32(prefix.encode("utf-8")) % len(_PREFIX_STYLES)]


class PrefixedStream:
    """Text stream wrapper that prefixes complete lines with the scope.

    Partial lines are buffered per prefix until a newline or
    ``flush()``.  Outside any scope, text is passed through unchanged.

    Parameters
    ----------
    stream:
        The underlying text stream (e.g. ``sys.stdout``).
    """

    def __init__(self, stream: Any) -> None:
        self._stream = stream
        self._console = Console(file=stream, highlight=False, soft_wrap=True)
        self._pending: dict[str, str] = {}

    @property
    def stream(self) -> Any:
        return self._stream

    def write(self, text: str) -> int:
        scope = _current_scope.get()
        if scope is None:
            self._stream.write(text)
            return len(text)

        buffered = self._pending.pop(scope.prefix, "") + text
        *lines, rest = buffered.split("\n")
        for line in lines:
            self._emit(scope, line)
        if rest:
            self._pending[scope.prefix] = rest
        return len(text)

    def flush(self) -> None:
        scope = _current_scope.get()
        if scope is not None:
            rest = self._pending.pop(scope.prefix, "")
            if rest:
                self._emit(scope, rest)
        self._stream.flush()

    def isatty(self) -> bool:
        return False

    def _emit(self, scope: OutputScope, line: str) -> None:
        # Only the prefix is styled by Rich; the line keeps its own escapes.
        if scope.strip_ansi:
            line = Text.from_ansi(line).plain
        with self._console.capture() as capture:
            self._console.print(
                Text(scope.prefix, style=prefix_style(scope.prefix)), end=""
            )
        self._stream.write(f"{capture.get()}{_SEPARATOR}{line}\n")
