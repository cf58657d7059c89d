"""Reconciled change events delivered to the watcher.

An ``AppEvent`` is the result of reconciling one group of file-system
changes.  It carries the updated app and every affected extension.
Since an extension folder can hold several extensions defined in the
same toml, one file change can touch many extensions, so an event
always carries a list.

``start_time`` is a ``time.monotonic()`` reading taken when the first
raw file-system event of the group was received.  Consumers use it to
measure how long processing took; the watcher itself ignores it.
"""

from __future__ import annotations

import time
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from extsync.models.app import AppSnapshot, Extension


class EventType(str, Enum):
    """How an extension changed in a reconciled batch."""

    CREATED = "created"
    UPDATED = "changed"
    DELETED = "deleted"


class ExtensionEvent(BaseModel):
    """One extension-level change."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    type: EventType
    extension: Extension


class AppEvent(BaseModel):
    """A reconciled batch: the new app plus its extension changes."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    app: AppSnapshot
    extension_events: tuple[ExtensionEvent, ...] = ()
    path: str = ""
    start_time: float = Field(default_factory=time.monotonic)

    @property
    def is_empty(self) -> bool:
        return not self.extension_events

    @property
    def affected_extensions(self) -> list[Extension]:
        """Created or updated extensions, in reconciliation order."""
        return [
            ev.extension
            for ev in self.extension_events
            if ev.type != EventType.DELETED
        ]

    @property
    def deleted_extensions(self) -> list[Extension]:
        return [
            ev.extension
            for ev in self.extension_events
            if ev.type == EventType.DELETED
        ]

    def elapsed_ms(self, now: float | None = None) -> float:
        """Milliseconds since the triggering file-system event was seen."""
        now = time.monotonic() if now is None else now
        return (now - self.start_time) * 1000.0
