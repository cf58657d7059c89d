"""extsync data models — all Pydantic v2, all frozen (immutable)."""

from extsync.models.app import AppSnapshot, Extension
from extsync.models.build import (
    BuildError,
    BuildMessage,
    BuildOk,
    BuildResult,
    ExtensionBuildOptions,
    IncrementalBuildOptions,
    RebuildResult,
    summarize_results,
)
from extsync.models.events import AppEvent, EventType, ExtensionEvent
from extsync.models.session import (
    VALID_TRANSITIONS,
    SessionState,
    SessionTransition,
)

__all__ = [
    # app
    "AppSnapshot",
    "Extension",
    # events
    "EventType",
    "ExtensionEvent",
    "AppEvent",
    # build
    "ExtensionBuildOptions",
    "IncrementalBuildOptions",
    "BuildMessage",
    "RebuildResult",
    "BuildOk",
    "BuildError",
    "BuildResult",
    "summarize_results",
    # session
    "SessionState",
    "SessionTransition",
    "VALID_TRANSITIONS",
]
