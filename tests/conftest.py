"""Shared test fixtures for extsync."""

from __future__ import annotations

import io
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from extsync.config import WatcherSettings
from extsync.core.incremental import IncrementalContextManager
from extsync.core.output_store import BuildOutputStore
from extsync.core.watcher import AppEventWatcher
from extsync.models.app import AppSnapshot
from extsync.models.build import IncrementalBuildOptions
from extsync.models.events import AppEvent, EventType, ExtensionEvent
from extsync.output import OutputContextOptions
from tests.fakes import FakeContextFactory, RecordingSource


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def app_dir(tmp_path: Path) -> Path:
    """Provide an app directory inside the test's temp directory."""
    directory = tmp_path / "my-app"
    directory.mkdir()
    return directory


@pytest.fixture
def bundle_dir(tmp_path: Path) -> Path:
    return tmp_path / "bundle"


@pytest.fixture
def output_store(bundle_dir: Path) -> BuildOutputStore:
    return BuildOutputStore(bundle_dir)


@pytest.fixture
def context_factory() -> FakeContextFactory:
    return FakeContextFactory()


@pytest.fixture
def streams() -> OutputContextOptions:
    """Output options backed by in-memory streams."""
    return OutputContextOptions(stdout=io.StringIO(), stderr=io.StringIO())


@pytest.fixture
def incremental_options(
    bundle_dir: Path, streams: OutputContextOptions
) -> IncrementalBuildOptions:
    return IncrementalBuildOptions(
        output_path=bundle_dir,
        app_url="https://dev.example.com",
        stdout=streams.stdout,
        stderr=streams.stderr,
    )


@pytest.fixture
def contexts(
    context_factory: FakeContextFactory,
    incremental_options: IncrementalBuildOptions,
) -> IncrementalContextManager:
    return IncrementalContextManager(context_factory, incremental_options)


@pytest.fixture
def source() -> RecordingSource:
    return RecordingSource()


@pytest.fixture
def make_app(app_dir: Path) -> Callable[..., AppSnapshot]:
    """Factory fixture: build an AppSnapshot from extensions."""

    def _factory(*extensions: Any, **overrides: Any) -> AppSnapshot:
        defaults: dict[str, Any] = {"directory": app_dir, "extensions": extensions}
        defaults.update(overrides)
        return AppSnapshot(**defaults)

    return _factory


@pytest.fixture
def make_event() -> Callable[..., AppEvent]:
    """Factory fixture: build an AppEvent from ``(EventType, extension)`` pairs."""

    def _factory(
        app: AppSnapshot,
        *changes: tuple[EventType, Any],
        path: str = "/my-app/extensions",
    ) -> AppEvent:
        return AppEvent(
            app=app,
            extension_events=[
                ExtensionEvent(type=kind, extension=ext) for kind, ext in changes
            ],
            path=path,
        )

    return _factory


@pytest.fixture
def make_watcher(
    source: RecordingSource,
    context_factory: FakeContextFactory,
    streams: OutputContextOptions,
    bundle_dir: Path,
) -> Callable[..., AppEventWatcher]:
    """Factory fixture: an AppEventWatcher wired to fakes and temp paths."""

    def _factory(app: AppSnapshot, **overrides: Any) -> AppEventWatcher:
        defaults: dict[str, Any] = {
            "source": source,
            "context_factory": context_factory,
            "options": streams,
            "build_output_path": bundle_dir,
            "app_url": "https://dev.example.com",
            "settings": WatcherSettings(),
        }
        defaults.update(overrides)
        return AppEventWatcher(app, **defaults)

    return _factory
