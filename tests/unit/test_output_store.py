"""Tests for BuildOutputStore — path mapping, reset, idempotent purge."""

from __future__ import annotations

from pathlib import Path

import pytest

from extsync.core.output_store import BuildOutputStore, OutputPathError
from tests.fakes import FakeExtension


def _populate(store: BuildOutputStore, folder_id: str) -> Path:
    path = store.output_path_for(folder_id)
    path.mkdir(parents=True)
    (path / "main.js").write_text("// built")
    return path


class TestOutputPaths:
    def test_output_path_for_extension(self, output_store: BuildOutputStore):
        ext = FakeExtension("checkout-ui", folder_id="checkout-ui-123")
        assert output_store.output_path_for(ext) == output_store.root / "checkout-ui-123"

    def test_output_path_for_folder_id(self, output_store: BuildOutputStore):
        assert output_store.output_path_for("abc") == output_store.root / "abc"

    def test_output_path_is_pure(self, output_store: BuildOutputStore):
        output_store.output_path_for("abc")
        assert not output_store.root.exists()

    @pytest.mark.parametrize("folder_id", ["", "../escape", "/absolute", "a/../../b"])
    def test_invalid_folder_ids(self, output_store: BuildOutputStore, folder_id: str):
        with pytest.raises(OutputPathError):
            output_store.output_path_for(folder_id)


class TestReset:
    @pytest.mark.asyncio
    async def test_reset_creates_root(self, output_store: BuildOutputStore):
        await output_store.reset()
        assert output_store.root.is_dir()
        assert list(output_store.root.iterdir()) == []

    @pytest.mark.asyncio
    async def test_reset_wipes_previous_output(self, output_store: BuildOutputStore):
        stale = _populate(output_store, "left-over")
        await output_store.reset()
        assert not stale.exists()
        assert output_store.root.is_dir()

    @pytest.mark.asyncio
    async def test_reset_error_propagates(self, tmp_path: Path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        store = BuildOutputStore(blocker / "bundle")
        with pytest.raises(OSError):
            await store.reset()


class TestPurge:
    @pytest.mark.asyncio
    async def test_purge_removes_only_given(self, output_store: BuildOutputStore):
        a = _populate(output_store, "a")
        b = _populate(output_store, "b")
        await output_store.purge([FakeExtension("a")])
        assert not a.exists()
        assert b.exists()

    @pytest.mark.asyncio
    async def test_purge_is_idempotent(self, output_store: BuildOutputStore):
        a = _populate(output_store, "a")
        await output_store.purge(["a"])
        await output_store.purge(["a"])
        assert not a.exists()

    @pytest.mark.asyncio
    async def test_purge_missing_root(self, output_store: BuildOutputStore):
        await output_store.purge(["never-built"])
        assert not output_store.root.exists()

    @pytest.mark.asyncio
    async def test_purge_nothing(self, output_store: BuildOutputStore):
        await output_store.purge([])
