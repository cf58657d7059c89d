"""Tests for concurrent output scopes and PrefixedStream."""

from __future__ import annotations

import asyncio
import io

import pytest

from extsync.output import (
    PrefixedStream,
    concurrent_output_context,
    current_prefix,
    prefix_style,
)


class TestPrefixedStream:
    def test_passthrough_outside_scope(self):
        buffer = io.StringIO()
        stream = PrefixedStream(buffer)
        stream.write("plain text\n")
        assert buffer.getvalue() == "plain text\n"

    @pytest.mark.asyncio
    async def test_lines_prefixed_inside_scope(self):
        buffer = io.StringIO()
        stream = PrefixedStream(buffer)
        async with concurrent_output_context("ext-a"):
            stream.write("one\ntwo\n")
        assert buffer.getvalue().splitlines() == ["ext-a │ one", "ext-a │ two"]

    @pytest.mark.asyncio
    async def test_partial_line_buffered_until_flush(self):
        buffer = io.StringIO()
        stream = PrefixedStream(buffer)
        async with concurrent_output_context("ext-a"):
            stream.write("half")
            assert buffer.getvalue() == ""
            stream.write(" done")
            stream.flush()
        assert buffer.getvalue() == "ext-a │ half done\n"

    @pytest.mark.asyncio
    async def test_concurrent_scopes_keep_their_prefix(self):
        buffer = io.StringIO()
        stream = PrefixedStream(buffer)

        async def build(handle: str) -> None:
            async with concurrent_output_context(handle):
                for i in range(3):
                    stream.write(f"{handle} step {i}\n")
                    await asyncio.sleep(0)

        await asyncio.gather(build("alpha"), build("beta"))

        for line in buffer.getvalue().splitlines():
            prefix, _, body = line.partition(" │ ")
            assert body.startswith(prefix)

    @pytest.mark.asyncio
    async def test_ansi_kept_by_default(self):
        buffer = io.StringIO()
        stream = PrefixedStream(buffer)
        async with concurrent_output_context("ext", strip_ansi=False):
            stream.write("\x1b[31mred\x1b[0m\n")
        assert buffer.getvalue().endswith(" │ \x1b[31mred\x1b[0m\n")

    @pytest.mark.asyncio
    async def test_strip_ansi(self):
        buffer = io.StringIO()
        stream = PrefixedStream(buffer)
        async with concurrent_output_context("ext", strip_ansi=True):
            stream.write("\x1b[31mred\x1b[0m\n")
        assert buffer.getvalue() == "ext │ red\n"


class TestScopes:
    @pytest.mark.asyncio
    async def test_current_prefix_restored(self):
        assert current_prefix() is None
        async with concurrent_output_context("outer"):
            assert current_prefix() == "outer"
            async with concurrent_output_context("inner"):
                assert current_prefix() == "inner"
            assert current_prefix() == "outer"
        assert current_prefix() is None

    def test_prefix_style_is_stable(self):
        assert prefix_style("checkout-ui") == prefix_style("checkout-ui")
