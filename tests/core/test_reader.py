"""Tests for reader.py - line splitting of child streams."""

import asyncio
import itertools

import pytest

from shell_hook.core.exceptions import StreamReadError
from shell_hook.core.models import StreamSource
from shell_hook.core.reader import LineReader


def _stream(*chunks: bytes, limit: int = 2**16) -> asyncio.StreamReader:
    stream = asyncio.StreamReader(limit=limit)
    for chunk in chunks:
        stream.feed_data(chunk)
    stream.feed_eof()
    return stream


async def _collect(reader: LineReader) -> list:
    return [line async for line in reader]


class FailingStream:
    """Stream that yields some lines, then raises."""

    def __init__(self, lines: list[bytes], error: Exception):
        self.lines = list(lines)
        self.error = error

    async def readline(self) -> bytes:
        if self.lines:
            return self.lines.pop(0)
        raise self.error

    async def read(self, n: int = -1) -> bytes:
        raise self.error


class TestLineReader:
    """Tests for LineReader."""

    @pytest.mark.asyncio
    async def test_splits_lines(self):
        reader = LineReader(_stream(b"one\ntwo\n"), StreamSource.STDOUT, itertools.count(1))
        lines = await _collect(reader)
        assert [line.text for line in lines] == ["one", "two"]
        assert all(line.source is StreamSource.STDOUT for line in lines)
        assert reader.lines_read == 2
        assert reader.error is None

    @pytest.mark.asyncio
    async def test_lines_split_across_chunks(self):
        reader = LineReader(
            _stream(b"hel", b"lo\nwor", b"ld\n"), StreamSource.STDOUT, itertools.count(1)
        )
        assert [line.text for line in await _collect(reader)] == ["hello", "world"]

    @pytest.mark.asyncio
    async def test_final_line_without_newline_is_kept(self):
        reader = LineReader(_stream(b"a\nb"), StreamSource.STDOUT, itertools.count(1))
        assert [line.text for line in await _collect(reader)] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_strips_crlf(self):
        reader = LineReader(_stream(b"dos\r\nline\r\n"), StreamSource.STDERR, itertools.count(1))
        assert [line.text for line in await _collect(reader)] == ["dos", "line"]

    @pytest.mark.asyncio
    async def test_keeps_empty_lines(self):
        reader = LineReader(_stream(b"a\n\nb\n"), StreamSource.STDOUT, itertools.count(1))
        assert [line.text for line in await _collect(reader)] == ["a", "", "b"]

    @pytest.mark.asyncio
    async def test_invalid_utf8_is_replaced(self):
        reader = LineReader(_stream(b"bad \xff byte\n"), StreamSource.STDOUT, itertools.count(1))
        lines = await _collect(reader)
        assert lines[0].text == "bad � byte"

    @pytest.mark.asyncio
    async def test_empty_stream(self):
        reader = LineReader(_stream(), StreamSource.STDOUT, itertools.count(1))
        assert await _collect(reader) == []
        assert reader.error is None

    @pytest.mark.asyncio
    async def test_shared_counter_orders_both_streams(self):
        """Two readers on one counter never hand out the same number."""
        counter = itertools.count(1)
        out = LineReader(_stream(b"o1\no2\n"), StreamSource.STDOUT, counter)
        err = LineReader(_stream(b"e1\ne2\n"), StreamSource.STDERR, counter)
        lines = await _collect(out) + await _collect(err)
        assert [line.sequence for line in lines] == [1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_overlong_line_stops_with_error(self):
        """A line over the stream limit ends iteration; earlier lines survive."""
        stream = _stream(b"ok\n" + b"x" * 64 + b"\n", limit=8)
        reader = LineReader(stream, StreamSource.STDOUT, itertools.count(1))
        lines = await _collect(reader)
        assert [line.text for line in lines] == ["ok"]
        assert isinstance(reader.error, StreamReadError)
        assert reader.error.source == "stdout"
        assert stream.at_eof()

    @pytest.mark.asyncio
    async def test_output_after_read_error_is_drained(self):
        """Everything after a failed read is consumed so the writer never blocks."""
        tail = b"".join(f"{i}\n".encode() for i in range(1000))
        stream = _stream(b"x" * 64 + b"\n", tail, limit=8)
        reader = LineReader(stream, StreamSource.STDOUT, itertools.count(1))
        assert await _collect(reader) == []
        assert reader.error is not None
        assert stream.at_eof()

    @pytest.mark.asyncio
    async def test_os_error_is_recorded(self):
        stream = FailingStream([b"first\n"], OSError("broken pipe"))
        reader = LineReader(stream, StreamSource.STDERR, itertools.count(1))
        lines = await _collect(reader)
        assert [line.text for line in lines] == ["first"]
        assert isinstance(reader.error.original_error, OSError)
        assert "broken pipe" in str(reader.error)
