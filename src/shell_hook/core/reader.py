"""Line Reader - Split a child output stream into OutputLines."""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import AsyncIterator

from .exceptions import StreamReadError
from .models import OutputLine, StreamSource

logger = logging.getLogger(__name__)

DRAIN_CHUNK_SIZE = 64 * 1024


class LineReader:
    """Lazily reads complete lines from one child stream.

    Sequence numbers are drawn from ``counter`` at the moment a line
    completes. Both readers of a run share one counter, which gives a total
    order across stdout and stderr.

    A final line without a trailing newline is still yielded at EOF. If the
    stream fails part way, iteration stops, the failure is kept on
    ``error`` and lines already yielded stay valid. The rest of the stream is
    still read and discarded so the child never blocks on a full pipe.
    """

    def __init__(
        self,
        stream: asyncio.StreamReader,
        source: StreamSource,
        counter: itertools.count,
    ):
        self.stream = stream
        self.source = source
        self.counter = counter
        self.error: StreamReadError | None = None
        self.lines_read = 0

    def __aiter__(self) -> AsyncIterator[OutputLine]:
        return self._lines()

    async def _lines(self) -> AsyncIterator[OutputLine]:
        while True:
            try:
                raw = await self.stream.readline()
            except (OSError, ValueError, asyncio.LimitOverrunError) as e:
                self.error = StreamReadError(self.source.value, e)
                logger.warning(f"Stopped reading {self.source.value}: {e}")
                await self._drain()
                return
            if not raw:
                logger.debug(f"{self.source.value} closed after {self.lines_read} lines")
                return
            self.lines_read += 1
            yield OutputLine(
                source=self.source,
                text=_decode(raw),
                sequence=next(self.counter),
            )

    async def _drain(self) -> None:
        discarded = 0
        while True:
            try:
                chunk = await self.stream.read(DRAIN_CHUNK_SIZE)
            except (OSError, ValueError) as e:
                logger.debug(f"Gave up draining {self.source.value}: {e}")
                return
            if not chunk:
                break
            discarded += len(chunk)
        logger.debug(f"Discarded {discarded} bytes of {self.source.value} after read error")


def _decode(raw: bytes) -> str:
    text = raw.decode("utf-8", errors="replace")
    if text.endswith("\n"):
        text = text[:-1]
    if text.endswith("\r"):
        text = text[:-1]
    return text
