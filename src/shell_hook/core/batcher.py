"""Batcher - Group output lines into batches under a flush policy.

The batcher owns the single open Batch of a run. A batch closes when the
first of these happens:

- it holds ``max_lines`` lines (LINE_LIMIT)
- its text reaches ``max_bytes`` bytes (SIZE_LIMIT)
- ``max_wait`` seconds have passed since it opened (TIME_LIMIT)
- both streams ended (STREAM_CLOSED)

The line that reaches a limit is part of the batch it closes, so a batch
exceeds a limit by at most one line. After a close the batcher is idle and the
next line opens a new batch.

State machine::

    IDLE --line--> OPEN --limit/timer--> IDLE
    IDLE/OPEN --stream end--> STOPPED
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Callable
from enum import Enum

from .config import BatchPolicy
from .models import Batch, CloseReason, OutputLine

logger = logging.getLogger(__name__)

# Queue item marking that both readers are exhausted.
END_OF_STREAM = None


class BatcherState(Enum):
    IDLE = "idle"
    OPEN = "open"
    STOPPED = "stopped"


class Batcher:
    """Single-writer owner of the open batch.

    ``add``, ``expire`` and ``close`` are synchronous and must only be called
    from one task; ``run`` is that task's loop over the merged line queue.
    """

    def __init__(
        self,
        policy: BatchPolicy | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.policy = policy or BatchPolicy()
        self.clock = clock
        self.state = BatcherState.IDLE
        self.current: Batch | None = None
        self.batches_closed = 0

    def add(self, line: OutputLine) -> Batch | None:
        """Add a line, returning the batch it closed, if any."""
        if self.state is BatcherState.STOPPED:
            raise RuntimeError("Batcher is stopped")
        if self.current is None:
            self.current = Batch(opened_at=self.clock())
            self.state = BatcherState.OPEN
        self.current.add(line)

        if len(self.current) >= self.policy.max_lines:
            return self._close(CloseReason.LINE_LIMIT)
        if self.current.size >= self.policy.max_bytes:
            return self._close(CloseReason.SIZE_LIMIT)
        return None

    def time_remaining(self) -> float | None:
        """Seconds until the open batch times out, or None when idle."""
        if self.current is None:
            return None
        return self.current.opened_at + self.policy.max_wait - self.clock()

    def expire(self) -> Batch | None:
        """Close the open batch if its timer has run out."""
        remaining = self.time_remaining()
        if remaining is None or remaining > 0:
            return None
        return self._close(CloseReason.TIME_LIMIT)

    def close(self, reason: CloseReason = CloseReason.STREAM_CLOSED) -> Batch | None:
        """Force-close any open batch and stop accepting lines."""
        batch = None
        if self.current is not None and len(self.current) > 0:
            batch = self._close(reason)
        self.current = None
        self.state = BatcherState.STOPPED
        return batch

    def _close(self, reason: CloseReason) -> Batch:
        batch = self.current
        batch.close(reason)
        self.current = None
        self.state = BatcherState.IDLE
        self.batches_closed += 1
        logger.debug(
            f"Batch {self.batches_closed} closed ({reason.value}): "
            f"{len(batch)} lines, {batch.size} bytes"
        )
        return batch

    async def run(self, queue: asyncio.Queue[OutputLine | None]) -> AsyncIterator[Batch]:
        """Consume the merged line queue, yielding batches as they close.

        Stops after END_OF_STREAM, yielding the final partial batch first.
        """
        while True:
            remaining = self.time_remaining()
            if remaining is not None and remaining <= 0:
                expired = self.expire()
                if expired is not None:
                    yield expired
                continue

            try:
                if remaining is None:
                    item = await queue.get()
                else:
                    item = await asyncio.wait_for(queue.get(), timeout=remaining)
            except asyncio.TimeoutError:
                expired = self.expire()
                if expired is not None:
                    yield expired
                continue

            if item is END_OF_STREAM:
                final = self.close()
                if final is not None:
                    yield final
                return

            closed = self.add(item)
            if closed is not None:
                yield closed
