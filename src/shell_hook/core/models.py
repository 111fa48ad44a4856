"""Relay Models - Value types flowing through the relay pipeline.

This module contains:
- StreamSource: Which child stream a line came from
- OutputLine: One captured line, ordered by a per-run sequence number
- CloseReason / Batch: A bounded group of lines sent as one message
- StartNotification / OutputNotification / FinishNotification: The units
  handed to the formatter
- ExitStatus: How the child process terminated
- RelayResult: Summary of a completed run
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from enum import Enum

# =============================================================================
# Enums
# =============================================================================


class StreamSource(Enum):
    """Child process output streams."""

    STDOUT = "stdout"
    STDERR = "stderr"


class CloseReason(Enum):
    """Why a batch was closed."""

    SIZE_LIMIT = "size_limit"
    LINE_LIMIT = "line_limit"
    TIME_LIMIT = "time_limit"
    STREAM_CLOSED = "stream_closed"


# =============================================================================
# Lines and Batches
# =============================================================================


@dataclass(frozen=True)
class OutputLine:
    """A complete line of child output."""

    source: StreamSource
    text: str
    sequence: int

    @property
    def size(self) -> int:
        """Encoded size including the newline that joins it to the next line."""
        return len(self.text.encode("utf-8")) + 1


@dataclass
class Batch:
    """Lines accumulated between two flushes.

    Mutable only while open. Lines are kept sorted by sequence number, never
    by arrival order.
    """

    opened_at: float
    lines: list[OutputLine] = field(default_factory=list)
    closed_reason: CloseReason | None = None
    size: int = 0

    @property
    def is_open(self) -> bool:
        return self.closed_reason is None

    @property
    def text(self) -> str:
        return "\n".join(line.text for line in self.lines)

    def add(self, line: OutputLine) -> None:
        if not self.is_open:
            raise RuntimeError("Cannot add lines to a closed batch")
        bisect.insort(self.lines, line, key=lambda item: item.sequence)
        self.size += line.size

    def close(self, reason: CloseReason) -> None:
        if not self.is_open:
            raise RuntimeError(f"Batch already closed ({self.closed_reason.value})")
        self.closed_reason = reason

    def __len__(self) -> int:
        return len(self.lines)


# =============================================================================
# Notifications
# =============================================================================


@dataclass(frozen=True)
class StartNotification:
    """Sent once, before the command is spawned."""

    command: str


@dataclass(frozen=True)
class OutputNotification:
    """Sent once per closed batch, unless quiet mode is on."""

    batch: Batch


@dataclass(frozen=True)
class FinishNotification:
    """Always the last notification of a run."""

    success: bool
    exit_code: int | None
    message: str


Notification = StartNotification | OutputNotification | FinishNotification


# =============================================================================
# Process and Run Results
# =============================================================================


@dataclass(frozen=True)
class ExitStatus:
    """How the child terminated. ``code`` is None when killed by a signal."""

    code: int | None
    signaled: bool = False

    @property
    def success(self) -> bool:
        return self.code == 0

    @classmethod
    def from_returncode(cls, returncode: int) -> ExitStatus:
        # asyncio reports death by signal N as -N.
        if returncode < 0:
            return cls(code=None, signaled=True)
        return cls(code=returncode)


@dataclass
class RelayResult:
    """Summary of one relay run."""

    exit_code: int
    lines_captured: int = 0
    batches_closed: int = 0
    notifications_sent: int = 0
    deliveries_failed: int = 0
    warnings: list[str] = field(default_factory=list)
