"""Process Runner - Spawn the child command with piped stdout/stderr."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from collections.abc import Sequence

from .exceptions import SpawnFailure
from .models import ExitStatus

logger = logging.getLogger(__name__)

# asyncio's default of 64 KiB would turn long lines from chatty tools into
# read errors.
STREAM_LIMIT = 4 * 1024 * 1024

TERMINATE_GRACE = 5.0


class ProcessRunner:
    """Runs one child process.

    Both pipes are created by the spawn call itself, so no output can be
    written before the readers can see it. stdin is inherited.

    The child leads its own session and process group, so ``terminate``
    reaches everything it started, e.g. the commands run by ``sh -c``.
    """

    def __init__(self, argv: Sequence[str]):
        if not argv:
            raise ValueError("argv must not be empty")
        self.argv = list(argv)
        self.process: asyncio.subprocess.Process | None = None

    async def start(self) -> None:
        """Spawn the child.

        Raises:
            SpawnFailure: If the command cannot be started at all.
        """
        try:
            self.process = await asyncio.create_subprocess_exec(
                *self.argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=STREAM_LIMIT,
                start_new_session=True,
            )
        except OSError as e:
            raise SpawnFailure(self.argv, e) from e
        logger.debug(f"Spawned pid {self.process.pid}: {self.argv}")

    @property
    def stdout(self) -> asyncio.StreamReader:
        return self._running().stdout  # type: ignore[return-value]

    @property
    def stderr(self) -> asyncio.StreamReader:
        return self._running().stderr  # type: ignore[return-value]

    @property
    def pid(self) -> int | None:
        return self.process.pid if self.process else None

    async def wait(self) -> ExitStatus:
        """Wait for the child to exit without touching its pipes."""
        returncode = await self._running().wait()
        status = ExitStatus.from_returncode(returncode)
        logger.debug(f"pid {self.pid} exited: {status}")
        return status

    async def terminate(self, grace: float = TERMINATE_GRACE) -> None:
        """Stop the child's process group: SIGTERM, then SIGKILL after ``grace``.

        The group is signalled even when the direct child has already exited,
        since commands it started in the background may still hold the pipes.
        Group members still alive once the child is gone are killed.
        """
        process = self.process
        if process is None or not self._signal_group(signal.SIGTERM):
            return
        if process.returncode is None:
            try:
                await asyncio.wait_for(process.wait(), timeout=grace)
            except asyncio.TimeoutError:
                logger.warning(f"pid {process.pid} ignored SIGTERM, killing its process group")
                self._signal_group(signal.SIGKILL)
                await process.wait()
                return
        self._signal_group(signal.SIGKILL)

    def _signal_group(self, sig: signal.Signals) -> bool:
        """Signal the child's process group. False if the group is gone."""
        try:
            os.killpg(self._running().pid, sig)
        except (ProcessLookupError, PermissionError):
            return False
        return True

    def _running(self) -> asyncio.subprocess.Process:
        if self.process is None:
            raise RuntimeError("Process has not been started")
        return self.process


def shell_argv(command_line: str) -> list[str]:
    """Argument vector running ``command_line`` through ``sh -c``."""
    return ["sh", "-c", command_line]
