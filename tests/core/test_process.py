"""Tests for process.py - spawning and stopping the child."""

import os

import pytest

from shell_hook.core.exceptions import SpawnFailure
from shell_hook.core.process import ProcessRunner, shell_argv


class TestProcessRunner:
    """Tests for ProcessRunner."""

    def test_empty_argv_rejected(self):
        with pytest.raises(ValueError):
            ProcessRunner([])

    def test_streams_before_start_raise(self):
        runner = ProcessRunner(["true"])
        assert runner.pid is None
        with pytest.raises(RuntimeError, match="not been started"):
            _ = runner.stdout

    @pytest.mark.asyncio
    async def test_captures_stdout_and_stderr(self):
        runner = ProcessRunner(["sh", "-c", "echo out; echo err >&2"])
        await runner.start()
        out = await runner.stdout.read()
        err = await runner.stderr.read()
        status = await runner.wait()
        assert out == b"out\n"
        assert err == b"err\n"
        assert status.success

    @pytest.mark.asyncio
    async def test_exit_code_reported(self):
        runner = ProcessRunner(["sh", "-c", "exit 7"])
        await runner.start()
        status = await runner.wait()
        assert status.code == 7
        assert not status.signaled

    @pytest.mark.asyncio
    async def test_missing_command_is_127(self):
        runner = ProcessRunner(["shell-hook-no-such-command-xyz"])
        with pytest.raises(SpawnFailure) as exc_info:
            await runner.start()
        assert exc_info.value.exit_code == 127
        assert isinstance(exc_info.value.original_error, FileNotFoundError)

    @pytest.mark.asyncio
    async def test_not_executable_is_126(self, temp_dir):
        script = temp_dir / "script.sh"
        script.write_text("#!/bin/sh\necho hi\n")
        os.chmod(script, 0o644)
        runner = ProcessRunner([str(script)])
        with pytest.raises(SpawnFailure) as exc_info:
            await runner.start()
        assert exc_info.value.exit_code == 126

    @pytest.mark.asyncio
    async def test_terminate_stops_child(self):
        runner = ProcessRunner(["sleep", "30"])
        await runner.start()
        await runner.terminate(grace=5.0)
        status = await runner.wait()
        assert status.signaled
        assert status.code is None

    @pytest.mark.asyncio
    async def test_terminate_reaches_background_commands(self, wait_gone):
        """Commands started by the shell are stopped along with it."""
        runner = ProcessRunner(["sh", "-c", "sleep 4321 & echo $!; wait"])
        await runner.start()
        grandchild = int(await runner.stdout.readline())

        await runner.terminate(grace=5.0)
        await runner.wait()

        assert await wait_gone(grandchild)

    @pytest.mark.asyncio
    async def test_terminate_after_child_exit_stops_leftovers(self, wait_gone):
        runner = ProcessRunner(["sh", "-c", "sleep 4321 >/dev/null 2>&1 & echo $!"])
        await runner.start()
        grandchild = int(await runner.stdout.readline())
        await runner.wait()

        await runner.terminate(grace=5.0)

        assert await wait_gone(grandchild)

    @pytest.mark.asyncio
    async def test_terminate_after_exit_is_noop(self):
        runner = ProcessRunner(["true"])
        await runner.start()
        await runner.wait()
        await runner.terminate()

    @pytest.mark.asyncio
    async def test_terminate_before_start_is_noop(self):
        await ProcessRunner(["true"]).terminate()


def test_shell_argv():
    assert shell_argv("ls -la | wc -l") == ["sh", "-c", "ls -la | wc -l"]
