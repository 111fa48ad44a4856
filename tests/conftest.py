"""Shared fixtures for shell-hook tests."""

from __future__ import annotations

import asyncio
import shutil
import tempfile
from collections.abc import Awaitable, Callable, Generator
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from shell_hook.core.config import BatchPolicy, RelayConfig
from shell_hook.webhooks.client import WebhookDeliveryResult

# =============================================================================
# Helpers
# =============================================================================


class RecordingSink:
    """In-memory sink that records every payload it is asked to deliver.

    ``fail_on`` holds 1-based payload positions whose delivery should fail.
    """

    def __init__(self, fail_on: set[int] | None = None):
        self.payloads: list[dict[str, Any]] = []
        self.fail_on = fail_on or set()
        self.closed = False

    async def send(self, payload: dict[str, Any]) -> WebhookDeliveryResult:
        self.payloads.append(payload)
        if len(self.payloads) in self.fail_on:
            return WebhookDeliveryResult(
                success=False, status_code=503, attempt_count=3, error="HTTP 503"
            )
        return WebhookDeliveryResult(success=True, status_code=200, attempt_count=1)

    async def aclose(self) -> None:
        self.closed = True

    @property
    def texts(self) -> list[str]:
        return [payload["text"] for payload in self.payloads]


def pid_alive(pid: int) -> bool:
    """True while ``pid`` exists and is not a zombie. Linux only (reads /proc)."""
    try:
        stat = Path(f"/proc/{pid}/stat").read_text()
    except (FileNotFoundError, ProcessLookupError):
        return False
    return stat.rpartition(")")[2].split()[0] != "Z"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Typer CLI runner."""
    return CliRunner()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def sink_factory() -> type[RecordingSink]:
    """The RecordingSink class, for tests needing several or failing sinks."""
    return RecordingSink


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_config() -> Callable[..., RelayConfig]:
    """Factory for RelayConfig with test-friendly defaults (no echo)."""

    def _make(command: list[str], **overrides: Any) -> RelayConfig:
        settings: dict[str, Any] = {
            "webhook_url": "https://hooks.example.com/test",
            "echo": False,
            "command": command,
        }
        settings.update(overrides)
        return RelayConfig(**settings)

    return _make


@pytest.fixture
def wait_gone() -> Callable[[int], Awaitable[bool]]:
    """Poll until a pid has exited. Skips where /proc is unavailable."""
    if not Path("/proc/self/stat").exists():
        pytest.skip("needs /proc")

    async def _wait(pid: int, timeout: float = 5.0) -> bool:
        for _ in range(int(timeout / 0.05)):
            if not pid_alive(pid):
                return True
            await asyncio.sleep(0.05)
        return not pid_alive(pid)

    return _wait


@pytest.fixture
def single_line_batches() -> BatchPolicy:
    """Policy closing a batch after every line."""
    return BatchPolicy(max_lines=1, max_bytes=4096, max_wait=5.0)


@pytest.fixture(autouse=True)
def _no_webhook_url_env(monkeypatch):
    """Keep a developer's WEBHOOK_URL out of the tests."""
    monkeypatch.delenv("WEBHOOK_URL", raising=False)
