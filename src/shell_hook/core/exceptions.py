"""Exceptions raised by the relay pipeline.

Only ConfigurationError and SpawnFailure are fatal to a run. StreamReadError
is recorded by the reader and logged by the relay; delivery failures never
leave the webhook client (see ``shell_hook.webhooks.client``).
"""

from __future__ import annotations

from collections.abc import Sequence


class ShellHookError(Exception):
    """Base exception for all shell-hook errors."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.details:
            return f"{self.message}\n  Details: {self.details}"
        return self.message


class ConfigurationError(ShellHookError):
    """Raised when the resolved configuration cannot drive a run."""


class MissingWebhookURLError(ConfigurationError):
    """Raised when no webhook URL is configured outside of dry-run mode."""

    def __init__(self) -> None:
        super().__init__(
            "Missing Webhook URL: Set --webhook-url or the WEBHOOK_URL environment variable."
        )


class SpawnFailure(ShellHookError):
    """Raised when the child command cannot be started at all."""

    def __init__(self, argv: Sequence[str], original_error: OSError):
        self.argv = list(argv)
        self.original_error = original_error
        self.exit_code = _exit_code_for(original_error)
        super().__init__(
            f"Failed to start command: {' '.join(self.argv)}",
            str(original_error),
        )


class StreamReadError(ShellHookError):
    """Raised when reading a child output stream fails part way."""

    def __init__(self, source: str, original_error: BaseException):
        self.source = source
        self.original_error = original_error
        super().__init__(
            f"Error reading {source} of child process",
            f"{type(original_error).__name__}: {original_error}",
        )


def _exit_code_for(error: OSError) -> int:
    # Shell conventions: 127 command not found, 126 found but not executable.
    if isinstance(error, FileNotFoundError):
        return 127
    if isinstance(error, PermissionError):
        return 126
    return 1
