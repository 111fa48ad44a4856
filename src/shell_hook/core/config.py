"""Configuration Model - Pydantic models for a relay run.

This module defines the configuration schema consumed by the relay pipeline:
- Batching policy (line, byte and time thresholds)
- Delivery settings (timeout, retry budget, backoff)
- Run settings (webhook URL, payload format, messages, quiet/dry-run flags)

The CLI resolves one RelayConfig per command invocation. The interactive shell
builds a fresh RelayConfig for every typed line, sharing only the webhook
settings. A RelayConfig is immutable for the duration of a run.

Environment Variable Mapping:
| Config Key               | Environment Variable      |
|--------------------------|---------------------------|
| webhook_url              | WEBHOOK_URL               |
"""

from __future__ import annotations

import os
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field

from .exceptions import MissingWebhookURLError

WEBHOOK_URL_ENV = "WEBHOOK_URL"


class WebhookFormat(str, Enum):
    """Payload shape expected by the webhook provider."""

    GOOGLE_CHAT = "google-chat"
    SLACK = "slack"


# =============================================================================
# Configuration Sub-Models
# =============================================================================


class BatchPolicy(BaseModel):
    """When buffered output lines become an outbound message.

    A batch closes as soon as any threshold is reached. The line that reaches
    a threshold belongs to the batch it closes.
    """

    model_config = ConfigDict(frozen=True)

    max_lines: int = Field(
        default=10,
        gt=0,
        description="Close the batch once it holds this many lines.",
    )
    max_bytes: int = Field(
        default=4096,
        gt=0,
        description="Close the batch once its UTF-8 text reaches this many bytes.",
    )
    max_wait: float = Field(
        default=2.0,
        gt=0,
        description="Close the batch this many seconds after it was opened.",
    )


class DeliveryConfig(BaseModel):
    """Webhook delivery settings shared by every send in a run."""

    model_config = ConfigDict(frozen=True)

    timeout: float = Field(
        default=10.0,
        gt=0,
        description="Per-request timeout in seconds.",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Total attempts per notification, including the first.",
    )
    backoff: float = Field(
        default=0.5,
        ge=0,
        description="Initial backoff in seconds, doubled after each failed attempt.",
    )


# =============================================================================
# Main Configuration Model
# =============================================================================


class RelayConfig(BaseModel):
    """Everything a single relay run needs.

    Example:
    ```python
    config = RelayConfig(
        webhook_url="https://chat.googleapis.com/v1/spaces/...",
        title="deploy",
        command=["make", "deploy"],
    )
    ```
    """

    model_config = ConfigDict(frozen=True)

    webhook_url: str | None = Field(
        default=None,
        description="Webhook endpoint. Falls back to the WEBHOOK_URL env var in the CLI.",
    )
    title: str | None = Field(
        default=None,
        description="Prepended to every message as '[title] '.",
    )
    on_success: str | None = Field(
        default=None,
        description="Message sent when the command exits with code 0.",
    )
    on_failure: str | None = Field(
        default=None,
        description="Message sent when the command fails or cannot start.",
    )
    quiet: bool = Field(
        default=False,
        description="Suppress output messages; start and finish are still sent.",
    )
    dry_run: bool = Field(
        default=False,
        description="Print payloads instead of posting them. The command still runs.",
    )
    echo: bool = Field(
        default=True,
        description="Echo the command's output to the local terminal.",
    )
    format: WebhookFormat = Field(
        default=WebhookFormat.GOOGLE_CHAT,
        description="Webhook payload format.",
    )
    command: list[str] = Field(
        min_length=1,
        description="Argument vector of the command to run.",
    )
    batch: BatchPolicy = Field(default_factory=BatchPolicy)
    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)

    @property
    def command_line(self) -> str:
        """The command as a single display string."""
        return " ".join(self.command)

    def validate_for_run(self) -> None:
        """Check settings that only matter once a run is about to start.

        Raises:
            MissingWebhookURLError: If there is no URL and this is not a dry run.
        """
        if not self.webhook_url and not self.dry_run:
            raise MissingWebhookURLError()


# =============================================================================
# Utility Functions
# =============================================================================


def resolve_webhook_url(cli_value: str | None) -> str | None:
    """Return the webhook URL from the CLI, else from the environment.

    Args:
        cli_value: Value given on the command line, if any.

    Returns:
        The URL, or None if neither source provides a non-empty value.
    """
    if cli_value:
        return cli_value
    return os.environ.get(WEBHOOK_URL_ENV) or None
