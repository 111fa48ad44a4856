"""Core module - exports configuration, models and exceptions.

The relay itself lives in ``shell_hook.core.relay`` and is imported from
there, since it depends on ``shell_hook.webhooks``.
"""

from shell_hook.core.config import (
    BatchPolicy,
    DeliveryConfig,
    RelayConfig,
    WebhookFormat,
    resolve_webhook_url,
)
from shell_hook.core.exceptions import (
    ConfigurationError,
    MissingWebhookURLError,
    ShellHookError,
    SpawnFailure,
    StreamReadError,
)
from shell_hook.core.models import (
    Batch,
    CloseReason,
    ExitStatus,
    FinishNotification,
    Notification,
    OutputLine,
    OutputNotification,
    RelayResult,
    StartNotification,
    StreamSource,
)

__all__ = [
    # Configuration
    "BatchPolicy",
    "DeliveryConfig",
    "RelayConfig",
    "WebhookFormat",
    "resolve_webhook_url",
    # Exceptions
    "ShellHookError",
    "ConfigurationError",
    "MissingWebhookURLError",
    "SpawnFailure",
    "StreamReadError",
    # Models
    "Batch",
    "CloseReason",
    "ExitStatus",
    "FinishNotification",
    "Notification",
    "OutputLine",
    "OutputNotification",
    "RelayResult",
    "StartNotification",
    "StreamSource",
]
