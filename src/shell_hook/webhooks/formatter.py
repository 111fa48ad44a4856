"""Payload formatting for chat webhooks.

Message text is rendered once, independent of the provider, and only then
wrapped in the provider's envelope. Google Chat and Slack both accept a plain
``{"text": ...}`` body; Slack's block format is not used.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

from ..core.config import WebhookFormat
from ..core.models import (
    FinishNotification,
    Notification,
    OutputNotification,
    StartNotification,
)

START_TEMPLATE = "🚀 Starting command: `{command}`"


def title_prefix(title: str | None) -> str:
    """``"[title] "`` for a non-empty title, else an empty string."""
    return f"[{title}] " if title else ""


def render_text(notification: Notification, title: str | None = None) -> str:
    """Render the provider-independent message text for a notification."""
    if isinstance(notification, StartNotification):
        body = START_TEMPLATE.format(command=notification.command)
    elif isinstance(notification, OutputNotification):
        body = notification.batch.text
    elif isinstance(notification, FinishNotification):
        body = notification.message
    else:
        raise TypeError(f"Unknown notification type: {type(notification).__name__}")
    return f"{title_prefix(title)}{body}"


def _google_chat_envelope(text: str) -> dict[str, Any]:
    return {"text": text}


def _slack_envelope(text: str) -> dict[str, Any]:
    return {"text": text}


ENVELOPES: dict[WebhookFormat, Callable[[str], dict[str, Any]]] = {
    WebhookFormat.GOOGLE_CHAT: _google_chat_envelope,
    WebhookFormat.SLACK: _slack_envelope,
}


def create_payload(message: str, fmt: WebhookFormat) -> dict[str, Any]:
    """Wrap already rendered text in the envelope for ``fmt``."""
    try:
        envelope = ENVELOPES[WebhookFormat(fmt)]
    except (KeyError, ValueError) as e:
        raise ValueError(f"Unsupported webhook format: {fmt!r}") from e
    return envelope(message)


def format_payload(
    notification: Notification,
    fmt: WebhookFormat,
    title: str | None = None,
) -> dict[str, Any]:
    """Build the JSON body for a notification in the given format."""
    return create_payload(render_text(notification, title), fmt)


def encode_payload(payload: dict[str, Any]) -> str:
    """Serialize a payload. Control characters and quotes are escaped."""
    return json.dumps(payload, ensure_ascii=False)
