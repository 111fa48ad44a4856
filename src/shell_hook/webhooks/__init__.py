"""Webhook delivery for shell-hook.

This module provides:

- WebhookClient: HTTP client that posts payloads with a bounded retry budget
- PreviewSink: dry-run stand-in that prints payloads instead
- format_payload: Notification to Google Chat / Slack JSON body

Usage:
    from shell_hook.webhooks import WebhookClient, format_payload

    async with WebhookClient(url="https://chat.googleapis.com/...") as client:
        result = await client.send(format_payload(notification, WebhookFormat.SLACK))
"""

from __future__ import annotations

from shell_hook.webhooks.client import (
    WebhookClient,
    WebhookDeliveryError,
    WebhookDeliveryResult,
    WebhookSink,
    WebhookTimeoutError,
)
from shell_hook.webhooks.formatter import (
    create_payload,
    encode_payload,
    format_payload,
    render_text,
)
from shell_hook.webhooks.preview import PreviewSink

__all__ = [
    # Client
    "WebhookClient",
    "WebhookDeliveryError",
    "WebhookDeliveryResult",
    "WebhookSink",
    "WebhookTimeoutError",
    "PreviewSink",
    # Formatting
    "create_payload",
    "encode_payload",
    "format_payload",
    "render_text",
]
