"""Dry-run sink: prints payloads instead of posting them."""

from __future__ import annotations

from typing import Any

from ..core import console
from .client import WebhookDeliveryResult
from .formatter import encode_payload


class PreviewSink:
    """Stands in for WebhookClient when ``dry_run`` is set. No network I/O."""

    def __init__(self) -> None:
        self.payloads: list[dict[str, Any]] = []

    async def send(self, payload: dict[str, Any]) -> WebhookDeliveryResult:
        self.payloads.append(payload)
        console.preview(f"[DRY RUN] Would send to webhook: {encode_payload(payload)}")
        return WebhookDeliveryResult(success=True, attempt_count=0)

    async def aclose(self) -> None:
        pass
