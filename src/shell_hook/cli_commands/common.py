"""Shared CLI plumbing: global options and running a relay under signal handling."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from ..core.config import BatchPolicy, DeliveryConfig, RelayConfig, WebhookFormat
from ..core.models import RelayResult
from ..core.relay import Relay
from ..core.shutdown import (
    add_shutdown_callback,
    register_handlers,
    remove_shutdown_callback,
    reset_shutdown,
    unregister_handlers,
)


@dataclass(frozen=True)
class GlobalOptions:
    """Options given before the subcommand. Shared by every run of a session."""

    webhook_url: str | None
    title: str | None
    format: WebhookFormat
    batch: BatchPolicy
    dry_run: bool
    delivery: DeliveryConfig = field(default_factory=DeliveryConfig)

    def relay_config(self, command: list[str], **run_options: Any) -> RelayConfig:
        """Build the immutable configuration for one run of ``command``."""
        return RelayConfig(
            webhook_url=self.webhook_url,
            title=self.title,
            format=self.format,
            batch=self.batch,
            delivery=self.delivery,
            dry_run=self.dry_run,
            command=command,
            **run_options,
        )


def execute_relay(config: RelayConfig) -> RelayResult:
    """Run one relay to completion.

    SIGINT/SIGTERM cancel the relay task, which terminates the child and sends
    a best-effort finish message before ``asyncio.CancelledError`` propagates.
    """

    async def _main() -> RelayResult:
        loop = asyncio.get_running_loop()
        task = asyncio.current_task()

        def _cancel() -> None:
            loop.call_soon_threadsafe(task.cancel)

        add_shutdown_callback(_cancel)
        try:
            return await Relay(config).run()
        finally:
            remove_shutdown_callback(_cancel)

    register_handlers()
    try:
        return asyncio.run(_main())
    finally:
        unregister_handlers()
        reset_shutdown()
