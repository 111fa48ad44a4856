"""Relay - Run a command and stream its output to a webhook.

One Relay drives one command invocation:

1. send the start notification
2. spawn the command
3. read stdout and stderr concurrently into one queue, batch the lines and
   send each closed batch
4. flush the last partial batch once both streams end
5. build the finish notification from the exit status
6. send the finish notification

All notifications go through ``_emit``, which awaits each delivery before the
next one, so the webhook sees Start, Output..., Finish in order even though
output capture is concurrent. Delivery failures are logged and counted; they
never stop the run or change its exit code.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import sys

from ..webhooks import (
    PreviewSink,
    WebhookClient,
    WebhookDeliveryResult,
    WebhookSink,
    format_payload,
    render_text,
)
from . import console
from .batcher import END_OF_STREAM, Batcher
from .config import RelayConfig
from .exceptions import SpawnFailure
from .models import (
    ExitStatus,
    FinishNotification,
    Notification,
    OutputLine,
    OutputNotification,
    RelayResult,
    StartNotification,
    StreamSource,
)
from .process import ProcessRunner
from .reader import LineReader

logger = logging.getLogger(__name__)

DEFAULT_SUCCESS_MESSAGE = "✅ Command finished successfully."
DEFAULT_FAILURE_MESSAGE = "❌ Command failed with exit code {code}."
DEFAULT_SIGNAL_MESSAGE = "❌ Command was terminated by a signal."
DEFAULT_SPAWN_FAILURE_MESSAGE = "❌ Command failed to start: {error}."
DEFAULT_INTERRUPTED_MESSAGE = "⚠️ Command interrupted."

SIGNALED_EXIT_CODE = 1
INTERRUPTED_EXIT_CODE = 130

# Bounds on cleanup after the relay is cancelled.
ABORT_TERMINATE_GRACE = 2.0
ABORT_FINISH_TIMEOUT = 5.0


class Relay:
    """Relays one command run to a webhook sink."""

    def __init__(self, config: RelayConfig, sink: WebhookSink | None = None):
        """Initialize the relay.

        Args:
            config: Resolved, immutable run configuration.
            sink: Delivery sink (anything with async ``send``/``aclose``).
                Defaults to a WebhookClient for ``config.webhook_url``. Ignored
                in dry-run mode, where payloads are only previewed.
        """
        self.config = config
        self.sink = sink
        self.result = RelayResult(exit_code=1)
        self.notifications: list[Notification] = []
        self._started = False
        self._finished = False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self) -> RelayResult:
        """Run the command and relay it.

        Returns:
            RelayResult whose ``exit_code`` mirrors the child's.

        Raises:
            ConfigurationError: If the configuration cannot drive a run.
        """
        self.config.validate_for_run()
        owns_sink = self.sink is None or self.config.dry_run
        if owns_sink:
            self.sink = self._create_sink()
        try:
            return await self._run()
        finally:
            if owns_sink:
                await self.sink.aclose()

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _create_sink(self) -> WebhookSink:
        if self.config.dry_run:
            return PreviewSink()
        delivery = self.config.delivery
        return WebhookClient(
            url=self.config.webhook_url,
            timeout=delivery.timeout,
            max_retries=delivery.max_retries,
            backoff=delivery.backoff,
        )

    async def _run(self) -> RelayResult:
        await self._emit(StartNotification(command=self.config.command_line))

        runner = ProcessRunner(self.config.command)
        try:
            await runner.start()
        except SpawnFailure as e:
            console.error(e.message)
            console.detail(str(e.original_error))
            message = self.config.on_failure or DEFAULT_SPAWN_FAILURE_MESSAGE.format(
                error=e.original_error
            )
            await self._emit(FinishNotification(success=False, exit_code=None, message=message))
            self.result.exit_code = e.exit_code
            return self.result

        try:
            status = await self._capture(runner)
        except asyncio.CancelledError:
            await self._abort(runner)
            raise

        await self._emit(self._build_finish(status))
        self.result.exit_code = status.code if status.code is not None else SIGNALED_EXIT_CODE
        return self.result

    async def _capture(self, runner: ProcessRunner) -> ExitStatus:
        """Read both streams, batch and send output, then wait for exit."""
        counter = itertools.count(1)
        queue: asyncio.Queue[OutputLine | None] = asyncio.Queue()
        readers = [
            LineReader(runner.stdout, StreamSource.STDOUT, counter),
            LineReader(runner.stderr, StreamSource.STDERR, counter),
        ]
        pumps = [asyncio.create_task(self._pump(reader, queue)) for reader in readers]
        closer = asyncio.create_task(self._end_stream_when_done(pumps, queue))
        waiter = asyncio.create_task(runner.wait())

        batcher = Batcher(self.config.batch)
        try:
            async for batch in batcher.run(queue):
                if self.config.quiet:
                    continue
                await self._emit(OutputNotification(batch=batch))
            status = await waiter
        finally:
            for task in (*pumps, closer, waiter):
                if not task.done():
                    task.cancel()
            self.result.batches_closed = batcher.batches_closed
        return status

    async def _pump(self, reader: LineReader, queue: asyncio.Queue[OutputLine | None]) -> None:
        # No await between taking a sequence number and enqueueing the line,
        # so queue order is sequence order.
        async for line in reader:
            queue.put_nowait(line)
            self.result.lines_captured += 1
            if self.config.echo:
                _echo(line)
        if reader.error is not None:
            self.result.warnings.append(str(reader.error))
            console.warning(reader.error.message)
            console.detail(reader.error.details or "")

    @staticmethod
    async def _end_stream_when_done(
        pumps: list[asyncio.Task[None]], queue: asyncio.Queue[OutputLine | None]
    ) -> None:
        results = await asyncio.gather(*pumps, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error(f"Output reader crashed: {result!r}")
        queue.put_nowait(END_OF_STREAM)

    def _build_finish(self, status: ExitStatus) -> FinishNotification:
        config = self.config
        if status.success:
            message = config.on_success or DEFAULT_SUCCESS_MESSAGE
        elif status.code is not None:
            message = config.on_failure or DEFAULT_FAILURE_MESSAGE.format(code=status.code)
        else:
            message = config.on_failure or DEFAULT_SIGNAL_MESSAGE
        return FinishNotification(success=status.success, exit_code=status.code, message=message)

    async def _abort(self, runner: ProcessRunner) -> None:
        """Cleanup after cancellation: stop the child, try to send Finish."""
        logger.debug("Relay cancelled, terminating child")
        await runner.terminate(grace=ABORT_TERMINATE_GRACE)
        self.result.exit_code = INTERRUPTED_EXIT_CODE
        if self._finished:
            return
        finish = FinishNotification(
            success=False,
            exit_code=None,
            message=self.config.on_failure or DEFAULT_INTERRUPTED_MESSAGE,
        )
        try:
            await asyncio.wait_for(self._emit(finish), timeout=ABORT_FINISH_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning("Timed out sending the interrupted notification")

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def _emit(self, notification: Notification) -> None:
        """Format and deliver one notification, in order, without raising."""
        if self._finished:
            raise RuntimeError("Finish already sent for this run")
        if isinstance(notification, StartNotification):
            if self._started:
                raise RuntimeError("Start already sent for this run")
            self._started = True
        elif not self._started:
            raise RuntimeError("Start must be sent before any other notification")
        if isinstance(notification, FinishNotification):
            self._finished = True
        self.notifications.append(notification)

        if not isinstance(notification, OutputNotification):
            self._announce(notification, render_text(notification, self.config.title))

        payload = format_payload(notification, self.config.format, self.config.title)
        try:
            result = await self.sink.send(payload)
        except Exception as e:
            logger.exception("Webhook sink raised")
            result = WebhookDeliveryResult(success=False, error=str(e))

        if result.success:
            self.result.notifications_sent += 1
            return
        self.result.deliveries_failed += 1
        console.warning(
            f"Webhook delivery failed after {result.attempt_count} attempt(s): {result.error}"
        )

    @staticmethod
    def _announce(notification: Notification, text: str) -> None:
        if isinstance(notification, FinishNotification) and not notification.success:
            console.error(text)
        elif isinstance(notification, FinishNotification):
            console.success(text)
        else:
            console.info(text)


def _echo(line: OutputLine) -> None:
    stream = sys.stderr if line.source is StreamSource.STDERR else sys.stdout
    stream.write(line.text + "\n")
    stream.flush()

