"""Webhook Client - POST JSON payloads with a bounded retry budget.

``send`` never raises. Every outcome, including exhausted retries, comes back
as a WebhookDeliveryResult so a failed delivery can never stop the relay or
the child process.

Retry policy:
- timeouts, connection errors, HTTP 5xx and 429 are retried
- other HTTP 4xx and malformed URLs fail on the first attempt
- backoff doubles after each failed attempt
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF = 0.5


# =============================================================================
# Exceptions
# =============================================================================


class WebhookDeliveryError(Exception):
    """A single delivery attempt failed."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retriable: bool = True,
    ):
        self.message = message
        self.status_code = status_code
        self.retriable = retriable
        super().__init__(message)


class WebhookTimeoutError(WebhookDeliveryError):
    """A delivery attempt timed out."""

    def __init__(self, url: str, timeout: float):
        self.url = url
        self.timeout = timeout
        super().__init__(f"Request to {url} timed out after {timeout} seconds")


# =============================================================================
# Result
# =============================================================================


@dataclass
class WebhookDeliveryResult:
    """Outcome of one ``send`` call, after all attempts."""

    success: bool
    status_code: int | None = None
    attempt_count: int = 0
    delivery_time_ms: float = 0.0
    error: str | None = None


class WebhookSink(Protocol):
    """Anything the relay can hand payloads to."""

    async def send(self, payload: dict[str, Any]) -> WebhookDeliveryResult: ...

    async def aclose(self) -> None: ...


# =============================================================================
# Client
# =============================================================================


class WebhookClient:
    """Delivers payloads to one webhook URL over a shared connection pool."""

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff: float = DEFAULT_BACKOFF,
        verify_ssl: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            url: Webhook endpoint.
            timeout: Per-attempt timeout in seconds.
            max_retries: Total attempts per payload, including the first.
            backoff: Delay before the second attempt; doubled for each later one.
            verify_ssl: Verify TLS certificates.
            transport: Optional httpx transport (used by tests).
        """
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.url = url
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff = backoff
        self.verify_ssl = verify_ssl
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> WebhookClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                verify=self.verify_ssl,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def send(self, payload: dict[str, Any]) -> WebhookDeliveryResult:
        """Deliver ``payload``, retrying transient failures.

        Returns:
            WebhookDeliveryResult describing the final attempt.
        """
        start = time.monotonic()
        last_error: WebhookDeliveryError | None = None
        attempt = 0

        while attempt < self.max_retries:
            attempt += 1
            try:
                status_code = await self._attempt(payload)
            except WebhookDeliveryError as e:
                last_error = e
                logger.debug(f"Webhook attempt {attempt}/{self.max_retries} failed: {e.message}")
                if not e.retriable or attempt >= self.max_retries:
                    break
                await asyncio.sleep(self.backoff * 2 ** (attempt - 1))
                continue
            return WebhookDeliveryResult(
                success=True,
                status_code=status_code,
                attempt_count=attempt,
                delivery_time_ms=(time.monotonic() - start) * 1000,
            )

        logger.warning(f"Webhook delivery failed after {attempt} attempt(s): {last_error.message}")
        return WebhookDeliveryResult(
            success=False,
            status_code=last_error.status_code,
            attempt_count=attempt,
            delivery_time_ms=(time.monotonic() - start) * 1000,
            error=last_error.message,
        )

    async def _attempt(self, payload: dict[str, Any]) -> int:
        """One POST. Returns the status code or raises WebhookDeliveryError."""
        try:
            response = await self._get_client().post(self.url, json=payload)
        except httpx.TimeoutException as e:
            raise WebhookTimeoutError(self.url, self.timeout) from e
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            raise WebhookDeliveryError(f"Invalid webhook URL: {e}", retriable=False) from e
        except httpx.TransportError as e:
            raise WebhookDeliveryError(f"Connection error: {e}") from e

        status = response.status_code
        if status < 400:
            return status
        body = response.text[:200]
        retriable = status >= 500 or status == 429
        raise WebhookDeliveryError(
            f"HTTP {status}: {body}" if body else f"HTTP {status}",
            status_code=status,
            retriable=retriable,
        )
