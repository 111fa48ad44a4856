"""Graceful shutdown on SIGINT/SIGTERM.

The CLI registers the handlers around a relay run and adds a callback that
cancels the relay task. The relay then terminates the child and sends a
best-effort finish message before the process exits.
"""

from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Callable
from types import FrameType
from typing import Any

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownManager:
    """Records the first shutdown signal and runs cleanup callbacks."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []
        self._original_handlers: dict[int, Any] = {}
        self._registered = False
        self.shutdown_reason: str | None = None

    def register(self) -> None:
        """Install signal handlers. Calling it again is a no-op."""
        with self._lock:
            if self._registered:
                return
            for sig in HANDLED_SIGNALS:
                self._original_handlers[sig] = signal.signal(sig, self._signal_handler)
            self._registered = True

    def unregister(self) -> None:
        """Restore the handlers that were installed before ``register``."""
        with self._lock:
            if not self._registered:
                return
            for sig, handler in self._original_handlers.items():
                signal.signal(sig, handler)
            self._original_handlers.clear()
            self._registered = False

    def request_shutdown(self, reason: str) -> bool:
        """Record ``reason``. Returns False if shutdown was already requested."""
        with self._lock:
            if self.shutdown_reason is not None:
                return False
            self.shutdown_reason = reason
        return True

    def reset(self) -> None:
        with self._lock:
            self.shutdown_reason = None

    def add_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def run_callbacks(self) -> None:
        """Run callbacks newest first. A failing callback does not stop the rest."""
        with self._lock:
            callbacks = list(reversed(self._callbacks))
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Shutdown callback failed")

    def _signal_handler(self, signum: int, frame: FrameType | None) -> None:
        name = signal.Signals(signum).name
        if not self.request_shutdown(name):
            logger.warning(f"Received {name}, already shutting down ({self.shutdown_reason})")
            return
        logger.debug(f"Received {name}")
        self.run_callbacks()


_manager = ShutdownManager()


def register_handlers() -> None:
    _manager.register()


def unregister_handlers() -> None:
    _manager.unregister()


def reset_shutdown() -> None:
    _manager.reset()


def add_shutdown_callback(callback: Callable[[], None]) -> None:
    _manager.add_callback(callback)


def remove_shutdown_callback(callback: Callable[[], None]) -> None:
    _manager.remove_callback(callback)
