"""Cancellable execution context for process handles.

A CancelContext is a one-shot token: once cancelled it stays cancelled, and
every callback registered on it runs exactly once. Process handles register a
callback that kills their direct child, so cancelling the context asks the OS
to terminate the process.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

__all__ = ["CancelContext"]

logger = logging.getLogger(__name__)


class CancelContext:
    """Thread-safe cancellation token.

    Example:
        ctx = CancelContext()
        ctx.add_callback(lambda: print("cancelled"))
        ctx.cancel()  # prints "cancelled"
        ctx.cancel()  # no-op
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        """Whether cancel() has been called."""
        return self._event.is_set()

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Register a callback to run on cancellation.

        If the context is already cancelled the callback runs immediately.
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def cancel(self) -> None:
        """Cancel the context and run pending callbacks.

        Callbacks run on the calling thread, outside the internal lock.
        """
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []

        logger.debug(f"Context cancelled, running {len(callbacks)} callback(s)")
        for callback in callbacks:
            callback()
