"""Async bridge for process handles.

Runs the blocking start()/wait() calls in worker threads so event-loop code
can await a handle. Cancelling the awaiting task stops the handle.
"""

from __future__ import annotations

import logging

import anyio

from ..errors import ExitError, ProcessStateError
from .process_handle import ProcessHandle, ProcessState

__all__ = ["run_handle"]

logger = logging.getLogger(__name__)


async def run_handle(handle: ProcessHandle) -> None:
    """Start the handle and wait for it without blocking the event loop.

    If the caller is cancelled while the process runs, the handle is stopped
    (when cancellable) and reaped before the cancellation propagates. A
    worker thread already blocked in wait() is abandoned instead; it still
    records the outcome on the handle once the process exits.

    Raises:
        Whatever start() or wait() raise
    """
    try:
        await anyio.to_thread.run_sync(handle.start)
        await anyio.to_thread.run_sync(handle.wait, abandon_on_cancel=True)
    except anyio.get_cancelled_exc_class():
        with anyio.CancelScope(shield=True):
            await _stop_on_cancel(handle)
        raise


async def _stop_on_cancel(handle: ProcessHandle) -> None:
    if not handle.cancellable:
        logger.warning(f"Cancelled while running non-cancellable {handle!r}")
        return
    handle.stop()
    logger.debug(f"Stopped {handle!r} on cancellation")

    if handle.state is not ProcessState.RUNNING:
        return
    try:
        await anyio.to_thread.run_sync(handle.wait)
    except ProcessStateError:
        # The abandoned wait() thread owns the reap
        pass
    except ExitError as e:
        logger.debug(f"Reaped stopped subprocess: {e}")
