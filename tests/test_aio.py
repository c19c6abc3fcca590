"""run_handle async bridge tests."""

from __future__ import annotations

import logging
import sys
import time

import anyio
import pytest

from cmd_runner.errors import ExitError, SpawnError
from cmd_runner.runtime import (
    ProcessState,
    run_handle,
    runner_with_command,
    runner_with_command_str,
    with_logger,
)

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX process groups")


class TestRunHandle:
    """Test awaiting handles from async code."""

    @pytest.mark.asyncio
    async def test_success(self):
        handle = runner_with_command("echo", ["hi"])

        await run_handle(handle)

        assert handle.succeeded is True
        assert handle.stdout == b"hi\n"

    @pytest.mark.asyncio
    async def test_failure_propagates(self):
        handle = runner_with_command_str("exit 5")

        with pytest.raises(ExitError) as exc_info:
            await run_handle(handle)

        assert exc_info.value.returncode == 5

    @pytest.mark.asyncio
    async def test_spawn_failure_propagates(self):
        handle = runner_with_command("nonexistent_command_xyz_123")

        with pytest.raises(SpawnError):
            await run_handle(handle)

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_cancellation_stops_process(self):
        handle = runner_with_command("sleep", ["30"])

        with anyio.move_on_after(0.5) as scope:
            await run_handle(handle)

        assert scope.cancelled_caught
        assert handle.canceled is True

        # The abandoned wait() thread records the outcome once the process exits
        with anyio.fail_after(5):
            while handle.state is ProcessState.RUNNING:
                await anyio.sleep(0.05)

        assert handle.state is ProcessState.CANCELED

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_cancellation_during_start_reaps_process(self):
        class SlowHandler(logging.Handler):
            def emit(self, record: logging.LogRecord) -> None:
                time.sleep(0.5)

        log = logging.getLogger("tests.slow_start")
        handler = SlowHandler()
        log.addHandler(handler)
        log.setLevel(logging.INFO)
        log.propagate = False
        try:
            handle = runner_with_command("sleep", ["30"], with_logger(log))

            with anyio.move_on_after(0.1) as scope:
                await run_handle(handle)
        finally:
            log.removeHandler(handler)

        assert scope.cancelled_caught
        assert handle.started is True
        assert handle.canceled is True
        assert handle.state is ProcessState.CANCELED
        assert handle.stdout == b""
        assert handle.stderr == b""
