"""Managed process handles with process-group cancellation.

cmd-runner runtime module v0.1.0

This module provides:
- Three constructors (job metadata, name + args, shell string) sharing one builder
- Session/process-group isolation so stop() reaches the whole process tree
- Full-buffer stdout/stderr capture into anonymous temporary files
- Lock-guarded start/wait/stop under concurrent access

Key design points:
- POSIX: start_new_session=True puts the child in its own process group
- stop() cancels the handle's context (kills the direct child), then signals
  the whole process group
- wait() drops the lock while blocked on exit, so a concurrent stop() is
  never starved by a waiting caller
- A handle runs exactly one process; it cannot be restarted
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import tempfile
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import IO

from ..config import get_config
from ..errors import (
    AlreadyStartedError,
    ExitError,
    NotCancellableError,
    NotStartedError,
    ProcessCanceledError,
    ProcessStateError,
    SpawnError,
)
from .context import CancelContext

__all__ = [
    "CmdMeta",
    "RunnerOptions",
    "Option",
    "ProcessState",
    "ProcessHandle",
    "CancellableProcessHandle",
    "ShellProcessHandle",
    "with_directory",
    "with_logger",
    "runner",
    "runner_with_command",
    "runner_with_command_str",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CmdMeta:
    """Job metadata for a command.

    Attributes:
        job_id: Caller-defined job identifier
        name: Program to execute
        args: Program arguments
    """

    job_id: str
    name: str
    args: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RunnerOptions:
    """Construction-time configuration of a handle.

    Attributes:
        directory: Working directory for the process (None = inherit)
        logger: Logger receiving the rendered command line before spawn
    """

    directory: Path | None = None
    logger: logging.Logger | None = None


Option = Callable[[RunnerOptions], RunnerOptions]


def with_directory(directory: str | os.PathLike[str]) -> Option:
    """Run the process in the given working directory."""
    path = Path(directory)

    def apply(options: RunnerOptions) -> RunnerOptions:
        return replace(options, directory=path)

    return apply


def with_logger(log: logging.Logger) -> Option:
    """Log the rendered command line to the given logger before spawning."""

    def apply(options: RunnerOptions) -> RunnerOptions:
        return replace(options, logger=log)

    return apply


def _apply_options(options: Sequence[Option]) -> RunnerOptions:
    result = RunnerOptions()
    for option in options:
        result = option(result)
    return result


class ProcessState(str, Enum):
    """Lifecycle of a handle."""

    CREATED = "created"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


class ProcessHandle:
    """One subprocess invocation and its captured results.

    Not cancellable: stop() raises NotCancellableError. Use
    CancellableProcessHandle for processes that must be stoppable.

    Attributes:
        job_id: Job identifier (empty when built without metadata)
        name: Program name
        args: Program arguments
        options: Construction-time options
        stdout: Captured stdout, set by wait()
        stderr: Captured stderr, set by wait() or by a failed start()
    """

    cancellable: bool = False

    def __init__(
        self,
        argv: Sequence[str],
        *,
        job_id: str = "",
        options: RunnerOptions | None = None,
    ) -> None:
        if not argv:
            raise ValueError("argv must name a program")
        self.job_id = job_id
        self.name = argv[0]
        self.args = list(argv[1:])
        self.options = options if options is not None else RunnerOptions()
        self.stdout: bytes | None = None
        self.stderr: bytes | None = None

        self._argv = list(argv)
        self._process: subprocess.Popen[bytes] | None = None
        self._stdout_sink: IO[bytes] | None = None
        self._stderr_sink: IO[bytes] | None = None
        self._state = ProcessState.CREATED
        self._canceled = False
        self._waiting = False
        self._lock = threading.Lock()

    @property
    def command_line(self) -> str:
        """The command rendered as a shell-quoted string."""
        return shlex.join(self._argv)

    @property
    def directory(self) -> Path | None:
        return self.options.directory

    @property
    def state(self) -> ProcessState:
        return self._state

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def started(self) -> bool:
        """Whether a process was spawned for this handle."""
        return self._process is not None

    @property
    def succeeded(self) -> bool:
        return self._state is ProcessState.SUCCEEDED

    @property
    def canceled(self) -> bool:
        """Whether stop() was accepted."""
        return self._canceled

    def start(self) -> None:
        """Spawn the process.

        The captured output keeps filling until the process exits; read it
        only after wait() returns.

        Raises:
            AlreadyStartedError: If start() was already called
            ProcessCanceledError: If the handle was stopped before starting
            SpawnError: If the process cannot be spawned
        """
        with self._lock:
            if self._state is not ProcessState.CREATED:
                raise AlreadyStartedError(
                    f"process already started: {self.command_line!r}"
                )
            self._check_can_start()

            if self.options.logger is not None:
                self.options.logger.info(self.command_line)

            self._stdout_sink = tempfile.TemporaryFile()
            self._stderr_sink = tempfile.TemporaryFile()
            try:
                process = subprocess.Popen(
                    self._argv,
                    stdin=subprocess.DEVNULL,
                    stdout=self._stdout_sink,
                    stderr=self._stderr_sink,
                    cwd=self.directory,
                    start_new_session=True,
                )
            except OSError as e:
                self.stderr = self._read_sink(self._stderr_sink)
                self._close_sinks()
                self._state = ProcessState.FAILED
                raise SpawnError(self.command_line, str(e), self.stderr) from e

            self._process = process
            self._state = ProcessState.RUNNING
            self._on_started(process)

            logger.debug(
                f"Started subprocess pid={process.pid} "
                f"argv={self.name} cwd={self.directory}"
            )

    def wait(self) -> None:
        """Block until the process exits and record its outcome.

        stdout and stderr are populated whatever the outcome.

        Raises:
            NotStartedError: If no process was spawned
            ProcessStateError: If the handle was already waited
            ProcessCanceledError: If the process ended after stop()
            ExitError: If the process exited non-zero or was killed
        """
        with self._lock:
            process = self._process
            if process is None:
                raise NotStartedError(f"process not started: {self.command_line!r}")
            if self._state is not ProcessState.RUNNING or self._waiting:
                raise ProcessStateError(
                    f"process already waited: {self.command_line!r}"
                )
            self._waiting = True

        try:
            returncode = process.wait()
        finally:
            with self._lock:
                self._waiting = False

        with self._lock:
            self.stdout = self._read_sink(self._stdout_sink)
            self.stderr = self._read_sink(self._stderr_sink)
            self._close_sinks()

            logger.debug(
                f"Subprocess completed pid={process.pid} returncode={returncode}"
            )

            if returncode == 0:
                self._state = ProcessState.SUCCEEDED
                return
            if self._canceled:
                self._state = ProcessState.CANCELED
                raise ProcessCanceledError(self.command_line, returncode, self.stderr)
            self._state = ProcessState.FAILED
            raise ExitError(self.command_line, returncode, self.stderr)

    def start_and_wait(self) -> None:
        """start() then wait(); a failed start() is not waited."""
        self.start()
        self.wait()

    def stop(self) -> None:
        """Request termination of the process.

        Raises:
            NotCancellableError: Always, this handle has no cancel capability
        """
        raise NotCancellableError(self.command_line)

    def _check_can_start(self) -> None:
        """Hook run under the lock before spawning."""

    def _on_started(self, process: subprocess.Popen[bytes]) -> None:
        """Hook run under the lock right after a successful spawn."""

    @staticmethod
    def _read_sink(sink: IO[bytes] | None) -> bytes:
        if sink is None:
            return b""
        sink.seek(0)
        return sink.read()

    def _close_sinks(self) -> None:
        for sink in (self._stdout_sink, self._stderr_sink):
            if sink is not None:
                sink.close()
        self._stdout_sink = None
        self._stderr_sink = None

    def __repr__(self) -> str:
        job = f"job={self.job_id}, " if self.job_id else ""
        return (
            f"{type(self).__name__}({job}"
            f"cmd={self.command_line!r}, "
            f"state={self._state.value}, "
            f"pid={self.pid})"
        )


class CancellableProcessHandle(ProcessHandle):
    """Process handle bound to a CancelContext.

    stop() cancels the context, which kills the direct child, and then sends
    the configured group signal (SIGTERM by default) to the child's process
    group so that descendants are terminated as well.

    Example:
        handle = runner_with_command("sleep", ["30"])
        handle.start()
        threading.Timer(1.0, handle.stop).start()
        try:
            handle.wait()
        except ProcessCanceledError:
            ...
    """

    cancellable = True

    def __init__(
        self,
        argv: Sequence[str],
        *,
        job_id: str = "",
        options: RunnerOptions | None = None,
        context: CancelContext | None = None,
    ) -> None:
        super().__init__(argv, job_id=job_id, options=options)
        self.context = context if context is not None else CancelContext()

    def stop(self) -> None:
        """Request termination of the process and its process group.

        Returns without waiting for the process to exit; a concurrent or
        subsequent wait() observes the termination. Stopping before start()
        makes start() fail.
        """
        with self._lock:
            self._canceled = True
            process = self._process
            pgid = self._lookup_pgid(process) if process is not None else None

            self.context.cancel()

            if pgid is not None:
                self._signal_group(pgid)

    def _check_can_start(self) -> None:
        if self.context.cancelled:
            self._state = ProcessState.CANCELED
            raise ProcessCanceledError(self.command_line)

    def _on_started(self, process: subprocess.Popen[bytes]) -> None:
        # Popen.kill() is a no-op once the process has been reaped
        self.context.add_callback(process.kill)

    @staticmethod
    def _lookup_pgid(process: subprocess.Popen[bytes]) -> int | None:
        if process.returncode is not None:
            return None
        try:
            pgid = os.getpgid(process.pid)
        except OSError as e:
            logger.debug(f"getpgid failed pid={process.pid}: {e}")
            return None
        # Never signal our own group
        if pgid == os.getpgrp():
            logger.warning(f"Subprocess pid={process.pid} shares our process group")
            return None
        return pgid

    @staticmethod
    def _signal_group(pgid: int) -> None:
        sig = get_config().group_signal
        try:
            os.killpg(pgid, sig)
            logger.debug(f"Sent {sig.name} to process group pgid={pgid}")
        except OSError as e:
            logger.debug(f"killpg failed pgid={pgid}: {e}")


class ShellProcessHandle(ProcessHandle):
    """Process handle running a command string through the shell.

    Has no cancel capability: stop() raises NotCancellableError.

    Attributes:
        command_str: The command string passed to `<shell> -c`
    """

    def __init__(
        self,
        command_str: str,
        *,
        shell: str,
        options: RunnerOptions | None = None,
    ) -> None:
        super().__init__([shell, "-c", command_str], options=options)
        self.command_str = command_str


def runner(meta: CmdMeta, *options: Option) -> CancellableProcessHandle:
    """Build a cancellable handle from job metadata."""
    return CancellableProcessHandle(
        [meta.name, *meta.args],
        job_id=meta.job_id,
        options=_apply_options(options),
    )


def runner_with_command(
    name: str,
    args: Sequence[str] = (),
    *options: Option,
) -> CancellableProcessHandle:
    """Build a cancellable handle from a program name and arguments."""
    return CancellableProcessHandle(
        [name, *args],
        options=_apply_options(options),
    )


def runner_with_command_str(cmd_str: str, *options: Option) -> ShellProcessHandle:
    """Build a non-cancellable handle running cmd_str through the shell."""
    return ShellProcessHandle(
        cmd_str,
        shell=get_config().shell,
        options=_apply_options(options),
    )
