"""Runtime module for managed subprocess execution.

This module provides process handles with output capture, process-group
isolation and cooperative cancellation, plus a one-shot shell helper.
"""

from __future__ import annotations

from .aio import run_handle
from .context import CancelContext
from .process_handle import (
    CancellableProcessHandle,
    CmdMeta,
    Option,
    ProcessHandle,
    ProcessState,
    RunnerOptions,
    ShellProcessHandle,
    runner,
    runner_with_command,
    runner_with_command_str,
    with_directory,
    with_logger,
)
from .shell import exec_command

__all__ = [
    "CancelContext",
    "CancellableProcessHandle",
    "CmdMeta",
    "Option",
    "ProcessHandle",
    "ProcessState",
    "RunnerOptions",
    "ShellProcessHandle",
    "exec_command",
    "run_handle",
    "runner",
    "runner_with_command",
    "runner_with_command_str",
    "with_directory",
    "with_logger",
]
