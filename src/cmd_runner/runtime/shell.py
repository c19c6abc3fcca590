"""One-shot shell command execution.

Stateless helper: no handle, no cancellation, no lock.
"""

from __future__ import annotations

import logging
import shlex
import subprocess

from ..config import get_config
from ..errors import ExitError, SpawnError

__all__ = ["exec_command"]

logger = logging.getLogger(__name__)


def exec_command(cmd_str: str) -> str:
    """Run cmd_str through the shell and return combined stdout+stderr.

    Args:
        cmd_str: Command string passed to `<shell> -c`

    Returns:
        Decoded combined output

    Raises:
        SpawnError: If the shell cannot be spawned
        ExitError: If the command exits non-zero (output attached as stderr)
    """
    argv = [get_config().shell, "-c", cmd_str]
    command = shlex.join(argv)

    try:
        result = subprocess.run(
            argv,
            check=False,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
    except OSError as e:
        raise SpawnError(command, str(e)) from e

    logger.debug(f"Shell command completed returncode={result.returncode} cmd={cmd_str!r}")

    if result.returncode != 0:
        raise ExitError(command, result.returncode, result.stdout)
    return result.stdout.decode(errors="replace")
