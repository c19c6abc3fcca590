"""cmd-runner 命令行入口。

用法:
    cmd-runner [--dir DIR] [--timeout SECONDS] [--shell] [--job-id ID] -- CMD [ARGS...]

退出码:
    子进程的退出码；被信号终止时为 128 + 信号值；
    超时为 124；无法启动为 127；--shell 与 --timeout 同时使用为 2。
"""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from collections.abc import Sequence

from . import __version__
from .config import Config, get_config
from .errors import ExitError, ProcessCanceledError, SpawnError
from .runtime import (
    CmdMeta,
    ProcessHandle,
    runner,
    runner_with_command,
    runner_with_command_str,
    with_directory,
    with_logger,
)

logger = logging.getLogger(__name__)

EXIT_USAGE = 2
EXIT_TIMEOUT = 124
EXIT_SPAWN_FAILED = 127


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cmd-runner",
        description="Run a command in its own process group and capture its output.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--dir", help="working directory for the command")
    parser.add_argument(
        "--timeout",
        type=float,
        help="stop the command and its process group after SECONDS",
    )
    parser.add_argument(
        "--shell",
        action="store_true",
        help="run the command words as one string through the shell (not cancellable)",
    )
    parser.add_argument("--job-id", default="", help="job identifier used in logs")
    parser.add_argument("command", nargs=argparse.REMAINDER, help="command and arguments")
    return parser


def _build_handle(args: argparse.Namespace, command: list[str]) -> ProcessHandle:
    options = [with_logger(logger)]
    if args.dir:
        options.append(with_directory(args.dir))

    if args.shell:
        return runner_with_command_str(" ".join(command), *options)
    if args.job_id:
        return runner(CmdMeta(args.job_id, command[0], command[1:]), *options)
    return runner_with_command(command[0], command[1:], *options)


def _emit_output(handle: ProcessHandle) -> None:
    """把捕获的输出写回控制台。"""
    sys.stdout.flush()
    sys.stdout.buffer.write(handle.stdout or b"")
    sys.stdout.buffer.flush()
    sys.stderr.flush()
    sys.stderr.buffer.write(handle.stderr or b"")
    sys.stderr.buffer.flush()


def run(argv: Sequence[str] | None = None) -> int:
    """解析参数并运行命令，返回退出码。"""
    parser = build_parser()
    args = parser.parse_args(argv)

    command = list(args.command)
    if command and command[0] == "--":
        command = command[1:]
    if not command:
        parser.error("missing command")

    handle = _build_handle(args, command)

    timer: threading.Timer | None = None
    if args.timeout is not None:
        if not handle.cancellable:
            logger.error("--timeout cannot be combined with --shell")
            return EXIT_USAGE
        timer = threading.Timer(args.timeout, handle.stop)
        timer.daemon = True
        timer.start()

    try:
        handle.start_and_wait()
    except SpawnError as e:
        logger.error(str(e))
        return EXIT_SPAWN_FAILED
    except ProcessCanceledError:
        _emit_output(handle)
        logger.warning(f"Command timed out after {args.timeout}s: {handle.command_line}")
        return EXIT_TIMEOUT
    except ExitError as e:
        _emit_output(handle)
        logger.info(str(e))
        if e.returncode < 0:
            return 128 - e.returncode
        return e.returncode
    finally:
        if timer is not None:
            timer.cancel()

    _emit_output(handle)
    return 0


def configure_logging(config: Config) -> None:
    """配置日志输出。"""
    log_handlers: list[logging.Handler] = []

    if config.log_debug and config.log_file:
        # LOG_DEBUG 模式：输出到临时文件
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        log_handlers.append(file_handler)
        log_level = logging.DEBUG
    else:
        # 默认模式：输出到 stderr
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        log_handlers.append(stderr_handler)
        log_level = logging.INFO

    # 第三方库保持 WARNING
    logging.basicConfig(
        level=logging.WARNING,
        handlers=log_handlers,
    )
    logging.getLogger("cmd_runner").setLevel(log_level)


def main() -> None:
    """主入口点。"""
    configure_logging(get_config())
    sys.exit(run())


if __name__ == "__main__":
    main()
