"""cmd-runner 异常类。

所有异常都以返回值的形式抛给调用方，不会导致宿主进程退出。
"""

from __future__ import annotations

__all__ = [
    "RunnerError",
    "SpawnError",
    "ExitError",
    "ProcessCanceledError",
    "NotCancellableError",
    "ProcessStateError",
    "NotStartedError",
    "AlreadyStartedError",
]


class RunnerError(Exception):
    """cmd-runner 基础异常。"""
    pass


class SpawnError(RunnerError):
    """进程无法启动（可执行文件不存在、权限不足、工作目录无效）。

    Attributes:
        command: 渲染后的命令行
        stderr: 启动失败时 stderr 缓冲区的内容（通常为空）
    """

    def __init__(self, command: str, message: str, stderr: bytes = b"") -> None:
        self.command = command
        self.stderr = stderr
        super().__init__(f"failed to start {command!r}: {message}")


class ExitError(RunnerError):
    """进程以非零退出码结束或被信号终止。

    Attributes:
        command: 渲染后的命令行
        returncode: 退出码（负数表示被信号终止）
        stderr: 捕获的 stderr 内容
    """

    def __init__(self, command: str, returncode: int, stderr: bytes = b"") -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        if returncode < 0:
            reason = f"terminated by signal {-returncode}"
        else:
            reason = f"exit status {returncode}"
        super().__init__(f"{command!r}: {reason}")


class ProcessCanceledError(ExitError):
    """进程在 stop() 被接受后结束，或在已取消的上下文上调用 start()。

    在已取消的上下文上调用 start() 时进程从未启动，returncode 为 None。
    """

    def __init__(
        self,
        command: str,
        returncode: int | None = None,
        stderr: bytes = b"",
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        RunnerError.__init__(self, f"{command!r}: canceled")


class NotCancellableError(RunnerError):
    """在没有取消能力的句柄上调用 stop()（调用方编程错误）。"""

    def __init__(self, command: str) -> None:
        self.command = command
        super().__init__(f"this command has no cancel capability: {command!r}")


class ProcessStateError(RunnerError):
    """句柄生命周期使用错误。"""
    pass


class NotStartedError(ProcessStateError):
    """在 start() 成功之前调用 wait()。"""
    pass


class AlreadyStartedError(ProcessStateError):
    """同一句柄第二次调用 start()；句柄不可复用。"""
    pass
