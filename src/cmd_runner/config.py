"""cmd-runner 环境变量配置管理。

环境变量:
    CMDR_SHELL: 执行命令字符串时使用的 shell
        - 默认 sh
        - 以 `<shell> -c <命令字符串>` 的形式调用

    CMDR_GROUP_SIGNAL: stop() 发送给整个进程组的信号
        - TERM (默认) / KILL / INT / HUP
        - 忽略大小写，可带 SIG 前缀，例: "SIGKILL" 或 "kill"

    CMDR_LOG_DEBUG: 日志调试模式
        - true/1/yes = 开启 (日志输出到临时文件)
        - false/0/no = 关闭 (默认，日志输出到 stderr)
"""

from __future__ import annotations

import os
import signal
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

__all__ = ["Config", "load_config", "get_config", "reload_config", "GROUP_SIGNALS"]

# 允许发送给进程组的信号
GROUP_SIGNALS: dict[str, signal.Signals] = {
    "TERM": signal.SIGTERM,
    "KILL": signal.SIGKILL,
    "INT": signal.SIGINT,
    "HUP": signal.SIGHUP,
}

DEFAULT_SHELL = "sh"


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """解析布尔值环境变量。"""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_shell(value: str | None) -> str:
    """解析 shell 环境变量，空值回落到默认 shell。"""
    if not value or not value.strip():
        return DEFAULT_SHELL
    return value.strip()


def _parse_group_signal(value: str | None) -> signal.Signals:
    """解析进程组信号环境变量。

    Args:
        value: 信号名，忽略大小写，可带 SIG 前缀

    Returns:
        对应的信号，无效值返回 SIGTERM
    """
    if not value:
        return signal.SIGTERM
    name = value.strip().upper()
    if name.startswith("SIG"):
        name = name[3:]
    return GROUP_SIGNALS.get(name, signal.SIGTERM)


@dataclass
class Config:
    """cmd-runner 配置。

    Attributes:
        shell: 执行命令字符串时使用的 shell
        group_signal: stop() 发送给进程组的信号
        log_debug: 日志调试模式（输出到临时文件）
        log_file: 日志文件路径（当 log_debug=True 时自动设置）
    """

    shell: str = DEFAULT_SHELL
    group_signal: signal.Signals = signal.SIGTERM
    log_debug: bool = False
    log_file: str | None = None

    def __repr__(self) -> str:
        return (
            f"Config(shell={self.shell}, "
            f"group_signal={self.group_signal.name}, "
            f"log_debug={self.log_debug}, "
            f"log_file={self.log_file})"
        )


def _generate_log_file_path() -> str:
    """生成日志文件路径。

    Returns:
        临时目录下的日志文件绝对路径
    """
    log_dir = Path(tempfile.gettempdir()) / "cmd-runner"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"cmdr_debug_{timestamp}.log"
    return str(log_file.resolve())


def load_config() -> Config:
    """从环境变量加载配置。"""
    log_debug = _parse_bool(os.environ.get("CMDR_LOG_DEBUG"), default=False)
    log_file = _generate_log_file_path() if log_debug else None

    return Config(
        shell=_parse_shell(os.environ.get("CMDR_SHELL")),
        group_signal=_parse_group_signal(os.environ.get("CMDR_GROUP_SIGNAL")),
        log_debug=log_debug,
        log_file=log_file,
    )


# 全局配置实例（延迟加载）
_config: Config | None = None


def get_config() -> Config:
    """获取全局配置实例。"""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """重新加载配置（用于测试）。"""
    global _config
    _config = load_config()
    return _config
