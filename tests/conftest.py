"""Pytest 配置和 fixtures。"""

from __future__ import annotations

import os
import sys
import time
from collections.abc import Callable
from pathlib import Path

import pytest

# 项目根目录
PROJECT_ROOT = Path(__file__).parent.parent

# 添加 src 目录到 Python 路径
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from cmd_runner.config import reload_config  # noqa: E402

HAS_PROC = Path("/proc/self/stat").exists()


@pytest.fixture
def temp_workspace(tmp_path: Path) -> Path:
    """临时工作目录。"""
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    return workspace


@pytest.fixture
def fresh_config():
    """测试前后重新加载全局配置，避免环境变量修改泄漏到其他测试。"""
    reload_config()
    yield
    reload_config()


def wait_for(predicate: Callable[[], object], timeout: float = 5.0, interval: float = 0.05) -> bool:
    """轮询直到 predicate 为真或超时。"""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return bool(predicate())


def _read_stat(pid: int) -> tuple[str, int] | None:
    """读取 /proc/<pid>/stat，返回 (state, pgrp)。"""
    try:
        raw = Path(f"/proc/{pid}/stat").read_text()
    except (FileNotFoundError, ProcessLookupError, PermissionError):
        return None
    # comm 字段可能包含空格，从最后一个 ')' 之后开始解析
    fields = raw[raw.rindex(")") + 2:].split()
    return fields[0], int(fields[2])


def is_alive(pid: int) -> bool:
    """进程存在且不是僵尸进程。"""
    stat = _read_stat(pid)
    return stat is not None and stat[0] != "Z"


def live_group_members(pgid: int) -> list[int]:
    """进程组内仍存活（非僵尸）的进程列表。"""
    members = []
    for entry in os.listdir("/proc"):
        if not entry.isdigit():
            continue
        stat = _read_stat(int(entry))
        if stat is not None and stat[1] == pgid and stat[0] != "Z":
            members.append(int(entry))
    return members
