"""cmd-runner 命令行入口测试。"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from cmd_runner.app import EXIT_SPAWN_FAILED, EXIT_TIMEOUT, EXIT_USAGE, run

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX process groups")


class TestRun:
    """测试 run() 的退出码与输出。"""

    def test_success(self, capsys: pytest.CaptureFixture[str]):
        assert run(["--", "echo", "hello"]) == 0
        assert capsys.readouterr().out == "hello\n"

    def test_without_separator(self, capsys: pytest.CaptureFixture[str]):
        assert run(["echo", "hello"]) == 0
        assert capsys.readouterr().out == "hello\n"

    def test_exit_code_forwarded(self, capsys: pytest.CaptureFixture[str]):
        assert run(["--", "sh", "-c", "echo bad >&2; exit 3"]) == 3
        assert "bad" in capsys.readouterr().err

    def test_signal_exit_code(self):
        assert run(["--", "sh", "-c", "kill -9 $$"]) == 137

    def test_shell_mode(self, capsys: pytest.CaptureFixture[str]):
        assert run(["--shell", "--", "echo a; echo b"]) == 0
        assert capsys.readouterr().out == "a\nb\n"

    def test_job_id(self, capsys: pytest.CaptureFixture[str]):
        assert run(["--job-id", "nightly", "--", "echo", "ok"]) == 0
        assert capsys.readouterr().out == "ok\n"

    def test_working_directory(self, temp_workspace: Path, capsys: pytest.CaptureFixture[str]):
        (temp_workspace / "data.txt").write_text("content")

        assert run(["--dir", str(temp_workspace), "--", "cat", "data.txt"]) == 0
        assert capsys.readouterr().out == "content"

    def test_spawn_failure(self):
        assert run(["--", "nonexistent_command_xyz_123"]) == EXIT_SPAWN_FAILED

    @pytest.mark.timeout(10)
    def test_timeout_stops_command(self):
        assert run(["--timeout", "0.3", "--", "sleep", "30"]) == EXIT_TIMEOUT

    def test_timeout_not_reached(self, capsys: pytest.CaptureFixture[str]):
        assert run(["--timeout", "10", "--", "echo", "fast"]) == 0
        assert capsys.readouterr().out == "fast\n"

    def test_timeout_with_shell_rejected(self):
        assert run(["--shell", "--timeout", "1", "--", "sleep 30"]) == EXIT_USAGE

    def test_missing_command(self):
        with pytest.raises(SystemExit) as exc_info:
            run([])
        assert exc_info.value.code == 2
