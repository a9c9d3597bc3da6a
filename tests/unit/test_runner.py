"""Unit tests for the subprocess command runner."""

import sys
from pathlib import Path

import pytest

from envpurge.core.runner import CommandResult, SubprocessRunner


@pytest.mark.unit
class TestCommandResult:
    """Test CommandResult helpers."""

    def test_ok_and_output(self):
        result = CommandResult(args=["git"], returncode=0, stdout="  abc\n\ndef\n")

        assert result.ok
        assert result.output == "abc\n\ndef"
        assert result.lines() == ["  abc", "def"]

    def test_failure(self):
        assert not CommandResult(args=["git"], returncode=1).ok


@pytest.mark.unit
class TestSubprocessRunner:
    """Test SubprocessRunner against real processes."""

    def test_captures_output(self, tmp_path):
        result = SubprocessRunner().run(
            [sys.executable, "-c", "import os; print(os.getcwd())"], cwd=tmp_path
        )

        assert result.ok
        assert Path(result.output).resolve() == tmp_path.resolve()

    def test_captures_exit_status(self):
        result = SubprocessRunner().run(
            [sys.executable, "-c", "import sys; sys.stderr.write('bad'); sys.exit(3)"]
        )

        assert result.returncode == 3
        assert result.stderr == "bad"

    def test_missing_executable(self):
        result = SubprocessRunner().run(["definitely-not-a-real-program-envpurge"])

        assert result.returncode == 127
        assert not result.ok
