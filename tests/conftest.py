"""Test fixtures and utilities."""

import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

import pytest

from envpurge.core.models import CleanupConfig, CleanupContext
from envpurge.core.runner import CommandResult, CommandRunner

BACKUP_REF = "refs/heads/backup-main-before-secret-clean"


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests against a fake command runner")
    config.addinivalue_line("markers", "integration: tests that drive a real git binary")


class FakeRunner(CommandRunner):
    """
    Command runner that records calls and answers from canned responses.

    Responses match on an argument prefix; the most recently registered
    match wins. A response registered with ``times`` is used that many
    times and then falls through to older ones. Unmatched commands succeed
    with empty output.
    """

    def __init__(self):
        self.calls: List[List[str]] = []
        self._responses: list = []

    def on(self, *prefix: str, returncode: int = 0, stdout: str = "",
           stderr: str = "", times: Optional[int] = None) -> "FakeRunner":
        self._responses.append(
            {"prefix": tuple(prefix), "returncode": returncode,
             "stdout": stdout, "stderr": stderr, "times": times}
        )
        return self

    def run(self, args: Sequence[str], cwd: Optional[Path] = None) -> CommandResult:
        args = [str(arg) for arg in args]
        self.calls.append(args)
        for response in reversed(self._responses):
            prefix = response["prefix"]
            if tuple(args[:len(prefix)]) != prefix:
                continue
            if response["times"] is not None:
                if response["times"] == 0:
                    continue
                response["times"] -= 1
            return CommandResult(
                args=args,
                returncode=response["returncode"],
                stdout=response["stdout"],
                stderr=response["stderr"],
            )
        return CommandResult(args=args, returncode=0)

    def called(self, *prefix: str) -> bool:
        return self.count(*prefix) > 0

    def count(self, *prefix: str) -> int:
        return sum(1 for call in self.calls if tuple(call[:len(prefix)]) == prefix)

    def git_subcommands(self) -> List[str]:
        return [call[1] for call in self.calls if call[0] == "git"]


@pytest.fixture
def fake_runner(repo_dir):
    """A runner describing a clean repository where nothing is tracked yet."""
    runner = FakeRunner()
    runner.on("git", "rev-parse", "--is-inside-work-tree", stdout="true\n")
    runner.on("git", "rev-parse", "--show-toplevel", stdout=f"{repo_dir}\n")
    runner.on("git", "ls-files", "--error-unmatch", returncode=1,
              stderr="error: pathspec '.env' did not match any file(s) known to git")
    runner.on("git", "rev-parse", "--verify", "--quiet", BACKUP_REF, returncode=1)
    runner.on("git", "for-each-ref", stdout=f"refs/heads/main\n{BACKUP_REF}\nrefs/tags/v1\n")
    runner.on("git", "filter-repo", "--version", stdout="a40bce548d2c\n")
    return runner


@pytest.fixture
def repo_dir(tmp_path):
    """An empty directory standing in for the repository root."""
    path = tmp_path / "repo"
    path.mkdir()
    return path


@pytest.fixture
def make_context(repo_dir, fake_runner):
    """Build a CleanupContext on the fake runner, collecting echoed lines."""

    def _make(config: Optional[CleanupConfig] = None, confirm=None) -> CleanupContext:
        ctx = CleanupContext(
            repo_path=repo_dir,
            runner=fake_runner,
            config=config or CleanupConfig(),
            confirm=confirm,
        )
        ctx.output = []
        ctx.echo = ctx.output.append
        return ctx

    return _make


def _git(repo: Path, *args: str) -> str:
    result = subprocess.run(["git", *args], cwd=repo, capture_output=True, text=True)
    assert result.returncode == 0, result.stderr
    return result.stdout


@pytest.fixture
def git():
    """Run git in a directory and return stdout, failing the test on error."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    return _git


@pytest.fixture
def make_git_repo(tmp_path, git):
    """Create a real repository on branch main with one initial commit."""

    def _make(name: str = "work", with_env: bool = True) -> Path:
        repo = tmp_path / name
        repo.mkdir()
        git(repo, "init", "--quiet", "--initial-branch=main")
        git(repo, "config", "user.name", "Test User")
        git(repo, "config", "user.email", "test@example.com")
        git(repo, "config", "commit.gpgsign", "false")

        if with_env:
            (repo / ".env").write_text("API_KEY=sk-abc123\n")
        (repo / "app.py").write_text('print("hello")\n')
        git(repo, "add", "-A")
        git(repo, "commit", "--quiet", "-m", "Initial commit")
        return repo

    return _make


@pytest.fixture
def git_repo(make_git_repo):
    """A real repository whose only commit contains .env."""
    return make_git_repo()