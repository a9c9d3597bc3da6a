"""Core domain models for envpurge."""

import sys
from contextlib import ExitStack
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from envpurge.core.runner import CommandResult, CommandRunner, SubprocessRunner

DEFAULT_BACKUP_BRANCH = "backup-main-before-secret-clean"


@dataclass(frozen=True)
class RedactionRule:
    """A regex and the placeholder that replaces every match."""

    pattern: str
    replacement: str

    def to_line(self) -> str:
        """Render in git-filter-repo --replace-text syntax."""
        return f"regex:{self.pattern}==>{self.replacement}"


DEFAULT_RULES: Tuple[RedactionRule, ...] = (
    RedactionRule(r"gsk_[A-Za-z0-9_-]+", "[REDACTED-GROQ-KEY]"),
    RedactionRule(r"sk-[A-Za-z0-9._-]+", "[REDACTED-OPENAI-KEY]"),
)

DEFAULT_MARKERS: Tuple[str, ...] = ("gsk_", "sk-")


@dataclass
class CleanupConfig:
    """Settings for one cleanup run. Defaults are the fixed workflow literals."""

    secrets_file: str = ".env"
    ignore_file: str = ".gitignore"
    backup_branch: str = DEFAULT_BACKUP_BRANCH
    main_branch: str = "main"
    remote: str = "origin"
    rules: Tuple[RedactionRule, ...] = DEFAULT_RULES
    residual_markers: Tuple[str, ...] = DEFAULT_MARKERS
    rewrite_tool_package: str = "git-filter-repo"
    python_executable: str = sys.executable
    skip_install: bool = False
    push: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        data = asdict(self)
        data["rules"] = [asdict(rule) for rule in self.rules]
        data["residual_markers"] = list(self.residual_markers)
        return data


class StepStatus(str, Enum):
    """Outcome of a workflow step."""

    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class StepResult:
    """Result of one workflow step."""

    name: str
    status: StepStatus
    message: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "status": self.status.value, "message": self.message}


@dataclass
class CleanupReport:
    """Result of a full pipeline run."""

    repo_path: str
    steps: List[StepResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and all(s.status != StepStatus.FAILED for s in self.steps)

    def status_of(self, name: str) -> Optional[StepStatus]:
        """Status of the named step, or None if it never ran."""
        for step in self.steps:
            if step.name == name:
                return step.status
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repo_path": self.repo_path,
            "succeeded": self.succeeded,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "error": self.error,
            "steps": [step.to_dict() for step in self.steps],
        }


def _no_output(message: str) -> None:
    pass


@dataclass
class CleanupContext:
    """
    Everything a workflow step needs: the repository, how to reach
    external tools, the settings and per-run state.

    ``confirm`` gates the force push. When it is None the push runs
    without asking.
    """

    repo_path: Path
    runner: CommandRunner = field(default_factory=SubprocessRunner)
    config: CleanupConfig = field(default_factory=CleanupConfig)
    echo: Callable[[str], None] = _no_output
    confirm: Optional[Callable[[str], bool]] = None

    # Per-run state
    resources: Optional[ExitStack] = None
    ruleset_path: Optional[Path] = None

    def __post_init__(self):
        self.repo_path = Path(self.repo_path)

    def git(self, *args: str) -> CommandResult:
        """Run a git subcommand inside the repository."""
        return self.runner.run(["git", *args], cwd=self.repo_path)

    def run(self, *args: str) -> CommandResult:
        """Run an arbitrary command inside the repository."""
        return self.runner.run(list(args), cwd=self.repo_path)

    @property
    def secrets_path(self) -> Path:
        return self.repo_path / self.config.secrets_file

    @property
    def ignore_path(self) -> Path:
        return self.repo_path / self.config.ignore_file
