"""Command runner interface for external tool invocations."""

import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from envpurge.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class CommandResult:
    """Outcome of one external command."""

    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Stripped standard output."""
        return self.stdout.strip()

    def lines(self) -> List[str]:
        """Non-empty output lines."""
        return [line for line in self.stdout.splitlines() if line.strip()]


class CommandRunner(ABC):
    """Interface for running external commands."""

    @abstractmethod
    def run(self, args: Sequence[str], cwd: Optional[Path] = None) -> CommandResult:
        """
        Run a command to completion.

        Args:
            args: Program and arguments, no shell interpretation
            cwd: Working directory for the command

        Returns:
            CommandResult with exit status and captured output
        """
        pass


class SubprocessRunner(CommandRunner):
    """Runs commands with subprocess, blocking until they exit."""

    def run(self, args: Sequence[str], cwd: Optional[Path] = None) -> CommandResult:
        args = [str(arg) for arg in args]
        logger.debug("Running: %s (cwd=%s)", " ".join(args), cwd)
        try:
            completed = subprocess.run(
                args,
                cwd=cwd,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as e:
            # Missing executable is reported like a failed command
            logger.debug("Executable not found: %s", args[0])
            return CommandResult(args=args, returncode=127, stderr=str(e))

        if completed.returncode != 0:
            logger.debug("Exit %d: %s", completed.returncode, completed.stderr.strip())
        return CommandResult(
            args=args,
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )
