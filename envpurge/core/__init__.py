"""Core package for envpurge."""

from envpurge.core.exceptions import EnvPurgeError
from envpurge.core.models import CleanupConfig, CleanupContext, CleanupReport, RedactionRule
from envpurge.core.pipeline import CleanupPipeline
from envpurge.core.runner import CommandResult, CommandRunner, SubprocessRunner
from envpurge.core.steps import cleanup_steps, verification_steps

__all__ = [
    "EnvPurgeError",
    "CleanupConfig",
    "CleanupContext",
    "CleanupReport",
    "RedactionRule",
    "CleanupPipeline",
    "CommandResult",
    "CommandRunner",
    "SubprocessRunner",
    "cleanup_steps",
    "verification_steps",
]
