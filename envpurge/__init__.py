"""envpurge - purge a committed secrets file from git history."""

__version__ = "0.1.0"
__author__ = "envpurge contributors"

from envpurge.core.models import (
    CleanupConfig,
    CleanupContext,
    CleanupReport,
    RedactionRule,
    StepStatus,
)
from envpurge.core.pipeline import CleanupPipeline

__all__ = [
    "CleanupConfig",
    "CleanupContext",
    "CleanupPipeline",
    "CleanupReport",
    "RedactionRule",
    "StepStatus",
    "__version__",
]
