"""Fail-fast runner for the cleanup workflow."""

from contextlib import ExitStack
from datetime import datetime
from typing import Iterable, List, Optional

from envpurge.core.models import CleanupContext, CleanupReport, StepResult, StepStatus
from envpurge.core.steps import Step, cleanup_steps
from envpurge.utils.logger import get_logger

logger = get_logger(__name__)

STATUS_ICONS = {
    StepStatus.DONE: "✅",
    StepStatus.SKIPPED: "⏭️ ",
    StepStatus.FAILED: "❌",
}


class CleanupPipeline:
    """
    Runs workflow steps in order and stops at the first failure.

    Transient resources opened by steps (the ruleset file) are registered
    on an ExitStack that is closed when the run ends, whether it finished
    or raised. The report of the latest run stays available on
    ``self.report`` so callers can inspect it after a failure.
    """

    def __init__(self, steps: Optional[Iterable[Step]] = None):
        self.steps: List[Step] = list(steps) if steps is not None else cleanup_steps()
        self.report: Optional[CleanupReport] = None

    def plan(self) -> List[str]:
        """Numbered step titles, without running anything."""
        return [f"{index}. {step.title}" for index, step in enumerate(self.steps, 1)]

    def run(self, ctx: CleanupContext) -> CleanupReport:
        """
        Execute every step against the context.

        Args:
            ctx: Repository context for this run

        Returns:
            CleanupReport with one StepResult per executed step

        Raises:
            EnvPurgeError: The first step failure, after it has been recorded
        """
        report = CleanupReport(repo_path=str(ctx.repo_path))
        self.report = report
        total = len(self.steps)

        with ExitStack() as stack:
            ctx.resources = stack
            try:
                for index, step in enumerate(self.steps, 1):
                    ctx.echo(f"\n📍 [{index}/{total}] {step.title}")
                    logger.info("Step %d/%d: %s", index, total, step.name)
                    try:
                        result = step.run(ctx)
                    except Exception as e:
                        message = getattr(e, "message", str(e))
                        report.steps.append(StepResult(step.name, StepStatus.FAILED, message))
                        report.error = message
                        logger.error("Step %s failed: %s", step.name, message)
                        raise
                    report.steps.append(result)
                    ctx.echo(f"   {STATUS_ICONS[result.status]} {result.message}")
            finally:
                ctx.resources = None
                report.repo_path = str(ctx.repo_path)
                report.finished_at = datetime.now()

        return report
