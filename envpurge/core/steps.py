"""Workflow steps for purging a committed secrets file from git history.

Each step checks its precondition, performs one action through the
context's command runner and verifies the outcome. A step either returns
a StepResult or raises an EnvPurgeError subclass; it never retries.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Type

from envpurge.core.exceptions import (
    BranchExistsError,
    CleanupError,
    DirtyWorkingTreeError,
    EnvPurgeError,
    ProvisioningError,
    PublishError,
    RepositoryError,
    ResidualSecretFileError,
    ResidualSecretPatternError,
    RewriteError,
)
from envpurge.core.models import CleanupContext, StepResult, StepStatus
from envpurge.core.runner import CommandResult
from envpurge.core.ruleset import ruleset_file
from envpurge.utils.logger import get_logger

logger = get_logger(__name__)


def _check(
    result: CommandResult,
    error_cls: Type[EnvPurgeError],
    message: str,
) -> CommandResult:
    """Raise error_cls if the command failed, otherwise return it."""
    if not result.ok:
        reason = result.stderr.strip() or result.output or f"exit status {result.returncode}"
        raise error_cls(
            f"{message}: {reason}",
            details={"command": " ".join(result.args), "returncode": result.returncode},
        )
    return result


def _has_staged_changes(ctx: CleanupContext, *paths: str) -> bool:
    """Whether the index differs from HEAD, optionally limited to paths."""
    args = ["diff", "--cached", "--quiet"]
    if paths:
        args += ["--", *paths]
    result = ctx.git(*args)
    if result.returncode == 0:
        return False
    if result.returncode == 1:
        return True
    _check(result, RepositoryError, "Failed to inspect staged changes")
    return False


def _is_tracked(ctx: CleanupContext, path: str) -> bool:
    return ctx.git("ls-files", "--error-unmatch", "--", path).ok


def history_scope(ctx: CleanupContext) -> List[str]:
    """
    Rev-list arguments covering every branch and tag except the backup.

    The backup branch deliberately keeps the pre-rewrite history, so the
    verification steps must not look at it.
    """
    return [f"--exclude={ctx.config.backup_branch}", "--branches", "--tags"]


class Step(ABC):
    """A single guarded step of the cleanup workflow."""

    name: str = ""
    title: str = ""

    @abstractmethod
    def run(self, ctx: CleanupContext) -> StepResult:
        """
        Execute the step.

        Args:
            ctx: Repository context for this run

        Returns:
            StepResult describing what happened

        Raises:
            EnvPurgeError: If a precondition or postcondition fails
        """
        pass

    def done(self, message: str) -> StepResult:
        return StepResult(self.name, StepStatus.DONE, message)

    def skipped(self, message: str) -> StepResult:
        return StepResult(self.name, StepStatus.SKIPPED, message)

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}>"


class CheckCleanTree(Step):
    """
    Refuse to run on a repository with uncommitted changes.

    A path inside the work tree is moved up to the top level, so every
    later step resolves the secrets and ignore files from the same root
    git filter-repo uses.
    """

    name = "check_clean_tree"
    title = "Check working tree is clean"

    def run(self, ctx: CleanupContext) -> StepResult:
        inside = ctx.git("rev-parse", "--is-inside-work-tree")
        if not inside.ok or inside.output != "true":
            raise RepositoryError(f"Not a git repository: {ctx.repo_path}")

        toplevel = _check(
            ctx.git("rev-parse", "--show-toplevel"),
            RepositoryError,
            "Failed to locate the repository root",
        )
        root = Path(toplevel.output).resolve()
        if root != ctx.repo_path.resolve():
            logger.info("Using repository root %s instead of %s", root, ctx.repo_path)
            ctx.repo_path = root

        status = _check(ctx.git("status", "--porcelain"), RepositoryError, "git status failed")
        if status.output:
            changes = status.lines()
            raise DirtyWorkingTreeError(
                f"Working tree has {len(changes)} uncommitted change(s); "
                "commit or stash them first",
                details={"changes": changes},
            )
        return self.done("Working tree is clean")


class EnsureIgnoreRule(Step):
    """Make sure the ignore file lists the secrets file."""

    name = "ensure_ignore_rule"
    title = "Add secrets file to ignore list"

    def run(self, ctx: CleanupContext) -> StepResult:
        entry = ctx.config.secrets_file
        ignore_file = ctx.config.ignore_file
        path = ctx.ignore_path

        existing = path.read_text(encoding="utf-8") if path.exists() else ""
        if entry in (line.strip() for line in existing.splitlines()):
            return self.skipped(f"{ignore_file} already ignores {entry}")

        separator = "" if not existing or existing.endswith("\n") else "\n"
        with open(path, "a", encoding="utf-8") as f:
            f.write(f"{separator}{entry}\n")
        logger.info("Appended %s to %s", entry, path)

        _check(ctx.git("add", "--", ignore_file), RepositoryError, f"Failed to stage {ignore_file}")
        if not _has_staged_changes(ctx, ignore_file):
            return self.skipped(f"{ignore_file} unchanged, nothing to commit")

        _check(
            ctx.git("commit", "-m", f"Add {entry} to {ignore_file}"),
            RepositoryError,
            f"Failed to commit {ignore_file}",
        )
        return self.done(f"Added {entry} to {ignore_file} and committed")


class UntrackSecretsFile(Step):
    """Stop tracking the secrets file while keeping the local copy."""

    name = "untrack_secrets_file"
    title = "Stop tracking secrets file"

    def run(self, ctx: CleanupContext) -> StepResult:
        secrets_file = ctx.config.secrets_file
        if not _is_tracked(ctx, secrets_file):
            return self.skipped(f"{secrets_file} is not tracked")

        _check(
            ctx.git("rm", "--cached", "--quiet", "--", secrets_file),
            RepositoryError,
            f"Failed to untrack {secrets_file}",
        )
        _check(ctx.git("add", "-A"), RepositoryError, "Failed to stage changes")
        if not _has_staged_changes(ctx):
            return self.skipped("Nothing staged, no commit needed")

        _check(
            ctx.git("commit", "-m", f"Stop tracking {secrets_file}"),
            RepositoryError,
            "Failed to commit untracking",
        )
        if _is_tracked(ctx, secrets_file):
            raise RepositoryError(f"{secrets_file} is still tracked after commit")
        return self.done(f"Untracked {secrets_file} (local copy kept)")


class CreateBackupBranch(Step):
    """Point a backup branch at the pre-rewrite history."""

    name = "create_backup_branch"
    title = "Create backup branch"

    def run(self, ctx: CleanupContext) -> StepResult:
        branch = ctx.config.backup_branch
        ref = f"refs/heads/{branch}"

        if ctx.git("rev-parse", "--verify", "--quiet", ref).ok:
            raise BranchExistsError(
                f"Backup branch '{branch}' already exists; "
                "delete or rename it before running again",
                details={"branch": branch},
            )

        _check(ctx.git("branch", branch), RepositoryError, f"Failed to create branch {branch}")
        head = _check(
            ctx.git("rev-parse", "--verify", "--quiet", ref),
            RepositoryError,
            f"Branch {branch} missing after creation",
        )
        return self.done(f"Created {branch} at {head.output[:12]}")


class ProvisionRewriteTool(Step):
    """Install or upgrade git-filter-repo with pip."""

    name = "provision_rewrite_tool"
    title = "Install history rewrite tool"

    def run(self, ctx: CleanupContext) -> StepResult:
        package = ctx.config.rewrite_tool_package

        if not ctx.config.skip_install:
            install = ctx.run(
                ctx.config.python_executable, "-m", "pip", "install", "--upgrade", package
            )
            _check(install, ProvisioningError, f"Failed to install {package}")

        version = ctx.git("filter-repo", "--version")
        if not version.ok:
            raise ProvisioningError(
                "git filter-repo is not available; make sure the pip scripts "
                "directory is on PATH",
                details={"package": package},
            )
        return self.done(f"git filter-repo {version.output} ready")


class WriteRuleset(Step):
    """Write the redaction rules to a transient file owned by the run."""

    name = "write_ruleset"
    title = "Write redaction ruleset"

    def run(self, ctx: CleanupContext) -> StepResult:
        if ctx.resources is None:
            raise CleanupError("No resource scope is open for the ruleset file")

        rules = ctx.config.rules
        ctx.ruleset_path = ctx.resources.enter_context(ruleset_file(rules))
        return self.done(f"Wrote {len(rules)} redaction rule(s) to {ctx.ruleset_path}")


class RewriteHistory(Step):
    """Drop the secrets file from history and redact key-like tokens."""

    name = "rewrite_history"
    title = "Rewrite history"

    def run(self, ctx: CleanupContext) -> StepResult:
        config = ctx.config
        if ctx.ruleset_path is None or not ctx.ruleset_path.exists():
            raise RewriteError("Ruleset file is missing; nothing to rewrite with")

        refs = self.refs_to_rewrite(ctx)
        if not refs:
            raise RewriteError("No branches or tags to rewrite")

        ruleset = str(ctx.ruleset_path)
        result = ctx.git(
            "filter-repo",
            "--force",
            "--invert-paths",
            "--path", config.secrets_file,
            "--replace-text", ruleset,
            "--replace-message", ruleset,
            "--refs", *refs,
        )
        if not result.ok:
            raise RewriteError(
                f"git filter-repo failed: {result.stderr.strip()}",
                details={"backup_branch": config.backup_branch},
            )
        return self.done(f"Rewrote {len(refs)} ref(s)")

    def refs_to_rewrite(self, ctx: CleanupContext) -> List[str]:
        """All local branches and tags except the backup branch."""
        result = _check(
            ctx.git("for-each-ref", "--format=%(refname)", "refs/heads", "refs/tags"),
            RepositoryError,
            "Failed to list refs",
        )
        backup_ref = f"refs/heads/{ctx.config.backup_branch}"
        return [ref for ref in result.lines() if ref.strip() != backup_ref]


class RemoveRuleset(Step):
    """Delete the transient ruleset file."""

    name = "remove_ruleset"
    title = "Remove redaction ruleset"

    def run(self, ctx: CleanupContext) -> StepResult:
        path = ctx.ruleset_path
        if path is None:
            return self.skipped("No ruleset file to remove")

        path.unlink(missing_ok=True)
        ctx.ruleset_path = None
        return self.done(f"Removed {path}")


class VerifySecretsFileGone(Step):
    """Confirm no rewritten revision contains the secrets file."""

    name = "verify_secrets_file_gone"
    title = "Verify secrets file is gone from history"

    def run(self, ctx: CleanupContext) -> StepResult:
        secrets_file = ctx.config.secrets_file
        result = _check(
            ctx.git("rev-list", *history_scope(ctx), "--", secrets_file),
            RepositoryError,
            "Failed to list commits",
        )
        commits = result.lines()
        if commits:
            raise ResidualSecretFileError(
                f"{secrets_file} still appears in {len(commits)} commit(s)",
                details={"commits": commits},
            )
        return self.done(f"{secrets_file} is absent from all history")


class VerifyPatternsGone(Step):
    """Confirm no commit content, commit message or tag message holds a key prefix."""

    name = "verify_patterns_gone"
    title = "Verify key patterns are gone from history"

    def run(self, ctx: CleanupContext) -> StepResult:
        scope = history_scope(ctx)
        tag_messages = self.tag_messages(ctx)
        residual: Dict[str, List[str]] = {}

        for marker in ctx.config.residual_markers:
            in_content = _check(
                ctx.git("log", "--format=%H", f"-S{marker}", *scope),
                RepositoryError,
                "Failed to search history",
            )
            in_message = _check(
                ctx.git("log", "--format=%H", "--fixed-strings", f"--grep={marker}", *scope),
                RepositoryError,
                "Failed to search commit messages",
            )
            hits = set(in_content.lines()) | set(in_message.lines())
            hits |= {tag for tag, message in tag_messages.items() if marker in message}
            if hits:
                residual[marker] = sorted(hits)

        if residual:
            found = ", ".join(
                f"'{marker}' in {len(hits)} commit(s) or tag(s)" for marker, hits in residual.items()
            )
            raise ResidualSecretPatternError(f"Key patterns still in history: {found}", details=residual)
        return self.done(f"No trace of {', '.join(ctx.config.residual_markers)} in history")

    def tag_messages(self, ctx: CleanupContext) -> Dict[str, str]:
        """Messages of annotated tags, keyed by ref name."""
        listing = _check(
            ctx.git("for-each-ref", "--format=%(objecttype) %(refname)", "refs/tags"),
            RepositoryError,
            "Failed to list tags",
        )
        messages = {}
        for line in listing.lines():
            kind, _, ref = line.partition(" ")
            if kind != "tag":
                continue
            contents = _check(
                ctx.git("for-each-ref", "--format=%(contents)", ref),
                RepositoryError,
                f"Failed to read tag {ref}",
            )
            messages[ref] = contents.stdout
        return messages


class CollectGarbage(Step):
    """Expire reflogs and prune unreachable objects."""

    name = "collect_garbage"
    title = "Expire reflog and garbage collect"

    def run(self, ctx: CleanupContext) -> StepResult:
        _check(
            ctx.git("reflog", "expire", "--expire=now", "--all"),
            RepositoryError,
            "Failed to expire reflog",
        )
        _check(
            ctx.git("gc", "--prune=now", "--aggressive"),
            RepositoryError,
            "Garbage collection failed",
        )
        return self.done("Reflog expired and unreachable objects pruned")


class ForcePublish(Step):
    """Force-push the main branch and tags, overwriting remote history."""

    name = "force_publish"
    title = "Force-push rewritten history"

    def run(self, ctx: CleanupContext) -> StepResult:
        config = ctx.config
        if not config.push:
            return self.skipped("Push disabled, rewritten history is local only")

        prompt = (
            f"Force-push {config.main_branch} and all tags to {config.remote}? "
            "This overwrites remote history"
        )
        if ctx.confirm is not None and not ctx.confirm(prompt):
            return self.skipped("Force push declined")

        _check(
            ctx.git("checkout", "-B", config.main_branch),
            PublishError,
            f"Failed to reset {config.main_branch}",
        )
        _check(
            ctx.git("push", config.remote, config.main_branch, "--force"),
            PublishError,
            f"Failed to push {config.main_branch}",
        )
        _check(
            ctx.git("push", config.remote, "--tags", "--force"),
            PublishError,
            "Failed to push tags",
        )
        return self.done(f"Force-pushed {config.main_branch} and tags to {config.remote}")


class RecheckLocalTracking(Step):
    """Report whether a local secrets file is untracked. Never fails."""

    name = "recheck_local_tracking"
    title = "Re-check local secrets file"

    def run(self, ctx: CleanupContext) -> StepResult:
        secrets_file = ctx.config.secrets_file
        if not ctx.secrets_path.exists():
            return self.done(f"No local {secrets_file} found")
        if _is_tracked(ctx, secrets_file):
            logger.warning("%s is still tracked", secrets_file)
            return self.done(f"WARNING: local {secrets_file} is still tracked")
        return self.done(f"Local {secrets_file} is present and untracked")


def cleanup_steps() -> List[Step]:
    """The full cleanup workflow, in execution order."""
    return [
        CheckCleanTree(),
        EnsureIgnoreRule(),
        UntrackSecretsFile(),
        CreateBackupBranch(),
        ProvisionRewriteTool(),
        WriteRuleset(),
        RewriteHistory(),
        RemoveRuleset(),
        VerifySecretsFileGone(),
        VerifyPatternsGone(),
        CollectGarbage(),
        ForcePublish(),
        RecheckLocalTracking(),
    ]


def verification_steps() -> List[Step]:
    """Read-only checks for a repository that was already cleaned."""
    return [
        CheckCleanTree(),
        VerifySecretsFileGone(),
        VerifyPatternsGone(),
        RecheckLocalTracking(),
    ]
