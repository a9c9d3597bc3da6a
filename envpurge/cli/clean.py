"""
envpurge CLI - Clean Command

Runs the full cleanup workflow: ignore and untrack the secrets file,
rewrite history without it, redact API keys, verify and force-push.
"""
import json
from pathlib import Path
from typing import Optional

import click

from envpurge.core.exceptions import ConfigurationError, EnvPurgeError
from envpurge.core.models import CleanupConfig, CleanupContext, CleanupReport, StepStatus
from envpurge.core.pipeline import CleanupPipeline
from envpurge.core.ruleset import render_ruleset
from envpurge.utils.config import load_config


def _load_or_exit(ctx, config_path: Optional[str], **overrides) -> CleanupConfig:
    try:
        return load_config(config_path, **overrides)
    except ConfigurationError as e:
        click.echo(f"❌ {e.message}", err=True)
        ctx.exit(1)


def _confirm_push(message: str) -> bool:
    return click.confirm(f"\n⚠️  {message}", default=False)


def _write_report(report: Optional[CleanupReport], report_file: Optional[str]) -> None:
    if report is None or not report_file:
        return
    output = Path(report_file)
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w", encoding="utf-8") as f:
        json.dump(report.to_dict(), f, indent=2)
    click.echo(f"\n📄 Report saved: {output}")


@click.command("clean")
@click.option(
    "--path", "-p",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    help="Path to the git repository (default: current directory)"
)
@click.option(
    "--config", "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML file overriding the default settings"
)
@click.option(
    "--dry-run/--execute",
    default=True,
    help="Show the planned steps without making changes"
)
@click.option(
    "--yes", "-y",
    is_flag=True,
    default=False,
    help="Force-push without asking for confirmation"
)
@click.option(
    "--no-push",
    is_flag=True,
    default=False,
    help="Stop after garbage collection, leave the remote untouched"
)
@click.option(
    "--skip-install",
    is_flag=True,
    default=False,
    help="Do not pip-install git-filter-repo, only check it is available"
)
@click.option(
    "--report-file", "-r",
    type=click.Path(dir_okay=False),
    help="Write a JSON report of the run to this file"
)
@click.pass_context
def clean(ctx, path: str, config_path: Optional[str], dry_run: bool, yes: bool,
          no_push: bool, skip_install: bool, report_file: Optional[str]):
    """
    Purge the secrets file and API keys from the whole git history.

    ⚠️  WARNING: This is a DESTRUCTIVE operation that rewrites git history
    and force-pushes it! A backup branch is created first.

    \b
    Examples:
      envpurge clean                         # Show what would be done
      envpurge clean --path repo --execute   # Clean, then ask before pushing
      envpurge clean --execute --no-push     # Clean locally only
      envpurge clean --execute --yes         # Clean and push without asking
    """
    click.echo("\n🧹 envpurge History Cleaner")
    click.echo("=" * 60)

    config = _load_or_exit(
        ctx,
        config_path,
        skip_install=True if skip_install else None,
        push=False if no_push else None,
    )
    pipeline = CleanupPipeline()

    if dry_run:
        click.echo(f"\nRepository: {Path(path).resolve()}")
        click.echo(f"Secrets file: {config.secrets_file}")
        click.echo(f"Backup branch: {config.backup_branch}")
        click.echo("\nPLANNED STEPS:")
        for line in pipeline.plan():
            click.echo(f"   {line}")
        click.echo("\n" + "=" * 60)
        click.echo("🔍 DRY RUN - No changes made")
        click.echo("\nTo actually clean history, run with --execute flag")
        click.echo(f"   envpurge clean --path {path} --execute")
        return

    click.echo("⚠️  THIS WILL REWRITE GIT HISTORY!")

    context = CleanupContext(
        repo_path=Path(path).resolve(),
        config=config,
        echo=click.echo,
        confirm=None if yes else _confirm_push,
    )

    try:
        report = pipeline.run(context)
    except EnvPurgeError as e:
        click.echo(f"\n❌ Error: {e.message}", err=True)
        if pipeline.report and pipeline.report.status_of("create_backup_branch") == StepStatus.DONE:
            click.echo(f"   Pre-rewrite history is kept on branch '{config.backup_branch}'", err=True)
            click.echo(f"   To roll back: git reset --hard {config.backup_branch}", err=True)
        _write_report(pipeline.report, report_file)
        ctx.exit(1)

    click.echo("\n" + "=" * 60)
    click.echo("✅ CLEANUP COMPLETE")
    click.echo("=" * 60)
    _write_report(report, report_file)

    click.echo("\n" + "-" * 60)
    click.echo("NEXT STEPS:")
    click.echo("-" * 60)
    if report.status_of("force_publish") != StepStatus.DONE:
        click.echo("1. Push the rewritten history when ready:")
        click.echo(f"   git push {config.remote} {config.main_branch} --force")
        click.echo(f"   git push {config.remote} --tags --force")
    else:
        click.echo("1. Ask every collaborator to re-clone the repository")
    click.echo("2. Rotate every key that was ever committed")
    click.echo(f"3. Delete the backup once satisfied: git branch -D {config.backup_branch}")


@click.command("rules")
@click.option(
    "--config", "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML file overriding the default settings"
)
@click.pass_context
def rules(ctx, config_path: Optional[str]):
    """Print the redaction ruleset passed to git filter-repo."""
    config = _load_or_exit(ctx, config_path)
    click.echo(render_ruleset(config.rules), nl=False)
