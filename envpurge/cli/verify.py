"""CLI command for verifying a cleaned repository."""

from pathlib import Path
from typing import Optional

import click

from envpurge.core.exceptions import ConfigurationError, EnvPurgeError
from envpurge.core.models import CleanupContext
from envpurge.core.pipeline import CleanupPipeline
from envpurge.core.steps import verification_steps
from envpurge.utils.config import load_config


@click.command("verify")
@click.option(
    "--path", "-p",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    help="Path to the git repository to verify"
)
@click.option(
    "--config", "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML file overriding the default settings"
)
@click.pass_context
def verify_cmd(ctx, path: str, config_path: Optional[str]):
    """
    Verify the secrets file and key patterns are gone from history.

    Read-only: runs the clean-tree guard and the history checks of
    `envpurge clean` without rewriting anything.

    \b
    Examples:
      envpurge verify
      envpurge verify --path ../other-repo
    """
    click.echo("\n🔍 Verifying cleanup...")
    click.echo("=" * 60)

    try:
        config = load_config(config_path)
        context = CleanupContext(repo_path=Path(path).resolve(), config=config, echo=click.echo)
        CleanupPipeline(verification_steps()).run(context)
    except ConfigurationError as e:
        click.echo(f"\n❌ {e.message}", err=True)
        ctx.exit(1)
    except EnvPurgeError as e:
        click.echo(f"\n⚠️  WARNING: {e.message}", err=True)
        click.echo("Cleanup may have missed something. Inspect the commits listed above.", err=True)
        ctx.exit(1)

    click.echo("\n✅ SUCCESS: No secrets found in git history!")
