"""
envpurge CLI - Main entry point
"""
import click

from envpurge import __version__
from envpurge.cli.clean import clean, rules
from envpurge.cli.verify import verify_cmd
from envpurge.utils.logger import set_level


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Log every git command")
@click.pass_context
def cli(ctx, verbose: bool):
    """
    🛡️  envpurge - Purge a committed .env file and API keys from git history

    WORKFLOW:

    1. Review the plan:
       envpurge clean --path /path/to/repo

    2. Clean, verify and force-push:
       envpurge clean --path /path/to/repo --execute

    3. Re-check at any time:
       envpurge verify --path /path/to/repo
    """
    ctx.ensure_object(dict)
    if verbose:
        set_level("DEBUG")


# Register subcommands
cli.add_command(clean)
cli.add_command(rules)
cli.add_command(verify_cmd)


if __name__ == '__main__':
    cli()
