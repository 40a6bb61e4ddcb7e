"""Lock maintenance commands"""

import sys

import click

from ..utils.output import console
from ...api.deployer import Deployer
from ...api.exceptions import ConfigError
from ...constants import ExitCode
from ...utils.formatting import pluralize


@click.group()
def locks():
    """Manage deployment locks"""
    pass


@locks.command('clean')
@click.pass_context
def clean_locks(ctx):
    """Remove locks left behind by dead or expired deployments"""
    try:
        deployer = Deployer(config=ctx.obj.config)
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(ExitCode.GENERAL_ERROR)

    removed = deployer.cleanup_locks()
    for resource in removed:
        console.print(f"  • {resource}")
    console.print(f"[green]Removed {pluralize(len(removed), 'stale lock')}[/green]")
