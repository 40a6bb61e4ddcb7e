"""Backup and rollback commands"""

import sys
from pathlib import Path

import click
from rich.prompt import Confirm

from ..utils.output import console, format_backup_list, format_rollback_result
from ...api.deployer import Deployer
from ...api.exceptions import BackupError, ConfigError
from ...constants import ExitCode
from ...utils.formatting import pluralize


def _deployer(ctx) -> Deployer:
    try:
        return Deployer(config=ctx.obj.config)
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(ExitCode.GENERAL_ERROR)


@click.command()
@click.argument('manifest_dir', type=click.Path(exists=True, file_okay=False))
@click.option('--force', is_flag=True, help='Skip confirmation')
@click.pass_context
def rollback(ctx, manifest_dir, force):
    """Restore the files recorded in a backup set

    MANIFEST_DIR is a backup directory created by a deployment, as listed
    by "backups list". Backed-up files are restored and files created by
    that deployment are removed.
    """
    deployer = _deployer(ctx)

    try:
        manifest = deployer.backup_service.load_manifest(Path(manifest_dir))
    except BackupError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(ExitCode.GENERAL_ERROR)

    if not force:
        console.print(f"Restore {pluralize(len(manifest.original_paths), 'file')} and remove "
                      f"{pluralize(len(manifest.created_paths), 'created file')}")
        if not Confirm.ask("[cyan]Proceed with rollback?[/cyan]", console=console):
            console.print("[yellow]Rollback cancelled[/yellow]")
            return

    result = deployer.rollback(manifest_dir)
    format_rollback_result(result)
    if not result.success:
        sys.exit(ExitCode.ROLLBACK_ERROR)


@click.group()
def backups():
    """Manage deployment backups"""
    pass


@backups.command('list')
@click.pass_context
def list_backups(ctx):
    """List backup sets, newest first"""
    deployer = _deployer(ctx)
    format_backup_list(deployer.list_backups(), deployer.target.home_dir)


@backups.command('clean')
@click.option('--days', type=click.IntRange(min=0),
              help='Remove backups older than this many days (default: from configuration)')
@click.pass_context
def clean_backups(ctx, days):
    """Remove old backup sets"""
    deployer = _deployer(ctx)
    removed = deployer.cleanup_backups(days)
    console.print(f"[green]Removed {pluralize(len(removed), 'backup')}[/green]")
