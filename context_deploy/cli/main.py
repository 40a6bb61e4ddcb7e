# context_deploy/cli/main.py
"""Command line entry point for context-deploy"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional, Union

import click
from rich.console import Console
from rich.logging import RichHandler

from ..constants import APP_NAME, LOG_FORMAT, ENV_LOG_LEVEL
from ..models.config import DeployConfig
from ..services.config_service import ConfigService
from .commands import backup, deploy, locks

console = Console()

QUIET_LOGGERS = ("asyncio", "aiofiles")


def log_level(verbose: bool = False, debug: bool = False) -> Union[int, str]:
    """Level from the flags, else from CONTEXT_DEPLOY_LOG_LEVEL (default WARNING)"""
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    return os.environ.get(ENV_LOG_LEVEL, "WARNING").upper()


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Send log records to stderr through rich

    Args:
        verbose: Log deployment progress (INFO)
        debug: Log every state transition and file write (DEBUG)
    """
    logging.basicConfig(
        level=log_level(verbose, debug),
        format=LOG_FORMAT,
        handlers=[
            RichHandler(
                console=Console(stderr=True),
                show_time=debug,
                show_path=debug,
                rich_tracebacks=True,
                tracebacks_suppress=[click]
            )
        ]
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class CLIContext:
    """Shared state for subcommands; configuration is read on first use"""

    def __init__(self, config_path: Optional[Path] = None, verbose: bool = False, debug: bool = False):
        self.config_path = config_path
        self.verbose = verbose
        self.debug = debug
        self.config_service = ConfigService()
        self._config: Optional[DeployConfig] = None

    @property
    def config(self) -> DeployConfig:
        """
        Raises:
            ConfigError: If the configuration file is unusable
        """
        if self._config is None:
            self._config = self.config_service.load_config(self.config_path)
            if self.debug and self.config_service.config_path:
                console.print(f"[dim]Configuration: {self.config_service.config_path}[/dim]")
        return self._config


@click.group(name=APP_NAME)
@click.option('-v', '--verbose', is_flag=True, help='Log deployment progress')
@click.option('-d', '--debug', is_flag=True, help='Log state transitions and file writes')
@click.option('-q', '--quiet', is_flag=True, help='Disable logging')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False, path_type=Path),
              help='Configuration file (default: search .context-deploy.yaml)')
@click.pass_context
def cli(ctx, verbose, debug, quiet, config_path):
    """Context Deploy - Deploy AI assistant context onto IDE platforms

    Writes a normalized context bundle (settings, agents, commands,
    steering documents, specs, hooks and more) onto the configuration
    layout of claude-code, kiro-ide or cursor-ide.

    Every deployment is validated and scanned for secrets before anything
    is written, runs under a per-target lock, and can be rolled back.
    """
    if quiet:
        logging.disable(logging.CRITICAL)
    else:
        setup_logging(verbose=verbose, debug=debug)

    ctx.obj = CLIContext(config_path, verbose=verbose, debug=debug)


cli.add_command(deploy.deploy)
cli.add_command(backup.rollback)
cli.add_command(backup.backups)
cli.add_command(locks.locks)


def main():
    """Run the CLI

    A bare command name shows that command's help. Interrupts exit with 130
    and unexpected errors with 1 (with a traceback under --debug).
    """
    args = sys.argv[1:]
    if len(args) == 1 and args[0] in cli.commands:
        sys.argv.append('--help')

    try:
        cli(prog_name=APP_NAME)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Unexpected error: {e}[/red]")
        if '--debug' in args or '-d' in args:
            console.print_exception()
        sys.exit(1)


if __name__ == "__main__":
    main()
