"""Deploy command implementation"""

import json
import sys
from typing import List, Optional

import click
from rich.prompt import Confirm
from rich.table import Table

from ..utils.interactive import ConflictPrompter
from ..utils.output import console, format_deploy_result
from ...api.deployer import Deployer
from ...api.exceptions import ConfigError, InvalidOptionsError, ValidationError
from ...constants import (
    ConflictStrategy,
    ErrorCode,
    ExitCode,
    MergeStrategy,
    Platform,
)
from ...models.options import DeploymentOptions
from ...models.result import DeploymentResult, OperationStatus


def _split(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(',') if item.strip()]


def exit_code_for(result: DeploymentResult) -> int:
    """Map a deployment result onto a process exit code"""
    if result.status == OperationStatus.ROLLED_BACK:
        return ExitCode.ROLLBACK_ERROR
    if result.has_error(ErrorCode.SECURITY_CHECK_FAILED):
        return ExitCode.SECURITY_ERROR
    if result.has_error(ErrorCode.LOCK_TIMEOUT) or result.has_error(ErrorCode.LOCK_ERROR):
        return ExitCode.LOCK_ERROR
    if result.has_error(ErrorCode.VALIDATION_ERROR):
        return ExitCode.VALIDATION_ERROR
    if not result.success:
        return ExitCode.GENERAL_ERROR
    if result.unresolved_conflicts and not result.dry_run:
        return ExitCode.CONFLICT_ERROR
    return ExitCode.SUCCESS


@click.command()
@click.argument('context_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--platform', type=click.Choice([p.value for p in Platform]),
              help='Target platform (default: the context\'s only target platform)')
@click.option('--dry-run', is_flag=True, help='Report what would change without writing')
@click.option('--validate-only', is_flag=True, help='Only validate and scan the context')
@click.option('--conflict-strategy', type=click.Choice([s.value for s in ConflictStrategy]),
              default=ConflictStrategy.PROMPT.value, show_default=True,
              help='How to handle files that differ from the incoming content')
@click.option('--merge-strategy', type=click.Choice([s.value for s in MergeStrategy]),
              help='Merge algorithm for --conflict-strategy merge')
@click.option('--components', help='Comma-separated components to deploy')
@click.option('--skip-components', help='Comma-separated components to leave out')
@click.option('--backup', is_flag=True, help='Back up overwritten files and roll back on failure')
@click.option('--backup-dir', type=click.Path(file_okay=False), help='Backup location')
@click.option('--home', type=click.Path(file_okay=False), help='Home directory to deploy into')
@click.option('--project-dir', type=click.Path(file_okay=False), help='Project directory to deploy into')
@click.option('--lock-timeout', type=float, help='Seconds to wait for a concurrent deployment')
@click.option('--fail-fast', is_flag=True, help='Stop at the first failing component')
@click.option('--metrics', is_flag=True, help='Include a performance report')
@click.option('--json', 'as_json', is_flag=True, help='Print the result as JSON')
@click.option('--force', is_flag=True, help='Skip confirmation and interactive prompts')
@click.pass_context
def deploy(ctx, context_file, platform, dry_run, validate_only, conflict_strategy, merge_strategy,
           components, skip_components, backup, backup_dir, home, project_dir, lock_timeout,
           fail_fast, metrics, as_json, force):
    """Deploy a context file onto a platform

    CONTEXT_FILE is a JSON (or YAML) context bundle. Global files go under
    the home directory and project files under the project directory.

    Examples:

        # Preview a deployment
        context-deploy deploy context.json --platform kiro-ide --dry-run

        # Deploy, merging settings into existing files
        context-deploy deploy context.json --platform claude-code \\
            --conflict-strategy merge --merge-strategy deep-merge

        # Deploy only steering documents, keeping backups
        context-deploy deploy context.json --platform kiro-ide \\
            --components steering --conflict-strategy backup --force
    """
    try:
        config = ctx.obj.config
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(ExitCode.GENERAL_ERROR)

    interactive = (conflict_strategy == ConflictStrategy.PROMPT.value and not force
                   and not as_json and not validate_only and sys.stdin.isatty())
    prompter = ConflictPrompter(console) if interactive else None

    deployer = Deployer(config=config, home_dir=home, project_dir=project_dir, prompter=prompter)

    try:
        context = deployer.load_context(context_file)
        target_platform = deployer.resolve_platform(context, platform)
    except (ValidationError, InvalidOptionsError) as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(ExitCode.VALIDATION_ERROR)

    options = {
        'components': _split(components),
        'skip_components': _split(skip_components),
        'conflict_strategy': conflict_strategy,
        'merge_strategy': merge_strategy,
        'dry_run': dry_run,
        'validate_only': validate_only,
        'backup': backup,
        'backup_dir': backup_dir,
        'lock_timeout': lock_timeout,
        'continue_on_error': not fail_fast,
        'collect_metrics': metrics,
    }

    # Show confirmation
    if not (force or dry_run or validate_only or as_json):
        table = Table(title="Deployment", show_header=False)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        table.add_row("Context", context.metadata.title or str(context_file))
        table.add_row("Platform", target_platform.value)
        table.add_row("Home", str(deployer.target.home_dir))
        table.add_row("Project", str(deployer.target.project_dir))
        selected = deployer.deploy_service.deployable_components(
            context,
            DeploymentOptions(platform=target_platform, components=options['components'],
                              skip_components=options['skip_components'])
        )
        table.add_row("Components", ", ".join(selected) or "none")
        table.add_row("Conflicts", conflict_strategy + (f" ({merge_strategy})" if merge_strategy else ""))
        console.print(table)

        if not Confirm.ask("\n[cyan]Proceed with deployment?[/cyan]", console=console):
            console.print("[yellow]Deployment cancelled[/yellow]")
            return

    try:
        result = deployer.deploy(context, target_platform, **options)
    except InvalidOptionsError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(ExitCode.VALIDATION_ERROR)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
    else:
        format_deploy_result(result, deployer.target.home_dir)

    code = exit_code_for(result)
    if code != ExitCode.SUCCESS:
        sys.exit(code)
