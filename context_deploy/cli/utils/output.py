# context_deploy/cli/utils/output.py
"""Output formatting utilities"""

from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from ...constants import EMOJI_SUCCESS, EMOJI_ERROR, EMOJI_WARNING
from ...models import BackupManifest, DeploymentResult, OperationStatus, RollbackResult
from ...utils.formatting import format_duration_ms, format_path, pluralize

console = Console()

STATUS_STYLES = {
    OperationStatus.SUCCESS: "green",
    OperationStatus.PARTIAL: "yellow",
    OperationStatus.FAILED: "red",
    OperationStatus.ROLLED_BACK: "red",
    OperationStatus.SKIPPED: "dim",
}


def format_deploy_result(result: DeploymentResult, home: Optional[Path] = None,
                         show_components: bool = True) -> None:
    """Format and display deploy operation result"""
    style = STATUS_STYLES.get(result.status, "white")
    summary = result.summary

    if result.success:
        heading = f"[{style}]{EMOJI_SUCCESS}[/{style}] "
        heading += "Dry run completed" if result.dry_run else "Deployment completed"
        if result.status == OperationStatus.PARTIAL:
            heading += " with failures"
    else:
        heading = f"[{style}]{EMOJI_ERROR} Deployment {result.status.value.replace('_', ' ')}[/{style}]"

    lines = [
        heading,
        "",
        f"[bold]Platform:[/bold] {result.platform.value}",
        f"[bold]Components:[/bold] {', '.join(result.deployed_components) or 'none'}",
    ]
    if result.dry_run:
        would_write = sum(len(r.deployed_files) for r in result.component_results.values())
        lines.append(f"[bold]Would write:[/bold] {pluralize(would_write, 'file')}")
    else:
        lines.append(f"[bold]Files deployed:[/bold] {summary.files_deployed}")
    lines.append(f"[bold]Files skipped:[/bold] {summary.files_skipped}")
    lines.append(f"[bold]Conflicts resolved:[/bold] {summary.conflicts_resolved}")
    if result.backup_path:
        lines.append(f"[bold]Backup:[/bold] {format_path(result.backup_path, home)}")
    lines.append(f"[bold]Duration:[/bold] {format_duration_ms(summary.duration_ms)}")

    console.print(Panel("\n".join(lines), title="Deploy Result", border_style=style))

    if show_components and result.component_results:
        table = Table(title="Components", box=box.SIMPLE)
        table.add_column("Component", style="cyan")
        table.add_column("Files", justify="right")
        table.add_column("Skipped", justify="right")
        table.add_column("Conflicts", justify="right")
        table.add_column("Status")
        for name, component in result.component_results.items():
            status = f"[green]{EMOJI_SUCCESS}[/green]" if component.success else f"[red]{EMOJI_ERROR}[/red]"
            table.add_row(name, str(len(component.deployed_files)), str(len(component.skipped_files)),
                          str(len(component.conflicts)), status)
        console.print(table)

    unresolved = result.unresolved_conflicts
    if unresolved:
        console.print(f"\n[yellow]{EMOJI_WARNING} {pluralize(len(unresolved), 'conflict')} "
                      f"left unchanged (use --conflict-strategy to decide):[/yellow]")
        for conflict in unresolved:
            console.print(f"  • {format_path(conflict.path, home)} ({conflict.kind.value})")

    if result.errors:
        console.print("\n[bold red]Errors:[/bold red]")
        for error in result.errors:
            console.print(f"  [red]• [{error.code}] {error.message}[/red]")

    if result.warnings:
        console.print("\n[bold yellow]Warnings:[/bold yellow]")
        for warning in result.warnings[:20]:
            console.print(f"  [yellow]• {warning.message}[/yellow]")
        if len(result.warnings) > 20:
            console.print(f"  [dim]... {len(result.warnings) - 20} more[/dim]")

    performance = result.metadata.get("performance")
    if performance:
        table = Table(title="Performance", box=box.SIMPLE)
        table.add_column("Phase", style="cyan")
        table.add_column("Time", justify="right")
        for phase, elapsed in performance.get("timings_ms", {}).items():
            table.add_row(phase, format_duration_ms(elapsed))
        console.print(table)
        plan = performance.get("plan")
        if plan:
            console.print(f"[dim]Dispatch: {plan['dispatch']} x{plan['concurrency']}, I/O: {plan['io']}[/dim]")


def format_rollback_result(result: RollbackResult, home: Optional[Path] = None) -> None:
    """Format and display rollback result"""
    style = "green" if result.success else "yellow"
    lines = [
        f"[{style}]{EMOJI_SUCCESS if result.success else EMOJI_WARNING}[/{style}] "
        f"Rollback {'completed' if result.success else 'partially completed'}",
        "",
        f"[bold]Restored:[/bold] {pluralize(len(result.files_restored), 'file')}",
        f"[bold]Removed:[/bold] {pluralize(len(result.files_removed), 'file')}",
    ]
    for warning in result.warnings:
        lines.append(f"  [yellow]• {warning.message}[/yellow]")
    console.print(Panel("\n".join(lines), title="Rollback Result", border_style=style))


def format_backup_list(manifests: List[BackupManifest], home: Optional[Path] = None) -> None:
    """Display backup sets as a table"""
    if not manifests:
        console.print("[yellow]No backups found[/yellow]")
        return

    table = Table(title="Backups")
    table.add_column("Created", style="yellow")
    table.add_column("Platform", style="cyan")
    table.add_column("Backed up", justify="right")
    table.add_column("Created files", justify="right")
    table.add_column("Location")
    for manifest in manifests:
        table.add_row(
            manifest.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            manifest.platform or "-",
            str(len(manifest.original_paths)),
            str(len(manifest.created_paths)),
            format_path(manifest.backup_dir, home)
        )
    console.print(table)
