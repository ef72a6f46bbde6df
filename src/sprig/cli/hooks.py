"""
Hook management commands for Claude Code integration.

Provides commands to install, uninstall, and validate the WorktreeCreate /
WorktreeRemove hooks that route Claude Code's worktree events to sprig.
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from sprig.core.hooks.installer import install_hooks, uninstall_hooks, validate_hooks

app = typer.Typer(
    name="hooks",
    help="Manage Claude Code worktree hooks",
    no_args_is_help=True,
)

console = Console()


def _project_path(project_dir: str) -> Path:
    project_path = Path(project_dir).resolve()
    if not project_path.exists():
        console.print(f"[red]Error: Directory does not exist: {escape(str(project_path))}[/red]")
        raise typer.Exit(1)
    if not project_path.is_dir():
        console.print(f"[red]Error: Not a directory: {escape(str(project_path))}[/red]")
        raise typer.Exit(1)
    return project_path


@app.command(name="install")
def install(
    project_dir: str = typer.Option(
        ".",
        "--project",
        "-p",
        help="Project directory (default: current directory)",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Replace existing WorktreeCreate / WorktreeRemove handlers",
    ),
) -> None:
    """
    Install the worktree hooks in .claude/settings.json.

    Other settings and hooks are left alone. Re-running is harmless.

    Examples:
        sprig hooks install              # Install in current project
        sprig hooks install --force      # Replace another tool's handlers
        sprig hooks install -p ../other  # Install in different project
    """
    project_path = _project_path(project_dir)

    console.print(f"[blue]Installing hooks in:[/blue] {escape(str(project_path))}")

    result = install_hooks(project_path, force=force)

    if result.success:
        console.print(f"[green]✓[/green] {escape(result.message)}")
        if result.hooks_installed:
            console.print(f"  Installed hooks: {', '.join(result.hooks_installed)}")
        if result.settings_file:
            console.print(f"  Settings file: {escape(result.settings_file)}")

        for issue in result.issues:
            if issue.severity == "warning":
                console.print(f"[yellow]⚠[/yellow] {escape(issue.message)}")
            elif issue.severity == "info":
                console.print(f"[blue]ℹ[/blue] {escape(issue.message)}")

        raise typer.Exit(0)
    else:
        console.print(f"[red]✗[/red] {escape(result.message)}")

        for issue in result.issues:
            if issue.severity == "error":
                console.print(f"[red]Error:[/red] {escape(issue.message)}")
            elif issue.severity == "warning":
                console.print(f"[yellow]Warning:[/yellow] {escape(issue.message)}")
            else:
                console.print(f"[blue]Info:[/blue] {escape(issue.message)}")

        raise typer.Exit(1)


@app.command(name="uninstall")
def uninstall(
    project_dir: str = typer.Option(
        ".",
        "--project",
        "-p",
        help="Project directory (default: current directory)",
    ),
) -> None:
    """
    Remove sprig's hooks from .claude/settings.json.

    Examples:
        sprig hooks uninstall         # Remove hooks from current project
        sprig hooks uninstall -p ..   # Remove from parent directory
    """
    project_path = _project_path(project_dir)

    console.print(f"[blue]Removing hooks from:[/blue] {escape(str(project_path))}")

    try:
        removed = uninstall_hooks(project_path)
    except OSError as e:
        console.print(f"[red]✗[/red] Failed to write settings.json: {escape(str(e))}")
        raise typer.Exit(1)

    if removed:
        console.print("[green]✓[/green] Hooks removed from .claude/settings.json")
    else:
        console.print("[dim]No sprig hooks were configured[/dim]")


@app.command(name="check")
def check(
    project_dir: str = typer.Option(
        ".",
        "--project",
        "-p",
        help="Project directory (default: current directory)",
    ),
) -> None:
    """
    Validate hook installation.

    Checks that .claude/settings.json exists, is valid JSON, and sends both
    worktree events to sprig, and that sprig is on PATH.

    Examples:
        sprig hooks check           # Check current project
        sprig hooks check -p ..     # Check parent directory
    """
    project_path = _project_path(project_dir)

    console.print(f"[blue]Checking hooks in:[/blue] {escape(str(project_path))}\n")

    issues = validate_hooks(project_path)

    if not issues:
        console.print("[green]✓[/green] All hooks validated successfully")
        raise typer.Exit(0)

    errors = [i for i in issues if i.severity == "error"]
    warnings = [i for i in issues if i.severity == "warning"]

    table = Table(title="Hook Validation Issues", show_header=True, header_style="bold")
    table.add_column("Severity", style="white", width=10)
    table.add_column("Issue", style="white")
    table.add_column("Hook/File", style="dim")

    labels = {"error": "[red]ERROR[/red]", "warning": "[yellow]WARNING[/yellow]"}
    for issue in errors + warnings:
        target = issue.hook_name or issue.file_path or ""
        table.add_row(labels[issue.severity], escape(issue.message), escape(target))

    console.print(table)
    console.print()

    if errors:
        console.print(f"[red]✗[/red] Found {len(errors)} error(s)")
        console.print("  Run 'sprig hooks install --force' to fix")
        raise typer.Exit(1)
    console.print(f"[yellow]⚠[/yellow] Found {len(warnings)} warning(s)")
