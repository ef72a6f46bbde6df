"""
Sprig CLI - Worktree commands.

``create`` and ``remove`` implement the Claude Code WorktreeCreate /
WorktreeRemove hook contract:

    echo '{"name": "auth-refactor"}' | sprig create
    /src/app/.claude/worktrees/auth-refactor

    echo '{"worktree_path": "/src/app/.claude/worktrees/auth-refactor"}' | sprig remove

``create`` prints nothing but the worktree path on stdout. Progress goes to
the terminal.
"""

import logging
import sys
from contextlib import ExitStack
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from sprig.core.config import load_config, resolve_repo_root
from sprig.core.config.models import SprigConfig
from sprig.core.worktree import (
    CreateRequest,
    InvalidRequestError,
    RemoveRequest,
    WorktreeError,
    WorktreeLifecycle,
    WorktreeManager,
    owning_repo_root,
    resolve_target,
)
from sprig.core.worktree.naming import branch_for, derive_port, validate_task_name
from sprig.core.worktree.reaper import read_port
from sprig.utils.channels import ResultChannel, open_progress_console

logger = logging.getLogger(__name__)

console = Console()


def _read_stdin_request() -> str:
    if sys.stdin is None or sys.stdin.isatty():
        raise InvalidRequestError("No JSON request on stdin (pipe one in, or pass an option)")
    return sys.stdin.read()


def _load_config(repo_root: Path, progress: Console) -> SprigConfig:
    try:
        return load_config(repo_root)
    except ValidationError as e:
        progress.print(f"[red]Error: invalid sprig configuration:[/red]\n{escape(str(e))}")
        raise typer.Exit(1)


def create(
    name: str | None = typer.Option(
        None,
        "--name",
        "-n",
        help="Task name (default: read {\"name\": ...} from stdin)",
    ),
    repo: Path | None = typer.Option(
        None,
        "--repo",
        help="Source repository root (default: $CLAUDE_PROJECT_DIR, then cwd)",
    ),
) -> None:
    """
    Create (or reuse) the worktree for a task.

    Prints the absolute worktree path as the only line on stdout. Setup
    command failures are reported as warnings; provisioning failures exit 1
    without printing a path.

    Examples:
        echo '{"name": "auth-refactor"}' | sprig create
        sprig create --name auth-refactor
    """
    repo_root = resolve_repo_root(repo)

    with ResultChannel() as channel, ExitStack() as stack:
        progress = stack.enter_context(open_progress_console())
        config = _load_config(repo_root, progress)
        if config.progress_tty != "/dev/tty":
            progress = stack.enter_context(open_progress_console(config.progress_tty))

        try:
            if name is None:
                request = CreateRequest.parse(_read_stdin_request())
            else:
                request = CreateRequest(name=name)

            manager = WorktreeManager(repo_root, config.worktrees_dir)
            lifecycle = WorktreeLifecycle(manager, config, progress=progress.print)
            report = lifecycle.create(request.name)

        except (WorktreeError, ValidationError, OSError) as e:
            progress.print(f"[red]Error: {escape(str(e))}[/red]")
            raise typer.Exit(1)

        channel.emit(str(report.path))


def remove(
    path: Path | None = typer.Option(
        None,
        "--path",
        "-p",
        help="Worktree path (default: read {\"worktree_path\": ...} from stdin)",
    ),
    repo: Path | None = typer.Option(
        None,
        "--repo",
        help="Source repository root (default: $CLAUDE_PROJECT_DIR, then cwd)",
    ),
) -> None:
    """
    Remove a task worktree, its dev server and its task branch.

    Exits 0 when the worktree is already gone and after best-effort cleanup.
    The repository that owns the worktree is found from the worktree itself;
    --repo / $CLAUDE_PROJECT_DIR is only used when that fails. Branches that
    do not start with the task prefix are never deleted.

    Examples:
        echo '{"worktree_path": "/src/app/.claude/worktrees/auth"}' | sprig remove
        sprig remove --path .claude/worktrees/auth
    """
    with ExitStack() as stack:
        progress = stack.enter_context(open_progress_console())

        try:
            if path is None:
                request = RemoveRequest.parse(_read_stdin_request())
            else:
                request = RemoveRequest(worktree_path=str(path.expanduser().resolve()))
        except (InvalidRequestError, ValidationError) as e:
            progress.print(f"[red]Error: {escape(str(e))}[/red]")
            raise typer.Exit(1)

        target = Path(request.worktree_path)
        if not resolve_target(target):
            progress.print(f"[dim]Nothing to remove at {escape(str(target))}[/dim]")
            return

        repo_root = owning_repo_root(target) or resolve_repo_root(repo)
        config = _load_config(repo_root, progress)
        if config.progress_tty != "/dev/tty":
            progress = stack.enter_context(open_progress_console(config.progress_tty))

        manager: WorktreeManager | None
        try:
            manager = WorktreeManager(repo_root, config.worktrees_dir)
        except WorktreeError as e:
            logger.debug(f"Removing {target} without git: {e}")
            progress.print(f"[yellow]Warning: {escape(str(e))}[/yellow]")
            manager = None

        lifecycle = WorktreeLifecycle(manager, config, progress=progress.print)
        report = lifecycle.remove(target)

        shown = escape(str(target))
        if report.failures:
            count = len(report.failures)
            progress.print(f"[yellow]Removed {shown} with {count} problem(s)[/yellow]")
        else:
            progress.print(f"[green]✓[/green] Removed worktree: {shown}")


def port(
    name: str = typer.Argument(..., help="Task name"),
    repo: Path | None = typer.Option(None, "--repo", help="Source repository root"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show branch and range"),
) -> None:
    """
    Print the dev port a task's worktree gets.

    Examples:
        sprig port auth-refactor
        PORT=$(sprig port auth-refactor)
    """
    repo_root = resolve_repo_root(repo)
    config = _load_config(repo_root, console)
    try:
        validate_task_name(name)
    except ValueError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    branch = branch_for(name, config.branch_prefix)
    value = derive_port(
        branch, low=config.port.low, span=config.port.span, digits=config.port.digits
    )
    if verbose:
        high = config.port.low + config.port.span - 1
        console.print(f"Branch: [cyan]{escape(branch)}[/cyan]")
        console.print(f"Range:  {config.port.low}-{high}")
        console.print(f"Port:   [green]{value}[/green]")
    else:
        typer.echo(str(value))


def list_worktrees(
    repo: Path | None = typer.Option(None, "--repo", help="Source repository root"),
) -> None:
    """
    Show the task worktrees of this repository.

    The port column is read back from each worktree's override file.
    """
    repo_root = resolve_repo_root(repo)
    config = _load_config(repo_root, console)

    try:
        manager = WorktreeManager(repo_root, config.worktrees_dir)
        worktrees = manager.managed()
    except WorktreeError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    if not worktrees:
        console.print("[yellow]No task worktrees found[/yellow]")
        return

    table = Table(title="Task Worktrees")
    table.add_column("Name", style="magenta")
    table.add_column("Branch", style="green")
    table.add_column("Port", style="blue")
    table.add_column("Path", style="cyan")

    for wt in worktrees:
        branch = escape(wt.branch) if wt.branch else "[dim]detached[/dim]"
        recorded = read_port(wt.path / config.env.override_file, config.env.port_key)
        table.add_row(
            escape(wt.path.name),
            branch,
            str(recorded) if recorded is not None else "[dim]-[/dim]",
            escape(str(wt.path)),
        )

    console.print(table)

