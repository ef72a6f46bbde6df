"""
Sprig CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging
import sys

import typer
from rich.console import Console

from sprig import __version__
from sprig.cli import hooks, worktree

# Help panel names for command grouping
PANEL_HOOKS = "Claude Code Hook Handlers"
PANEL_INSPECT = "Inspect Worktrees"
PANEL_INSTALL = "Manage Your Sprig Installation"

app = typer.Typer(
    name="sprig",
    help="Per-task git worktrees with their own env files and dev port",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def setup_logging(debug: bool = False) -> None:
    """
    Configure logging for all commands.

    Log records always go to stderr: stdout is reserved for hook results.

    Args:
        debug: If True, enable DEBUG level logging
    """
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
) -> None:
    """
    Sprig - isolated git worktrees for Claude Code tasks.

    Install once per project, then Claude Code calls sprig whenever it needs
    a worktree for a task:

        sprig hooks install          # Register the worktree hooks
        sprig port my-task           # Which port will my-task get?
        sprig list                   # Show task worktrees
    """
    setup_logging(debug)
    ctx.obj = {"debug": debug}


app.command(name="create", rich_help_panel=PANEL_HOOKS)(worktree.create)
app.command(name="remove", rich_help_panel=PANEL_HOOKS)(worktree.remove)

app.command(name="port", rich_help_panel=PANEL_INSPECT)(worktree.port)
app.command(name="list", rich_help_panel=PANEL_INSPECT)(worktree.list_worktrees)

app.add_typer(hooks.app, name="hooks", rich_help_panel=PANEL_INSTALL)


@app.command(rich_help_panel=PANEL_INSTALL)
def version() -> None:
    """Show sprig version and exit."""
    console.print(f"sprig version {__version__}")
    raise typer.Exit(0)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
