"""
GitDesk CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging
from pathlib import Path

import typer
from rich.console import Console

from gitdesk import __version__
from gitdesk.cli import branch, history, remote, repo, serve
from gitdesk.core.config import load_layered_env

# Help panel names for command grouping
PANEL_CHANGES = "Working Tree"
PANEL_BRANCHES = "Branches"
PANEL_REMOTE = "Remotes"
PANEL_HISTORY = "History"
PANEL_SERVER = "Server"

app = typer.Typer(
    name="gitdesk",
    help="Local git client: status, staging, branches, sync and history",
    no_args_is_help=True,
    add_completion=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
    repo_path: Path | None = typer.Option(
        None,
        "--repo",
        "-C",
        help="Run as if started in this directory",
    ),
) -> None:
    """
    GitDesk - a small git client.

    Quick Start:
        gitdesk clone git@github.com:user/notes.git
        gitdesk -C ~/.gitdesk/repos/notes status
        gitdesk quick-commit -m "Update notes" --push

    Documentation:
        gitdesk <command> --help     # Help for a specific command
    """
    # Precedence: OS env > project .env > user .env
    load_layered_env(project_dir=repo_path)

    if debug:
        logging.basicConfig(level=logging.DEBUG)

    ctx.obj = {"debug": debug, "repo": repo_path}


# =============================================================================
# Working Tree
# =============================================================================

app.command(name="status", rich_help_panel=PANEL_CHANGES)(repo.status)
app.command(name="init", rich_help_panel=PANEL_CHANGES)(repo.init)
app.command(name="stage", rich_help_panel=PANEL_CHANGES)(repo.stage)
app.command(name="unstage", rich_help_panel=PANEL_CHANGES)(repo.unstage)
app.command(name="commit", rich_help_panel=PANEL_CHANGES)(repo.commit)
app.command(name="discard", rich_help_panel=PANEL_CHANGES)(repo.discard)
app.command(name="quick-commit", rich_help_panel=PANEL_CHANGES)(repo.quick_commit)


# =============================================================================
# Branches
# =============================================================================

app.add_typer(branch.app, name="branch", rich_help_panel=PANEL_BRANCHES)


# =============================================================================
# Remotes
# =============================================================================

app.command(name="clone", rich_help_panel=PANEL_REMOTE)(remote.clone)
app.command(name="push", rich_help_panel=PANEL_REMOTE)(remote.push)
app.command(name="pull", rich_help_panel=PANEL_REMOTE)(remote.pull)
app.command(name="fetch", rich_help_panel=PANEL_REMOTE)(remote.fetch)
app.command(name="validate-url", rich_help_panel=PANEL_REMOTE)(remote.validate_url)


# =============================================================================
# History
# =============================================================================

app.command(name="log", rich_help_panel=PANEL_HISTORY)(history.log)
app.command(name="show", rich_help_panel=PANEL_HISTORY)(history.show)
app.command(name="diff", rich_help_panel=PANEL_HISTORY)(history.diff)
app.command(name="cat", rich_help_panel=PANEL_HISTORY)(history.cat)


# =============================================================================
# Server
# =============================================================================

app.command(name="serve", rich_help_panel=PANEL_SERVER)(serve.serve)


@app.command(rich_help_panel=PANEL_SERVER)
def version() -> None:
    """Show gitdesk version and exit."""
    console.print(f"gitdesk version {__version__}")
    raise typer.Exit(0)


__all__ = ["app"]
