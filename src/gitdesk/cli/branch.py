"""
GitDesk CLI - Branch commands.

List, create, delete, rename and switch branches.
"""

import typer
from rich.table import Table

from gitdesk.cli.common import console, fail, is_debug, open_repository
from gitdesk.core.git.errors import GitDeskError

app = typer.Typer(
    name="branch",
    help="List, create, delete, rename and switch branches",
    no_args_is_help=False,
)


@app.callback(invoke_without_command=True)
def branch_main(ctx: typer.Context) -> None:
    """
    Manage branches.

    Examples:
        gitdesk branch                   # Same as 'branch list'
        gitdesk branch create draft      # New branch at HEAD
        gitdesk branch checkout draft    # Switch to it
        gitdesk branch rename draft final
        gitdesk branch delete final
    """
    if ctx.invoked_subcommand is None:
        _branch_list(ctx, show_remote=True)


@app.command(name="list")
def list_branches(
    ctx: typer.Context,
    local_only: bool = typer.Option(
        False, "--local", "-l", help="Hide remote-tracking branches"
    ),
) -> None:
    """Show local and remote-tracking branches."""
    _branch_list(ctx, show_remote=not local_only)


def _branch_list(ctx: typer.Context, show_remote: bool) -> None:
    repo = open_repository(ctx)
    try:
        branches = repo.list_branches()
    except GitDeskError as e:
        fail(e, is_debug(ctx))

    if not branches:
        console.print("[yellow]No branches yet (no commits)[/yellow]")
        return

    table = Table(title="Branches")
    table.add_column("", width=1)
    table.add_column("Name", style="cyan")
    table.add_column("Upstream", style="dim")

    for branch in branches:
        if branch.is_remote and not show_remote:
            continue
        name = f"[red]{branch.name}[/red]" if branch.is_remote else branch.name
        table.add_row(
            "[green]*[/green]" if branch.is_current else "",
            name,
            branch.upstream or "",
        )

    console.print(table)


@app.command()
def create(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="New branch name"),
) -> None:
    """Create a branch at HEAD without switching to it."""
    repo = open_repository(ctx)
    try:
        repo.create_branch(name)
    except GitDeskError as e:
        fail(e, is_debug(ctx))
    console.print(f"[green]✓[/green] Created branch [cyan]{name}[/cyan]")


@app.command()
def checkout(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Branch to switch to"),
    create: bool = typer.Option(False, "--create", "-b", help="Create the branch first"),
) -> None:
    """
    Switch branches.

    A branch that only exists on the remote is created locally with
    upstream tracking.
    """
    repo = open_repository(ctx)
    try:
        if create:
            repo.checkout_create(name)
        else:
            repo.checkout(name)
    except GitDeskError as e:
        fail(e, is_debug(ctx))
    console.print(f"[green]✓[/green] Switched to branch [cyan]{name}[/cyan]")


@app.command()
def delete(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Branch to delete"),
) -> None:
    """Delete a local branch (not the current one)."""
    repo = open_repository(ctx)
    try:
        repo.delete_branch(name)
    except GitDeskError as e:
        fail(e, is_debug(ctx))
    console.print(f"[green]✓[/green] Deleted branch [cyan]{name}[/cyan]")


@app.command()
def rename(
    ctx: typer.Context,
    old: str = typer.Argument(..., help="Current branch name"),
    new: str = typer.Argument(..., help="New branch name"),
) -> None:
    """Rename a local branch."""
    repo = open_repository(ctx)
    try:
        repo.rename_branch(old, new)
    except GitDeskError as e:
        fail(e, is_debug(ctx))
    console.print(f"[green]✓[/green] Renamed [cyan]{old}[/cyan] to [cyan]{new}[/cyan]")
