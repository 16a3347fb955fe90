"""
GitDesk CLI - History commands.

log, show, diff and cat.
"""

import typer
from rich.markup import escape
from rich.table import Table

from gitdesk.cli.common import console, fail, is_debug, open_repository
from gitdesk.core.git.errors import GitDeskError
from gitdesk.core.git.models import ChangeAction, DiffLineType, FileDiff

_ACTION_STYLES = {
    ChangeAction.ADDED: "green",
    ChangeAction.MODIFIED: "yellow",
    ChangeAction.DELETED: "red",
    ChangeAction.RENAMED: "cyan",
}

_LINE_STYLES = {
    DiffLineType.ADD: ("green", "+"),
    DiffLineType.DELETE: ("red", "-"),
    DiffLineType.CONTEXT: ("", " "),
}


def log(
    ctx: typer.Context,
    limit: int | None = typer.Option(
        None, "--limit", "-n", help="Maximum commits (default from config, 0 = all)"
    ),
    skip: int = typer.Option(0, "--skip", min=0, help="Commits to skip"),
    path: str | None = typer.Option(None, "--path", "-p", help="Only commits touching path"),
) -> None:
    """
    Show commit history, newest first.

    Examples:
        gitdesk log
        gitdesk log -n 10 --path notes/todo.md
    """
    repo = open_repository(ctx)
    try:
        commits = repo.history(limit=limit, skip=skip, path=path)
    except GitDeskError as e:
        fail(e, is_debug(ctx))

    if not commits:
        console.print("[dim]No commits yet[/dim]")
        return

    for c in commits:
        subject = c.message.splitlines()[0] if c.message else ""
        console.print(
            f"[yellow]{c.short_hash}[/yellow] {escape(subject)} "
            f"[dim]({escape(c.author)}, {c.date:%Y-%m-%d %H:%M})[/dim]"
        )


def show(
    ctx: typer.Context,
    commit_hash: str = typer.Argument(..., help="Commit to show"),
) -> None:
    """Show a commit and the files it changed."""
    repo = open_repository(ctx)
    try:
        detail = repo.commit_detail(commit_hash)
    except GitDeskError as e:
        fail(e, is_debug(ctx))

    c = detail.commit
    console.print(f"[bold yellow]commit {c.hash}[/bold yellow]")
    console.print(f"Author: {escape(c.author)} <{escape(c.email)}>")
    console.print(f"Date:   {c.date:%Y-%m-%d %H:%M:%S %z}")
    console.print()
    console.print(escape(c.message))
    console.print()

    table = Table(show_header=True, header_style="bold")
    table.add_column("Action")
    table.add_column("Path", style="cyan")
    table.add_column("+", justify="right", style="green")
    table.add_column("-", justify="right", style="red")

    for change in detail.changes:
        style = _ACTION_STYLES[change.action]
        path = change.path
        if change.old_path:
            path = f"{change.old_path} -> {change.path}"
        table.add_row(
            f"[{style}]{change.action.value}[/{style}]",
            escape(path),
            str(change.additions),
            str(change.deletions),
        )

    console.print(table)


def _print_file_diff(file: FileDiff) -> None:
    header = file.path
    if file.old_path:
        header = f"{file.old_path} -> {file.path}"
    console.print(f"[bold]{escape(header)}[/bold] [dim]({file.action.value})[/dim]")

    if file.binary:
        console.print("[dim]Binary file differs[/dim]")
        return

    for line in file.lines:
        style, prefix = _LINE_STYLES[line.type]
        text = escape(prefix + line.content)
        console.print(f"[{style}]{text}[/{style}]" if style else text, highlight=False)


def diff(
    ctx: typer.Context,
    from_hash: str = typer.Argument(..., help="Older commit"),
    to_hash: str = typer.Argument(..., help="Newer commit"),
    path: str | None = typer.Option(None, "--path", "-p", help="Only this file"),
) -> None:
    """Show the changes between two commits."""
    repo = open_repository(ctx)
    try:
        if path:
            files = [repo.file_diff(from_hash, to_hash, path)]
        else:
            files = repo.diff(from_hash, to_hash).files
    except GitDeskError as e:
        fail(e, is_debug(ctx))

    if not files:
        console.print("[dim]No differences[/dim]")
        return

    for file in files:
        _print_file_diff(file)
        console.print()


def cat(
    ctx: typer.Context,
    commit_hash: str = typer.Argument(..., help="Commit to read from"),
    path: str = typer.Argument(..., help="File path within the repository"),
) -> None:
    """Print a file as it was at a commit."""
    repo = open_repository(ctx)
    try:
        content = repo.file_at_commit(commit_hash, path)
    except GitDeskError as e:
        fail(e, is_debug(ctx))

    console.print(content, markup=False, highlight=False, soft_wrap=True, end="")
