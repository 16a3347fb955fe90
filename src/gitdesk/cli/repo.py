"""
GitDesk CLI - Working tree commands.

status, init, stage, unstage, commit, discard and quick-commit.
"""

from pathlib import Path

import typer
from rich.markup import escape
from rich.table import Table

from gitdesk.cli.common import (
    PASSPHRASE_OPTION,
    PASSWORD_OPTION,
    SSH_KEY_OPTION,
    USERNAME_OPTION,
    build_auth,
    console,
    fail,
    get_manager,
    is_debug,
    open_repository,
    repo_dir,
)
from gitdesk.core.git.errors import GitDeskError
from gitdesk.core.git.models import FileStatusKind, GitStatus

_STATUS_STYLES = {
    FileStatusKind.MODIFIED: "yellow",
    FileStatusKind.ADDED: "green",
    FileStatusKind.DELETED: "red",
    FileStatusKind.UNTRACKED: "dim",
    FileStatusKind.CONFLICTED: "bold red",
}


def print_status(status: GitStatus) -> None:
    """Render a status snapshot."""
    tracking = ""
    if status.ahead or status.behind:
        tracking = f" [dim](ahead {status.ahead}, behind {status.behind})[/dim]"
    console.print(f"On branch [bold cyan]{status.branch}[/bold cyan]{tracking}")

    if status.remote_url:
        console.print(f"[dim]Remote: {status.remote_url}[/dim]")

    if status.is_clean:
        console.print("[green]Nothing to commit, working tree clean[/green]")
        return

    if status.has_conflicts:
        console.print("[bold red]Unresolved conflicts[/bold red]")

    table = Table(show_header=True, header_style="bold")
    table.add_column("Status")
    table.add_column("Staged")
    table.add_column("Path", style="cyan")

    for file in status.files:
        style = _STATUS_STYLES[file.status]
        table.add_row(
            f"[{style}]{file.status.value}[/{style}]",
            "yes" if file.staged else "",
            file.path,
        )

    console.print(table)


def status(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Print status as JSON"),
) -> None:
    """
    Show branch, ahead/behind counts and changed files.

    Examples:
        gitdesk status
        gitdesk --repo ~/notes status --json
    """
    repo = open_repository(ctx)
    try:
        snapshot = repo.status()
    except GitDeskError as e:
        fail(e, is_debug(ctx))

    if json_output:
        console.print_json(snapshot.model_dump_json(by_alias=True))
        return
    print_status(snapshot)


def init(
    ctx: typer.Context,
    path: Path | None = typer.Argument(
        None, help="Directory to initialize (default: --repo or cwd)"
    ),
) -> None:
    """Create a new repository."""
    target = path or repo_dir(ctx)
    try:
        repo = get_manager(ctx).init(target)
    except GitDeskError as e:
        fail(e, is_debug(ctx))

    console.print(f"[green]Initialized empty repository in[/green] {repo.path}")


def stage(
    ctx: typer.Context,
    files: list[str] | None = typer.Argument(None, help="Paths to stage"),
    all_files: bool = typer.Option(False, "--all", "-A", help="Stage every change"),
) -> None:
    """Add changes to the index."""
    repo = open_repository(ctx)
    try:
        if all_files:
            repo.stage_all()
        elif files:
            repo.stage(files)
        else:
            console.print("[yellow]Nothing specified, nothing staged.[/yellow]")
            return
        print_status(repo.status())
    except GitDeskError as e:
        fail(e, is_debug(ctx))


def unstage(
    ctx: typer.Context,
    files: list[str] | None = typer.Argument(None, help="Paths to unstage"),
    all_files: bool = typer.Option(False, "--all", "-A", help="Unstage everything"),
) -> None:
    """Remove changes from the index, keeping the working tree."""
    repo = open_repository(ctx)
    try:
        if all_files:
            repo.unstage_all()
        elif files:
            repo.unstage(files)
        else:
            console.print("[yellow]Nothing specified, nothing unstaged.[/yellow]")
            return
        print_status(repo.status())
    except GitDeskError as e:
        fail(e, is_debug(ctx))


def commit(
    ctx: typer.Context,
    message: str = typer.Option(..., "--message", "-m", help="Commit message"),
    files: list[str] | None = typer.Argument(None, help="Paths to stage before committing"),
    author_name: str | None = typer.Option(None, "--author-name", help="Author name"),
    author_email: str | None = typer.Option(None, "--author-email", help="Author email"),
) -> None:
    """
    Commit staged changes.

    Examples:
        gitdesk commit -m "Fix typo"
        gitdesk commit -m "Add chapter" chapters/03.md
    """
    repo = open_repository(ctx)
    try:
        new_commit = repo.commit(
            message, author_name=author_name, author_email=author_email, files=files or None
        )
    except GitDeskError as e:
        fail(e, is_debug(ctx))

    console.print(
        f"[green]✓[/green] [yellow]{new_commit.short_hash}[/yellow] on {repo.branch}: "
        f"{escape(new_commit.message.splitlines()[0])}"
    )


def discard(
    ctx: typer.Context,
    files: list[str] | None = typer.Argument(None, help="Paths to restore from HEAD"),
    all_files: bool = typer.Option(False, "--all", "-A", help="Discard every change"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """
    Throw away working tree changes.

    Untracked files are never removed.
    """
    repo = open_repository(ctx)

    if not files and not all_files:
        console.print("[yellow]Nothing specified, nothing discarded.[/yellow]")
        return

    if all_files and not yes:
        if not typer.confirm("Discard all changes to tracked files?"):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    try:
        if all_files:
            repo.discard_all()
        else:
            repo.discard(files)
        print_status(repo.status())
    except GitDeskError as e:
        fail(e, is_debug(ctx))


def quick_commit(
    ctx: typer.Context,
    message: str = typer.Option(..., "--message", "-m", help="Commit message"),
    files: list[str] | None = typer.Argument(
        None, help="Paths to commit (default: all changes)"
    ),
    push: bool = typer.Option(False, "--push", help="Push after committing"),
    ssh_key: Path | None = SSH_KEY_OPTION,
    passphrase: str | None = PASSPHRASE_OPTION,
    username: str | None = USERNAME_OPTION,
    password: str | None = PASSWORD_OPTION,
) -> None:
    """Stage, commit and optionally push in one step."""
    repo = open_repository(ctx)
    try:
        result = repo.quick_commit(
            message,
            files=files or None,
            push=push,
            auth=build_auth(ssh_key, passphrase, username, password),
        )
    except GitDeskError as e:
        fail(e, is_debug(ctx))

    console.print(
        f"[green]✓[/green] Committed [yellow]{result.commit.short_hash}[/yellow] "
        f"on {result.status.branch}"
    )
    if result.push_result is not None:
        console.print(f"[green]✓[/green] {result.push_result.message}")
    if result.push_error:
        console.print(f"[red]Push failed:[/red] {result.push_error}")
        raise typer.Exit(1)
