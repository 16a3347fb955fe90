"""
Shared CLI helpers: repository lookup, credential options and error output.
"""

from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console

from gitdesk.core.config import load_config
from gitdesk.core.git.errors import GitDeskError
from gitdesk.core.git.manager import GitManager
from gitdesk.core.git.models import AuthConfig, AuthType
from gitdesk.core.git.repository import Repository

console = Console()
err_console = Console(stderr=True)

# Reusable options for network commands
SSH_KEY_OPTION = typer.Option(None, "--ssh-key", help="SSH private key to use")
PASSPHRASE_OPTION = typer.Option(
    None, "--passphrase", help="Passphrase for an encrypted SSH key", hide_input=True
)
USERNAME_OPTION = typer.Option(None, "--username", "-u", help="HTTPS username")
PASSWORD_OPTION = typer.Option(
    None,
    "--password",
    help="HTTPS password or token",
    envvar="GITDESK_PASSWORD",
    hide_input=True,
)


def repo_dir(ctx: typer.Context) -> Path:
    """Directory given with --repo, or the current directory."""
    obj = ctx.obj or {}
    return Path(obj.get("repo") or Path.cwd())


def get_manager(ctx: typer.Context) -> GitManager:
    return GitManager(load_config(project_dir=repo_dir(ctx)))


def open_repository(ctx: typer.Context) -> Repository:
    """
    Open the repository containing --repo (or the current directory).

    Raises:
        typer.Exit: If the directory is not inside a git repository
    """
    path = repo_dir(ctx)
    repo = get_manager(ctx).open(path)
    if repo is None:
        err_console.print(f"[red]Error:[/red] Not a git repository: {path}")
        err_console.print("[dim]Run 'gitdesk init' to create one.[/dim]")
        raise typer.Exit(1)
    return repo


def build_auth(
    ssh_key: Path | None,
    passphrase: str | None,
    username: str | None,
    password: str | None,
) -> AuthConfig | None:
    """Turn credential options into an AuthConfig, or None to infer from the URL."""
    if ssh_key is not None:
        return AuthConfig(
            type=AuthType.SSH, ssh_key_path=str(ssh_key), ssh_passphrase=passphrase
        )
    if username or password:
        return AuthConfig(type=AuthType.HTTPS, username=username, password=password)
    if passphrase:
        # Passphrase for the default key
        return AuthConfig(type=AuthType.SSH, ssh_passphrase=passphrase)
    return None


def fail(error: GitDeskError, debug: bool = False) -> NoReturn:
    """Print an error and exit with status 1."""
    err_console.print(f"[red]Error:[/red] {error}")
    stderr = getattr(error, "stderr", "")
    if debug and stderr:
        err_console.print(f"[dim]{stderr}[/dim]")
    raise typer.Exit(1)


def is_debug(ctx: typer.Context) -> bool:
    return bool((ctx.obj or {}).get("debug"))
