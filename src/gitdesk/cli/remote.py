"""
GitDesk CLI - Remote commands.

clone, push, pull, fetch and validate-url.
"""

from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

import typer
from rich.progress import BarColumn, Progress, TaskID, TextColumn

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
)
from gitdesk.core.config.models import RemoteConfig
from gitdesk.core.git.auth import (
    detect_auth_type,
    find_default_ssh_key,
    load_ssh_key,
    validate_clone_url,
)
from gitdesk.core.git.errors import (
    AuthenticationError,
    GitDeskError,
    InvalidURLError,
    PassphraseRequiredError,
)
from gitdesk.core.git.models import AuthConfig, AuthType, CloneOptions, CloneProgress

T = TypeVar("T")


def _with_passphrase_retry(
    auth: AuthConfig | None, run: Callable[[AuthConfig | None], T]
) -> T:
    """Run a network operation, prompting once for a passphrase if the key needs one."""
    try:
        return run(auth)
    except PassphraseRequiredError as e:
        passphrase = typer.prompt(f"Passphrase for {e.key_path}", hide_input=True)
        retry = (auth or AuthConfig(type=AuthType.SSH)).model_copy(
            update={"type": AuthType.SSH, "ssh_key_path": e.key_path, "ssh_passphrase": passphrase}
        )
        return run(retry)


def _pin_encrypted_default_key(
    auth: AuthConfig | None, url: str | None, remote: RemoteConfig
) -> AuthConfig | None:
    """
    Name an encrypted default SSH key explicitly so its passphrase gets prompted for.

    Left to URL inference such a key is skipped and the transfer runs without
    credentials.
    """
    if auth is not None or not url or detect_auth_type(url) != AuthType.SSH:
        return auth
    key_path = find_default_ssh_key(remote.ssh_key_candidates)
    if key_path is None:
        return None
    try:
        load_ssh_key(key_path)
    except PassphraseRequiredError:
        return AuthConfig(type=AuthType.SSH, ssh_key_path=str(key_path))
    except AuthenticationError:
        return None
    return None


def clone(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Repository URL"),
    dest: Path | None = typer.Option(
        None, "--dest", "-d", help="Destination directory (default: under repos dir)"
    ),
    branch: str | None = typer.Option(None, "--branch", "-b", help="Branch to check out"),
    depth: int = typer.Option(0, "--depth", min=0, help="Shallow clone depth (0 = full)"),
    ssh_key: Path | None = SSH_KEY_OPTION,
    passphrase: str | None = PASSPHRASE_OPTION,
    username: str | None = USERNAME_OPTION,
    password: str | None = PASSWORD_OPTION,
) -> None:
    """
    Clone a remote repository.

    Examples:
        gitdesk clone git@github.com:user/notes.git
        gitdesk clone https://example.com/team/docs.git --depth 1
    """
    manager = get_manager(ctx)
    auth = _pin_encrypted_default_key(
        build_auth(ssh_key, passphrase, username, password), url, manager.config.remote
    )

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        console=console,
        transient=True,
    ) as progress:
        tasks: dict[str, TaskID] = {}

        def on_progress(record: CloneProgress) -> None:
            key = record.stage.value
            if key not in tasks:
                tasks[key] = progress.add_task(key.capitalize(), total=record.total or None)
            progress.update(tasks[key], completed=record.current, total=record.total or None)

        def run(auth_config: AuthConfig | None):
            opts = CloneOptions(
                url=url,
                dest_path=str(dest) if dest else None,
                branch=branch,
                depth=depth,
                auth=auth_config or AuthConfig(),
            )
            return manager.clone(opts, progress=on_progress)

        try:
            result = _with_passphrase_retry(auth, run)
        except GitDeskError as e:
            fail(e, is_debug(ctx))

    console.print(f"[green]✓[/green] Cloned into {result.path} (branch {result.branch})")


def push(
    ctx: typer.Context,
    set_upstream: bool = typer.Option(
        False, "--set-upstream", "-u", help="Record the remote branch as upstream"
    ),
    ssh_key: Path | None = SSH_KEY_OPTION,
    passphrase: str | None = PASSPHRASE_OPTION,
    username: str | None = typer.Option(None, "--username", help="HTTPS username"),
    password: str | None = PASSWORD_OPTION,
) -> None:
    """Push the current branch."""
    repo = open_repository(ctx)
    auth = _pin_encrypted_default_key(
        build_auth(ssh_key, passphrase, username, password), repo.remote_url, repo.config.remote
    )
    try:
        result = _with_passphrase_retry(
            auth, lambda a: repo.push(auth=a, set_upstream=set_upstream)
        )
    except GitDeskError as e:
        fail(e, is_debug(ctx))
    console.print(f"[green]✓[/green] {result.message}")


def pull(
    ctx: typer.Context,
    ssh_key: Path | None = SSH_KEY_OPTION,
    passphrase: str | None = PASSPHRASE_OPTION,
    username: str | None = USERNAME_OPTION,
    password: str | None = PASSWORD_OPTION,
) -> None:
    """Fast-forward the current branch from the remote."""
    repo = open_repository(ctx)
    auth = _pin_encrypted_default_key(
        build_auth(ssh_key, passphrase, username, password), repo.remote_url, repo.config.remote
    )
    try:
        result = _with_passphrase_retry(auth, lambda a: repo.pull(auth=a))
    except GitDeskError as e:
        fail(e, is_debug(ctx))
    console.print(f"[green]✓[/green] {result.message}")


def fetch(
    ctx: typer.Context,
    ssh_key: Path | None = SSH_KEY_OPTION,
    passphrase: str | None = PASSPHRASE_OPTION,
    username: str | None = USERNAME_OPTION,
    password: str | None = PASSWORD_OPTION,
) -> None:
    """Update remote-tracking branches."""
    repo = open_repository(ctx)
    auth = _pin_encrypted_default_key(
        build_auth(ssh_key, passphrase, username, password), repo.remote_url, repo.config.remote
    )
    try:
        result = _with_passphrase_retry(auth, lambda a: repo.fetch(auth=a))
    except GitDeskError as e:
        fail(e, is_debug(ctx))
    console.print(f"[green]✓[/green] {result.message}")


def validate_url(
    url: str = typer.Argument(..., help="URL to check"),
) -> None:
    """Check a clone URL and show which credentials it would use."""
    auth_type = detect_auth_type(url)
    try:
        validate_clone_url(url)
    except InvalidURLError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Valid git URL (auth: {auth_type.value})")
