"""
Cloning remote repositories.

Clones land in an explicit destination or under the configured repos
directory, named after the URL's last path segment and made unique with a
numeric suffix. A failed or cancelled clone leaves nothing behind that this
call created.
"""

from __future__ import annotations

import logging
import queue
import shutil
import threading
from collections.abc import Callable
from pathlib import Path

from git import Git, Repo

from gitdesk.core.config.models import RemoteConfig
from gitdesk.core.git.auth import resolve_credential, validate_clone_url
from gitdesk.core.git.errors import DestinationExistsError
from gitdesk.core.git.models import CloneOptions, CloneProgress, CloneResult
from gitdesk.core.git.transport import parse_progress_line, run_network_command

logger = logging.getLogger(__name__)

MAX_NAME_SUFFIX = 999


def extract_repo_name(url: str) -> str:
    """
    Derive a directory name from a clone URL.

    Example:
        >>> extract_repo_name("git@github.com:user/project.git")
        'project'
        >>> extract_repo_name("https://example.com/group/tool/")
        'tool'
    """
    url = url.strip().rstrip("/")
    if url.endswith(".git"):
        url = url[: -len(".git")]

    # SCP form: user@host:path
    if "://" not in url and ":" in url:
        url = url.split(":", 1)[1]

    name = url.rsplit("/", 1)[-1]
    return name or "repo"


def ensure_unique_path(base: Path) -> Path:
    """
    Return ``base`` or the first free ``base-1`` ... ``base-999``.

    Raises:
        DestinationExistsError: If every candidate is taken
    """
    if not base.exists():
        return base

    for i in range(1, MAX_NAME_SUFFIX + 1):
        candidate = base.with_name(f"{base.name}-{i}")
        if not candidate.exists():
            return candidate

    raise DestinationExistsError(f"no free directory name for {base}")


def _resolve_destination(opts: CloneOptions, repos_dir: Path) -> Path:
    if opts.dest_path:
        dest = Path(opts.dest_path).expanduser().resolve()
        if dest.exists() and (not dest.is_dir() or any(dest.iterdir())):
            raise DestinationExistsError(f"destination already exists: {dest}")
        return dest

    repos_dir.mkdir(parents=True, exist_ok=True)
    return ensure_unique_path(repos_dir.resolve() / extract_repo_name(opts.url))


def _checked_out_branch(path: Path) -> str:
    repo = Repo(path)
    try:
        if repo.head.is_detached:
            return "HEAD"
        return repo.head.reference.name
    finally:
        repo.close()


def clone_repository(
    opts: CloneOptions,
    repos_dir: Path,
    remote: RemoteConfig | None = None,
    progress: Callable[[CloneProgress], None] | None = None,
    cancel: threading.Event | None = None,
    timeout: float | None = None,
) -> CloneResult:
    """
    Clone a remote repository.

    Args:
        opts: URL, destination, branch, depth and credentials
        repos_dir: Parent directory used when ``opts.dest_path`` is empty
        remote: Remote settings (SSH key candidates, default timeout)
        progress: Called with each parsed progress record
        cancel: Event that aborts the clone when set
        timeout: Seconds before the clone is killed

    Returns:
        CloneResult with the final path and checked-out branch

    Raises:
        InvalidURLError: If the URL is not a git URL
        DestinationExistsError: If the destination is taken
        AuthenticationError: If explicit credentials cannot be built
        TransportError: If the clone fails, times out or is cancelled
    """
    validate_clone_url(opts.url)
    remote = remote or RemoteConfig()

    dest = _resolve_destination(opts, repos_dir)
    credential = resolve_credential(opts.url, opts.auth, remote)

    args = ["clone", "--progress"]
    if opts.branch:
        args.extend(["--branch", opts.branch, "--single-branch"])
    if opts.depth > 0:
        args.extend(["--depth", str(opts.depth)])
    args.extend(["--", opts.url, str(dest)])

    on_line = None
    if progress is not None:

        def on_line(line: str) -> None:
            record = parse_progress_line(line)
            if record is not None:
                progress(record)

    created = not dest.exists()
    dest.parent.mkdir(parents=True, exist_ok=True)

    logger.info("Cloning %s into %s", opts.url, dest)
    try:
        with credential as env:
            run_network_command(
                Git(str(dest.parent)),
                args,
                env=env,
                cancel=cancel,
                timeout=timeout if timeout is not None else remote.network_timeout,
                on_line=on_line,
            )
    except BaseException:
        if created and dest.exists():
            shutil.rmtree(dest, ignore_errors=True)
            logger.debug("Removed partial clone at %s", dest)
        raise

    return CloneResult(
        path=str(dest),
        remote_url=opts.url,
        branch=_checked_out_branch(dest),
    )


def clone_with_progress(
    opts: CloneOptions,
    repos_dir: Path,
    progress_queue: queue.Queue,
    remote: RemoteConfig | None = None,
    cancel: threading.Event | None = None,
    timeout: float | None = None,
) -> CloneResult:
    """
    Clone, delivering progress records to a queue.

    Records are put without blocking; when the queue is full they are
    dropped so a slow consumer never stalls the clone.
    """

    def deliver(record: CloneProgress) -> None:
        try:
            progress_queue.put_nowait(record)
        except queue.Full:
            logger.debug("Progress queue full, dropping %s update", record.stage.value)

    return clone_repository(
        opts,
        repos_dir,
        remote=remote,
        progress=deliver,
        cancel=cancel,
        timeout=timeout,
    )
