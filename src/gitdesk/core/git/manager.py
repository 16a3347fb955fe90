"""
Repository discovery and the current-repository context.

``GitManager`` is owned by the host (the HTTP app keeps one on
``app.state``). It tracks which repository is "current" for the directory the
user is working in, swapping it atomically on every directory switch.

Example:
    >>> manager = GitManager()
    >>> repo = manager.open(Path("/work/project/docs"))
    >>> repo.path
    PosixPath('/work/project')
    >>> manager.current() is repo
    True
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from git import InvalidGitRepositoryError, Repo

from gitdesk.core.config.models import GitDeskConfig
from gitdesk.core.git.clone import clone_repository, clone_with_progress
from gitdesk.core.git.errors import RepositoryExistsError, StaleRepositoryError
from gitdesk.core.git.models import CloneOptions, CloneProgress, CloneResult
from gitdesk.core.git.repository import Repository
from gitdesk.utils.locking import ReadWriteLock

logger = logging.getLogger(__name__)


class RecentsSink(Protocol):
    """Anything that wants to hear about directory switches."""

    def add(self, path: Path) -> object: ...


def find_git_root(path: Path) -> Path | None:
    """
    Walk upward from ``path`` to the nearest directory containing ``.git``.

    Returns:
        The repository root, or None if the filesystem root is reached
    """
    current = Path(path).expanduser().resolve()
    while True:
        if (current / ".git").exists():
            return current
        if current.parent == current:
            return None
        current = current.parent


def is_git_repository(path: Path) -> bool:
    return (Path(path) / ".git").exists()


class GitManager:
    """
    Holds the current repository behind a reader/writer lock.

    Readers take the lock only long enough to fetch the handle; ``open`` and
    ``init`` take the write side to replace it. Operations on the returned
    ``Repository`` are not guarded by this lock.
    """

    def __init__(
        self,
        config: GitDeskConfig | None = None,
        recents: RecentsSink | None = None,
    ):
        self.config = config or GitDeskConfig()
        self.recents = recents
        self._lock = ReadWriteLock()
        self._current: Repository | None = None
        self._current_path: Path | None = None

    @property
    def repos_dir(self) -> Path:
        return self.config.clone.repos_dir.expanduser()

    def current(self) -> Repository | None:
        with self._lock.read():
            return self._current

    def current_path(self) -> Path | None:
        """Directory most recently passed to ``open``."""
        with self._lock.read():
            return self._current_path

    def open(self, path: Path) -> Repository | None:
        """
        Make the repository containing ``path`` current.

        When ``path`` is not inside a repository the current repository is
        cleared and None is returned. The recents store, if any, is notified
        of the switch either way.
        """
        root = find_git_root(path)

        repo: Repository | None = None
        if root is not None:
            try:
                repo = Repository(root, Repo(root), config=self.config)
            except InvalidGitRepositoryError:
                logger.warning("Found .git at %s but it is not a valid repository", root)
                repo = None

        with self._lock.write():
            self._current = repo
            self._current_path = Path(path).expanduser().resolve()

        if repo is not None:
            logger.info("Opened repository at %s", repo.path)
        else:
            logger.info("No repository at %s", path)

        if self.recents is not None:
            self.recents.add(Path(path).expanduser().resolve())

        return repo

    def init(self, path: Path) -> Repository:
        """
        Create a repository at ``path`` and make it current.

        Raises:
            RepositoryExistsError: If ``path`` already holds a repository
        """
        path = Path(path).expanduser().resolve()
        if is_git_repository(path):
            raise RepositoryExistsError(f"already a git repository: {path}")

        path.mkdir(parents=True, exist_ok=True)
        repo = Repository(path, Repo.init(path), config=self.config)

        with self._lock.write():
            self._current = repo
            self._current_path = path

        logger.info("Initialized repository at %s", path)
        return repo

    def clone(
        self,
        opts: CloneOptions,
        progress: Callable[[CloneProgress], None] | None = None,
        cancel: threading.Event | None = None,
        timeout: float | None = None,
    ) -> CloneResult:
        """Clone into ``opts.dest_path`` or a unique directory under ``repos_dir``."""
        return clone_repository(
            opts,
            self.repos_dir,
            remote=self.config.remote,
            progress=progress,
            cancel=cancel,
            timeout=timeout,
        )

    def clone_with_progress(
        self,
        opts: CloneOptions,
        progress_queue: queue.Queue,
        cancel: threading.Event | None = None,
        timeout: float | None = None,
    ) -> CloneResult:
        return clone_with_progress(
            opts,
            self.repos_dir,
            progress_queue,
            remote=self.config.remote,
            cancel=cancel,
            timeout=timeout,
        )

    def list_cloned_repos(self) -> list[CloneResult]:
        """Repositories directly under ``repos_dir``. Does not change the current repository."""
        if not self.repos_dir.is_dir():
            return []

        results: list[CloneResult] = []
        for entry in sorted(self.repos_dir.iterdir()):
            if not entry.is_dir() or not is_git_repository(entry):
                continue
            try:
                repo = Repository(entry, config=self.config)
            except StaleRepositoryError:
                logger.warning("Skipping invalid repository %s", entry)
                continue
            results.append(
                CloneResult(
                    path=str(repo.path),
                    remote_url=repo.remote_url or "",
                    branch=repo.branch,
                )
            )
        return results
