"""
Repository handle.

A ``Repository`` wraps one on-disk git repository and carries every stateful
operation: status, staging, commit and discard live here, while branch,
remote and history operations come from mixins in sibling modules.

Example:
    >>> repo = Repository(Path("/work/project"))
    >>> repo.stage(["README.md"])
    >>> commit = repo.commit("Add readme")
    >>> repo.status().is_clean
    True
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path

from git import Blob, GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo, Tree
from git.refs import RemoteReference

from gitdesk.core.config.models import GitDeskConfig
from gitdesk.core.git.branch import BranchOperations
from gitdesk.core.git.errors import (
    EmptyMessageError,
    GitDeskError,
    GitOperationError,
    InvalidPathError,
    NothingStagedError,
    StaleRepositoryError,
)
from gitdesk.core.git.history import HistoryOperations
from gitdesk.core.git.models import (
    AuthConfig,
    Commit,
    FileStatus,
    FileStatusKind,
    GitStatus,
    QuickCommitResult,
)
from gitdesk.core.git.remote import RemoteOperations

logger = logging.getLogger(__name__)

# Porcelain XY codes for unmerged paths
UNMERGED_CODES = frozenset({"DD", "AU", "UD", "UA", "DU", "AA", "UU"})

_EXECUTABLE_MODE = 0o100755


def parse_porcelain_status(output: str) -> tuple[list[FileStatus], bool]:
    """
    Parse ``git status --porcelain=v1 -z`` output.

    Each path is classified with precedence untracked > conflicted >
    staged-added > modified > deleted. A path that differs both in the index
    and in the working tree yields one staged and one unstaged entry.

    Returns:
        Tuple of (file entries, whether any path is conflicted)
    """
    files: list[FileStatus] = []
    has_conflicts = False

    entries = output.split("\0")
    i = 0
    while i < len(entries):
        entry = entries[i]
        i += 1
        if len(entry) < 4:
            continue

        code, path = entry[:2], entry[3:]
        index_code, worktree_code = code[0], code[1]

        # Renames and copies carry the original path as the next entry
        if index_code in "RC":
            i += 1

        if code == "??":
            files.append(FileStatus(path=path, status=FileStatusKind.UNTRACKED))
            continue
        if code == "!!":
            continue
        if code in UNMERGED_CODES:
            has_conflicts = True
            files.append(FileStatus(path=path, status=FileStatusKind.CONFLICTED))
            continue

        if index_code != " ":
            if index_code == "A":
                kind = FileStatusKind.ADDED
            elif index_code == "D":
                kind = FileStatusKind.DELETED
            else:
                kind = FileStatusKind.MODIFIED
            files.append(FileStatus(path=path, status=kind, staged=True))

        if worktree_code != " ":
            if worktree_code == "D":
                kind = FileStatusKind.DELETED
            else:
                kind = FileStatusKind.MODIFIED
            files.append(FileStatus(path=path, status=kind, staged=False))

    return files, has_conflicts


class Repository(BranchOperations, RemoteOperations, HistoryOperations):
    """
    Handle to one on-disk git repository.

    The handle is identified by its absolute root path and stays valid only
    while the root still contains a ``.git`` marker; every operation checks
    this first and raises ``StaleRepositoryError`` otherwise.

    A handle has no internal locking. Callers must serialize operations on
    one handle themselves (the HTTP layer and CLI issue one request at a
    time per handle).
    """

    def __init__(
        self,
        path: Path,
        repo: Repo | None = None,
        config: GitDeskConfig | None = None,
    ):
        """
        Open a repository handle.

        Args:
            path: Repository root (the directory containing ``.git``)
            repo: Already-opened GitPython repo for ``path``
            config: Configuration (defaults to built-in defaults)

        Raises:
            StaleRepositoryError: If ``path`` is not a git repository
        """
        self.path = Path(path).resolve()
        self.config = config or GitDeskConfig()

        if repo is None:
            try:
                repo = Repo(self.path)
            except (InvalidGitRepositoryError, NoSuchPathError) as e:
                raise StaleRepositoryError(f"Not a git repository: {self.path}") from e
        self.repo = repo

    def __repr__(self) -> str:
        return f"Repository({str(self.path)!r})"

    # ------------------------------------------------------------------
    # Plumbing helpers
    # ------------------------------------------------------------------

    def _ensure_valid(self) -> None:
        if not (self.path / ".git").exists():
            raise StaleRepositoryError(f"Repository no longer exists at {self.path}")

    def _git(self, *args: str, env: dict[str, str] | None = None) -> str:
        """Run a local git command, translating failures to GitOperationError."""
        logger.debug("Running git %s in %s", " ".join(args), self.path)
        try:
            return self.repo.git.execute(["git", *args], env=env)
        except GitCommandError as e:
            stderr = (e.stderr or "").strip()
            raise GitOperationError(f"git {args[0]} failed: {stderr}", stderr=stderr) from e

    def _has_head(self) -> bool:
        return self.repo.head.is_valid()

    def _head_tree_entry(self, path: str) -> Blob | Tree | None:
        if not self._has_head():
            return None
        try:
            return self.repo.head.commit.tree / path
        except KeyError:
            return None

    def _resolve_worktree_path(self, path: str) -> Path:
        """Resolve a repo-relative path, rejecting anything outside the root."""
        full = (self.path / path).resolve()
        if full != self.path and self.path not in full.parents:
            raise InvalidPathError(f"path escapes repository root: {path}")
        return full

    def _worktree_relpath(self, path: str) -> str:
        """Normalized repo-relative form of ``path``, ``"."`` for the root."""
        self._resolve_worktree_path(path)
        return Path(os.path.normpath(self.path / path)).relative_to(self.path).as_posix()

    @property
    def remote_url(self) -> str | None:
        """First URL of the configured remote, if any."""
        section = f'remote "{self.config.remote.name}"'
        reader = self.repo.config_reader()
        if not reader.has_section(section):
            return None
        url = reader.get_value(section, "url", default="")
        return str(url) or None

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def branch(self) -> str:
        """Checked-out branch name, or "HEAD" when detached."""
        return self._head_branch_name()

    def _head_branch_name(self) -> str:
        if self.repo.head.is_detached:
            return "HEAD"
        # Works for unborn branches too: the symbolic target need not exist
        return self.repo.head.reference.name

    def status(self) -> GitStatus:
        """
        Compute a fresh status snapshot.

        Returns:
            GitStatus with branch, ahead/behind, per-path entries and remote URL
        """
        self._ensure_valid()

        output = self._git("status", "--porcelain=v1", "-z", "--untracked-files=all")
        files, has_conflicts = parse_porcelain_status(output)
        ahead, behind = self.ahead_behind()

        return GitStatus(
            branch=self._head_branch_name(),
            ahead=ahead,
            behind=behind,
            files=files,
            has_conflicts=has_conflicts,
            remote_url=self.remote_url,
        )

    def ahead_behind(self) -> tuple[int, int]:
        """
        Count commits HEAD has that its remote-tracking branch lacks, and vice versa.

        Returns:
            (ahead, behind); (0, 0) when there is no tracking ref or HEAD is
            unborn or detached
        """
        self._ensure_valid()

        if not self._has_head() or self.repo.head.is_detached:
            return 0, 0

        branch = self.repo.head.reference.name
        tracking = RemoteReference(
            self.repo, f"refs/remotes/{self.config.remote.name}/{branch}"
        )
        if not tracking.is_valid():
            return 0, 0

        local_sha = self.repo.head.commit.hexsha
        remote_sha = tracking.commit.hexsha
        if local_sha == remote_sha:
            return 0, 0

        local = {c.hexsha for c in self.repo.iter_commits(local_sha)}
        remote = {c.hexsha for c in self.repo.iter_commits(remote_sha)}
        return len(local - remote), len(remote - local)

    def staged_files(self) -> list[str]:
        return [f.path for f in self.status().files if f.staged]

    def unstaged_files(self) -> list[str]:
        return [f.path for f in self.status().files if not f.staged]

    # ------------------------------------------------------------------
    # Staging
    # ------------------------------------------------------------------

    def stage(self, paths: list[str]) -> None:
        """Add paths (including deletions) to the index."""
        self._ensure_valid()
        if not paths:
            return
        self._git("add", "--", *paths)

    def stage_all(self) -> None:
        """Stage every change, including untracked files and deletions."""
        self._ensure_valid()
        self._git("add", "-A")

    def unstage(self, paths: list[str]) -> None:
        """
        Remove paths from the index without touching the working tree.

        With a HEAD commit the index entries are reset to HEAD, which also
        drops entries for paths added since. Without commits the paths are
        removed from the index so they become untracked again.
        """
        self._ensure_valid()
        if not paths:
            return

        if self._has_head():
            self._git("reset", "-q", "HEAD", "--", *paths)
        else:
            self._git("rm", "--cached", "-r", "-q", "--ignore-unmatch", "--", *paths)

    def unstage_all(self) -> None:
        """Reset the index to HEAD, or empty it when there are no commits."""
        self._ensure_valid()
        if self._has_head():
            self.repo.head.reset(index=True, working_tree=False)
        else:
            self._git("rm", "--cached", "-r", "-q", "--ignore-unmatch", "--", ".")

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def commit(
        self,
        message: str,
        author_name: str | None = None,
        author_email: str | None = None,
        files: list[str] | None = None,
    ) -> Commit:
        """
        Commit staged changes.

        Args:
            message: Commit message (must not be blank)
            author_name: Author/committer name (defaults to configured identity)
            author_email: Author/committer email (defaults to configured identity)
            files: Paths to stage before committing

        Returns:
            The new commit

        Raises:
            EmptyMessageError: If the message is blank
            NothingStagedError: If nothing is staged
        """
        self._ensure_valid()

        if not message or not message.strip():
            raise EmptyMessageError()

        if files:
            self.stage(files)

        if not self.staged_files():
            raise NothingStagedError()

        name = author_name or self.config.identity.name
        email = author_email or self.config.identity.email
        env = {
            "GIT_AUTHOR_NAME": name,
            "GIT_AUTHOR_EMAIL": email,
            "GIT_COMMITTER_NAME": name,
            "GIT_COMMITTER_EMAIL": email,
        }
        self._git("commit", "-q", "--no-verify", "-m", message, env=env)

        commit = Commit.from_git(self.repo.head.commit)
        logger.info("Committed %s on %s", commit.short_hash, self._head_branch_name())
        return commit

    def quick_commit(
        self,
        message: str,
        files: list[str] | None = None,
        push: bool = False,
        auth: AuthConfig | None = None,
        cancel: threading.Event | None = None,
        timeout: float | None = None,
    ) -> QuickCommitResult:
        """
        Stage, commit and optionally push in one call.

        ``files`` are staged when given, otherwise every change is. The commit
        is never rolled back: a failed push is reported in ``push_error``.
        """
        self._ensure_valid()

        if not message or not message.strip():
            raise EmptyMessageError()

        if files:
            self.stage(files)
        else:
            self.stage_all()

        commit = self.commit(message)

        push_result = None
        push_error = None
        if push:
            try:
                push_result = self.push(auth=auth, cancel=cancel, timeout=timeout)
            except GitDeskError as e:
                logger.warning("Push after commit %s failed: %s", commit.short_hash, e)
                push_error = str(e)

        return QuickCommitResult(
            commit=commit,
            status=self.status(),
            push_result=push_result,
            push_error=push_error,
        )

    # ------------------------------------------------------------------
    # Discard
    # ------------------------------------------------------------------

    def discard(self, paths: list[str]) -> None:
        """
        Restore paths in the working tree to their HEAD content.

        Paths not in HEAD are left alone, and nothing happens when the
        repository has no commits. The index is not modified.

        Raises:
            InvalidPathError: If a path resolves outside the repository
        """
        self._ensure_valid()

        rels = [self._worktree_relpath(p) for p in paths]
        if not self._has_head():
            return

        for rel in rels:
            if rel == ".":
                entry = self.repo.head.commit.tree
            else:
                entry = self._head_tree_entry(rel)
            if entry is None:
                continue
            if isinstance(entry, Tree):
                for blob in entry.traverse():
                    if isinstance(blob, Blob):
                        self._write_blob(blob, self.path / blob.path)
            else:
                self._write_blob(entry, self.path / entry.path)

    def _write_blob(self, blob: Blob, dest: Path) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)
        if dest.is_symlink():
            dest.unlink()
        dest.write_bytes(blob.data_stream.read())
        if blob.mode == _EXECUTABLE_MODE:
            os.chmod(dest, 0o755)

    def discard_all(self) -> None:
        """Reset index and working tree to HEAD. Untracked files are kept."""
        self._ensure_valid()
        if not self._has_head():
            return
        self.repo.head.reset(index=True, working_tree=True)
        logger.info("Discarded all changes in %s", self.path)
