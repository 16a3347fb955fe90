"""
History and diff operations.

Mixed into ``Repository``. Commits are looked up through GitPython; tree
comparisons use ``git diff`` with rename detection, and patches are flattened
into context/add/delete lines for display.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from git import Blob
from git.diff import Diff
from git.exc import BadName, BadObject

from gitdesk.core.git.errors import (
    CommitNotFoundError,
    FileNotFoundAtCommitError,
    FileNotInDiffError,
)
from gitdesk.core.git.models import (
    ChangeAction,
    Commit,
    CommitDetail,
    CommitDiffResult,
    DiffLine,
    DiffLineType,
    FileChange,
    FileDiff,
)

if TYPE_CHECKING:
    from git import Repo
    from git.objects import Commit as GitCommit

    from gitdesk.core.config.models import GitDeskConfig

logger = logging.getLogger(__name__)

# Same heuristic git uses: a NUL byte in the first 8000 bytes means binary
BINARY_SNIFF_BYTES = 8000

_STATUS_ACTIONS = {
    "A": ChangeAction.ADDED,
    "D": ChangeAction.DELETED,
    "M": ChangeAction.MODIFIED,
    "T": ChangeAction.MODIFIED,
    "R": ChangeAction.RENAMED,
    "C": ChangeAction.ADDED,
}


def is_binary_blob(blob: Blob | None) -> bool:
    if blob is None:
        return False
    return b"\0" in blob.data_stream.read(BINARY_SNIFF_BYTES)


def parse_patch(patch: str) -> tuple[list[DiffLine], bool]:
    """
    Flatten a unified diff body into display lines.

    Hunk headers and ``\\ No newline at end of file`` markers are dropped.
    Anything before the first hunk (file headers) is ignored, except git's
    ``Binary files ... differ`` marker.

    Returns:
        Tuple of (lines, whether git reported the file as binary)
    """
    lines: list[DiffLine] = []
    binary = False
    in_hunk = False

    text = patch[:-1] if patch.endswith("\n") else patch
    if not text:
        return lines, binary

    for line in text.split("\n"):
        if line.startswith("@@"):
            in_hunk = True
            continue
        if not in_hunk:
            if line.startswith("Binary files"):
                binary = True
            continue
        if line.startswith("\\"):
            continue

        marker, content = line[:1], line[1:]
        if marker == "+":
            lines.append(DiffLine(type=DiffLineType.ADD, content=content))
        elif marker == "-":
            lines.append(DiffLine(type=DiffLineType.DELETE, content=content))
        else:
            lines.append(DiffLine(type=DiffLineType.CONTEXT, content=content))

    return lines, binary


def file_diff_from_git(diff: Diff) -> FileDiff:
    """Convert one GitPython patch-mode ``Diff`` into a ``FileDiff``."""
    if diff.new_file:
        action = ChangeAction.ADDED
    elif diff.deleted_file:
        action = ChangeAction.DELETED
    elif diff.renamed_file:
        action = ChangeAction.RENAMED
    else:
        action = ChangeAction.MODIFIED

    path = diff.a_path if action == ChangeAction.DELETED else diff.b_path
    old_path = diff.a_path if action == ChangeAction.RENAMED else None

    raw = diff.diff or b""
    patch = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    lines, binary = parse_patch(patch)

    if binary or is_binary_blob(diff.a_blob) or is_binary_blob(diff.b_blob):
        return FileDiff(path=path, old_path=old_path, action=action, binary=True)

    return FileDiff(
        path=path,
        old_path=old_path,
        action=action,
        lines=lines,
        additions=sum(1 for line in lines if line.type == DiffLineType.ADD),
        deletions=sum(1 for line in lines if line.type == DiffLineType.DELETE),
    )


def parse_name_status(output: str) -> list[tuple[ChangeAction, str, str | None]]:
    """Parse ``--name-status -z`` output into (action, path, old_path) tuples."""
    changes: list[tuple[ChangeAction, str, str | None]] = []
    tokens = output.split("\0")
    i = 0
    while i < len(tokens):
        status = tokens[i]
        i += 1
        if not status:
            continue
        code = status[0]
        if code in "RC":
            old, new = tokens[i], tokens[i + 1]
            i += 2
            changes.append((_STATUS_ACTIONS[code], new, old if code == "R" else None))
        else:
            path = tokens[i]
            i += 1
            changes.append((_STATUS_ACTIONS.get(code, ChangeAction.MODIFIED), path, None))
    return changes


def parse_numstat(output: str) -> dict[str, tuple[int, int]]:
    """
    Parse ``--numstat -z`` output into {path: (additions, deletions)}.

    Renamed files are keyed by their new path. Binary files count as 0/0.
    """
    counts: dict[str, tuple[int, int]] = {}
    tokens = output.split("\0")
    i = 0
    while i < len(tokens):
        token = tokens[i]
        i += 1
        if not token:
            continue
        added, deleted, path = token.split("\t", 2)
        if not path:
            path = tokens[i + 1]
            i += 2
        counts[path] = (
            int(added) if added.isdigit() else 0,
            int(deleted) if deleted.isdigit() else 0,
        )
    return counts


class HistoryOperations:
    """Commit history, commit detail, diffs and file contents at a commit."""

    repo: Repo
    config: GitDeskConfig

    def _resolve_commit(self, rev: str) -> GitCommit:
        if not rev or not rev.strip():
            raise CommitNotFoundError("commit hash cannot be empty")
        try:
            return self.repo.commit(rev.strip())
        except (BadName, BadObject, ValueError) as e:
            raise CommitNotFoundError(f"commit not found: {rev}") from e

    def history(
        self,
        limit: int | None = None,
        skip: int = 0,
        path: str | None = None,
    ) -> list[Commit]:
        """
        Commits reachable from HEAD, newest first.

        Args:
            limit: Maximum commits to return; None uses the configured default,
                0 or less returns everything
            skip: Commits to skip before collecting
            path: Only commits touching this file or directory

        Returns:
            Commit summaries; empty for a repository without commits
        """
        self._ensure_valid()

        if not self.repo.head.is_valid():
            return []

        if limit is None:
            limit = self.config.history.default_limit

        kwargs: dict[str, int] = {}
        if limit > 0:
            kwargs["max_count"] = limit
        if skip > 0:
            kwargs["skip"] = skip

        commits = self.repo.iter_commits("HEAD", paths=path or "", **kwargs)
        return [Commit.from_git(c) for c in commits]

    def diff(self, from_hash: str, to_hash: str) -> CommitDiffResult:
        """
        Compare the trees of two commits.

        Raises:
            CommitNotFoundError: If either hash does not resolve
        """
        self._ensure_valid()

        old = self._resolve_commit(from_hash)
        new = self._resolve_commit(to_hash)

        result = CommitDiffResult(from_commit=old.hexsha[:7], to_commit=new.hexsha[:7])
        if old.hexsha == new.hexsha:
            return result

        result.files = [file_diff_from_git(d) for d in old.diff(new, create_patch=True)]
        return result

    def file_diff(self, from_hash: str, to_hash: str, path: str) -> FileDiff:
        """
        Diff of a single file between two commits.

        Raises:
            FileNotInDiffError: If the file did not change between the commits
        """
        for file in self.diff(from_hash, to_hash).files:
            if file.path == path or file.old_path == path:
                return file
        raise FileNotInDiffError(f"file not in diff: {path}")

    def commit_detail(self, commit_hash: str) -> CommitDetail:
        """
        A commit with the files it changed relative to its first parent.

        A root commit lists every file in its tree as added.
        """
        self._ensure_valid()

        commit = self._resolve_commit(commit_hash)

        if commit.parents:
            trees = [commit.parents[0].hexsha, commit.hexsha]
        else:
            trees = ["--root", "--no-commit-id", commit.hexsha]

        changes = parse_name_status(
            self._git("diff-tree", "-r", "-M", "-z", "--name-status", *trees)
        )
        counts = parse_numstat(self._git("diff-tree", "-r", "-M", "-z", "--numstat", *trees))

        return CommitDetail(
            commit=Commit.from_git(commit),
            changes=[
                FileChange(
                    path=path,
                    old_path=old_path,
                    action=action,
                    additions=counts.get(path, (0, 0))[0],
                    deletions=counts.get(path, (0, 0))[1],
                )
                for action, path, old_path in changes
            ],
        )

    def file_at_commit(self, commit_hash: str, path: str) -> str:
        """
        File content as of a commit, decoded as UTF-8 with replacement.

        Raises:
            CommitNotFoundError: If the hash does not resolve
            FileNotFoundAtCommitError: If the path is not a file in that commit
        """
        self._ensure_valid()

        commit = self._resolve_commit(commit_hash)
        try:
            entry = commit.tree / path.strip("/")
        except KeyError as e:
            raise FileNotFoundAtCommitError(
                f"file not found at {commit.hexsha[:7]}: {path}"
            ) from e
        if not isinstance(entry, Blob):
            raise FileNotFoundAtCommitError(f"not a file at {commit.hexsha[:7]}: {path}")

        return entry.data_stream.read().decode("utf-8", errors="replace")
