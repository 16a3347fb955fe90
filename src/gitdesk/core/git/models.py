"""
Data models for the git client.

Pydantic models for status snapshots, commits, branches, diffs, clone
options and sync results. Field names are snake_case in Python and
camelCase on the wire (``shortHash``, ``isCurrent``, ``hasConflicts``).
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


class GitModel(BaseModel):
    """Base model: camelCase aliases, population by field name allowed."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ==============================================================================
# Status
# ==============================================================================


class FileStatusKind(str, Enum):
    """Kind of change recorded for a path."""

    MODIFIED = "modified"
    ADDED = "added"
    DELETED = "deleted"
    UNTRACKED = "untracked"
    CONFLICTED = "conflicted"


class FileStatus(GitModel):
    """A single changed path, either staged or unstaged."""

    path: str = Field(..., description="Repository-relative path using '/' separators")
    status: FileStatusKind
    staged: bool = False


class GitStatus(GitModel):
    """
    Snapshot of a repository's state.

    Computed from scratch on every request. The working tree, index and refs
    can each change between calls, so a snapshot is never patched in place.
    """

    branch: str
    ahead: int = Field(default=0, ge=0)
    behind: int = Field(default=0, ge=0)
    files: list[FileStatus] = Field(default_factory=list)
    has_conflicts: bool = False
    remote_url: str | None = None

    @computed_field(alias="isClean")  # type: ignore[prop-decorator]
    @property
    def is_clean(self) -> bool:
        return not self.files


# ==============================================================================
# Commits and branches
# ==============================================================================


class Commit(GitModel):
    """An immutable commit summary."""

    model_config = ConfigDict(frozen=True)

    hash: str
    short_hash: str
    message: str
    author: str
    email: str
    date: datetime

    @classmethod
    def from_git(cls, commit) -> "Commit":
        """Build a summary from a GitPython commit object."""
        return cls(
            hash=commit.hexsha,
            short_hash=commit.hexsha[:7],
            message=commit.message.strip(),
            author=commit.author.name or "",
            email=commit.author.email or "",
            date=commit.authored_datetime,
        )


class Branch(GitModel):
    """A local or remote-tracking branch."""

    name: str
    is_remote: bool = False
    is_current: bool = False
    upstream: str | None = None


# ==============================================================================
# Authentication and cloning
# ==============================================================================


class AuthType(str, Enum):
    """Transport credential kind."""

    SSH = "ssh"
    HTTPS = "https"
    NONE = "none"


class AuthConfig(GitModel):
    """
    Credentials for one network operation.

    Supplied fresh per call and never persisted.
    """

    type: AuthType = AuthType.NONE
    ssh_key_path: str | None = None
    ssh_passphrase: str | None = Field(default=None, repr=False)
    username: str | None = None
    password: str | None = Field(default=None, repr=False, description="Password or token")


class CloneOptions(GitModel):
    """Options for cloning a repository."""

    url: str
    dest_path: str | None = None
    branch: str | None = None
    depth: int = Field(default=0, ge=0, description="0 clones full history")
    auth: AuthConfig = Field(default_factory=AuthConfig)


class CloneResult(GitModel):
    """Where a clone landed."""

    path: str
    remote_url: str
    branch: str


class CloneStage(str, Enum):
    """Phase reported by git while cloning."""

    COUNTING = "counting"
    COMPRESSING = "compressing"
    RECEIVING = "receiving"
    RESOLVING = "resolving"


class CloneProgress(GitModel):
    """Transient progress record streamed during a clone."""

    stage: CloneStage
    current: int = 0
    total: int = 0


# ==============================================================================
# Sync results
# ==============================================================================


class PushResult(GitModel):
    success: bool = True
    message: str = ""


class FetchResult(GitModel):
    success: bool = True
    message: str = ""


class PullResult(GitModel):
    success: bool = True
    message: str = ""
    fast_forward: bool = False
    new_commits: int = 0


class QuickCommitResult(GitModel):
    """
    Result of commit-then-optionally-push.

    Commit and push are not transactional: a failed push leaves the commit in
    place and reports the failure in ``push_error``.
    """

    commit: Commit
    status: GitStatus
    push_result: PushResult | None = None
    push_error: str | None = None


# ==============================================================================
# History and diffs
# ==============================================================================


class ChangeAction(str, Enum):
    ADDED = "added"
    DELETED = "deleted"
    MODIFIED = "modified"
    RENAMED = "renamed"


class DiffLineType(str, Enum):
    CONTEXT = "context"
    ADD = "add"
    DELETE = "delete"


class DiffLine(GitModel):
    type: DiffLineType
    content: str


class FileDiff(GitModel):
    """Diff of one file between two commits."""

    path: str
    old_path: str | None = None
    action: ChangeAction
    binary: bool = False
    lines: list[DiffLine] = Field(default_factory=list)
    additions: int = 0
    deletions: int = 0


class CommitDiffResult(GitModel):
    """Diff between two commits, one entry per changed file."""

    from_commit: str
    to_commit: str
    files: list[FileDiff] = Field(default_factory=list)


class FileChange(GitModel):
    """Summary of one file changed by a commit."""

    path: str
    old_path: str | None = None
    action: ChangeAction
    additions: int = 0
    deletions: int = 0


class CommitDetail(GitModel):
    """A commit paired with its changes relative to its first parent."""

    commit: Commit
    changes: list[FileChange] = Field(default_factory=list)
