"""
Git client core.

Repository discovery, status, staging and commit, branches, remote
synchronization, history and diffs, built on GitPython.
"""

from gitdesk.core.git.auth import (
    Credential,
    detect_auth_type,
    find_default_ssh_key,
    get_credential,
    resolve_credential,
    validate_clone_url,
)
from gitdesk.core.git.clone import (
    clone_repository,
    clone_with_progress,
    ensure_unique_path,
    extract_repo_name,
)
from gitdesk.core.git.errors import (
    AuthenticationError,
    GitDeskError,
    NotFoundError,
    PreconditionError,
    StaleRepositoryError,
    TransportError,
)
from gitdesk.core.git.manager import GitManager, find_git_root
from gitdesk.core.git.models import (
    AuthConfig,
    AuthType,
    Branch,
    CloneOptions,
    CloneProgress,
    CloneResult,
    Commit,
    CommitDetail,
    CommitDiffResult,
    FileDiff,
    FileStatus,
    FileStatusKind,
    GitStatus,
)
from gitdesk.core.git.repository import Repository

__all__ = [
    "AuthConfig",
    "AuthType",
    "AuthenticationError",
    "Branch",
    "CloneOptions",
    "CloneProgress",
    "CloneResult",
    "Commit",
    "CommitDetail",
    "CommitDiffResult",
    "Credential",
    "FileDiff",
    "FileStatus",
    "FileStatusKind",
    "GitDeskError",
    "GitManager",
    "GitStatus",
    "NotFoundError",
    "PreconditionError",
    "Repository",
    "StaleRepositoryError",
    "TransportError",
    "clone_repository",
    "clone_with_progress",
    "detect_auth_type",
    "ensure_unique_path",
    "extract_repo_name",
    "find_default_ssh_key",
    "find_git_root",
    "get_credential",
    "resolve_credential",
    "validate_clone_url",
]
