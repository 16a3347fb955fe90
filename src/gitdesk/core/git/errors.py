"""
Exception hierarchy for git operations.

Errors fall into families the caller can branch on:

- precondition errors: the request cannot be honoured in the current
  repository state (empty message, nothing staged, deleting the current
  branch, ...). These are never retried.
- authentication errors: credentials could not be built or were refused.
  ``PassphraseRequiredError`` is distinct from ``InvalidSSHKeyError`` so a
  caller can re-prompt for a passphrase.
- transport errors: the remote could not be reached or refused the update.
  The underlying git message is preserved in ``stderr``.
- not-found errors: unknown commit, branch or file.

"Not a repository" is deliberately absent: discovery returns ``None``.
"""

from __future__ import annotations


class GitDeskError(Exception):
    """Base exception for all git client errors."""

    pass


class StaleRepositoryError(GitDeskError):
    """Raised when a repository handle's root no longer contains a .git marker."""

    pass


class GitOperationError(GitDeskError):
    """Raised when a local git command fails unexpectedly."""

    def __init__(self, message: str, stderr: str = "") -> None:
        super().__init__(message)
        self.stderr = stderr


# ==============================================================================
# Precondition errors
# ==============================================================================


class PreconditionError(GitDeskError):
    """Base class for errors caused by the current repository state."""

    pass


class EmptyMessageError(PreconditionError):
    """Raised when committing with a blank message."""

    def __init__(self) -> None:
        super().__init__("commit message cannot be empty")


class NothingStagedError(PreconditionError):
    """Raised when committing with no staged changes."""

    def __init__(self) -> None:
        super().__init__("nothing to commit, no staged changes")


class CurrentBranchError(PreconditionError):
    """Raised when deleting the branch HEAD points to."""

    pass


class BranchExistsError(PreconditionError):
    """Raised when creating or renaming onto an existing branch name."""

    pass


class RepositoryExistsError(PreconditionError):
    """Raised when initializing a directory that is already a repository."""

    pass


class DestinationExistsError(PreconditionError):
    """Raised when an explicit clone destination is a non-empty directory."""

    pass


class RemoteNotConfiguredError(PreconditionError):
    """Raised when a sync operation needs a remote that is not configured."""

    pass


class NoCommitsError(PreconditionError):
    """Raised when an operation needs a HEAD commit and the branch is unborn."""

    pass


class DetachedHeadError(PreconditionError):
    """Raised when an operation needs a branch and HEAD is detached."""

    pass


class InvalidPathError(PreconditionError):
    """Raised when a path resolves outside the repository root."""

    pass


class InvalidURLError(PreconditionError):
    """Raised when a clone URL is empty or not a recognized git URL."""

    pass


class InvalidBranchNameError(PreconditionError):
    """Raised when a branch name is not a valid ref name."""

    pass


# ==============================================================================
# Authentication errors
# ==============================================================================


class AuthenticationError(GitDeskError):
    """Base class for credential errors."""

    pass


class SSHKeyNotFoundError(AuthenticationError):
    """Raised when no SSH key exists at the given or default locations."""

    pass


class PassphraseRequiredError(AuthenticationError):
    """Raised when an SSH key is encrypted and no passphrase was supplied."""

    def __init__(self, key_path: str) -> None:
        super().__init__(f"SSH key requires passphrase: {key_path}")
        self.key_path = key_path


class InvalidSSHKeyError(AuthenticationError):
    """Raised when an SSH key cannot be parsed or the passphrase is wrong."""

    pass


class InvalidCredentialsError(AuthenticationError):
    """Raised when the remote rejects the supplied credentials."""

    pass


# ==============================================================================
# Transport errors
# ==============================================================================


class TransportError(GitDeskError):
    """Raised when a network git operation fails."""

    def __init__(self, message: str, stderr: str = "") -> None:
        super().__init__(message)
        self.stderr = stderr


class NonFastForwardError(TransportError):
    """Raised when a push is rejected or a pull cannot fast-forward."""

    pass


class OperationCancelledError(TransportError):
    """Raised when a network operation is cancelled by the caller."""

    pass


# ==============================================================================
# Not-found errors
# ==============================================================================


class NotFoundError(GitDeskError):
    """Base class for lookups that found nothing."""

    pass


class CommitNotFoundError(NotFoundError):
    """Raised when a commit hash does not resolve."""

    pass


class BranchNotFoundError(NotFoundError):
    """Raised when a branch name does not exist locally or on the remote."""

    pass


class FileNotFoundAtCommitError(NotFoundError):
    """Raised when a path does not exist in a commit's tree."""

    pass


class FileNotInDiffError(NotFoundError):
    """Raised when a path is not part of a diff between two commits."""

    pass
