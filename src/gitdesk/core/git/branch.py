"""
Branch lifecycle operations.

Mixed into ``Repository``; relies on its ``repo``, ``config``, ``_git`` and
``_ensure_valid`` members.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from git.refs import RemoteReference

from gitdesk.core.git.errors import (
    BranchExistsError,
    BranchNotFoundError,
    CurrentBranchError,
    DetachedHeadError,
    GitOperationError,
    InvalidBranchNameError,
    NoCommitsError,
)
from gitdesk.core.git.models import Branch

if TYPE_CHECKING:
    from git import Repo

    from gitdesk.core.config.models import GitDeskConfig

logger = logging.getLogger(__name__)


class BranchOperations:
    """List, create, switch, delete and rename branches."""

    repo: Repo
    config: GitDeskConfig

    def _local_branch_exists(self, name: str) -> bool:
        return any(head.name == name for head in self.repo.heads)

    def _remote_branch(self, name: str) -> RemoteReference | None:
        ref = RemoteReference(self.repo, f"refs/remotes/{self.config.remote.name}/{name}")
        return ref if ref.is_valid() else None

    def _validate_branch_name(self, name: str) -> None:
        if not name or name.startswith("-"):
            raise InvalidBranchNameError(f"invalid branch name: {name!r}")
        try:
            self._git("check-ref-format", "--branch", name)
        except GitOperationError as e:
            raise InvalidBranchNameError(f"invalid branch name: {name!r}") from e

    def list_branches(self) -> list[Branch]:
        """
        List local branches followed by remote-tracking branches.

        Local branches carry their upstream (e.g. ``origin/main``) when
        tracking is configured. Symbolic ``<remote>/HEAD`` refs are skipped.
        """
        self._ensure_valid()

        current = None if self.repo.head.is_detached else self.repo.head.reference.name

        branches: list[Branch] = []
        for head in sorted(self.repo.heads, key=lambda h: h.name):
            tracking = head.tracking_branch()
            branches.append(
                Branch(
                    name=head.name,
                    is_current=head.name == current,
                    upstream=tracking.name if tracking is not None else None,
                )
            )

        remote_refs = [ref for ref in self.repo.refs if isinstance(ref, RemoteReference)]
        for ref in sorted(remote_refs, key=lambda r: r.name):
            if ref.remote_head == "HEAD":
                continue
            branches.append(Branch(name=ref.name, is_remote=True))

        return branches

    def current_branch(self) -> str:
        """
        Name of the checked-out branch.

        Raises:
            DetachedHeadError: If HEAD is detached
        """
        self._ensure_valid()
        if self.repo.head.is_detached:
            raise DetachedHeadError("HEAD is detached")
        return self.repo.head.reference.name

    def create_branch(self, name: str) -> None:
        """
        Create a branch at HEAD without switching to it.

        Raises:
            NoCommitsError: If HEAD has no commit yet
            BranchExistsError: If the branch already exists
        """
        self._ensure_valid()
        self._validate_branch_name(name)

        if not self.repo.head.is_valid():
            raise NoCommitsError("cannot create a branch before the first commit")
        if self._local_branch_exists(name):
            raise BranchExistsError(f"branch already exists: {name}")

        self._git("branch", name)
        logger.info("Created branch %s", name)

    def checkout(self, name: str) -> None:
        """
        Switch to a branch.

        A branch that exists only on the remote is created locally at the
        remote commit with upstream tracking, then checked out.

        Raises:
            BranchNotFoundError: If neither a local nor a remote branch matches
        """
        self._ensure_valid()

        if self._local_branch_exists(name):
            self._git("checkout", "-q", name)
        elif self._remote_branch(name) is not None:
            remote = self.config.remote.name
            self._git("checkout", "-q", "-b", name, "--track", f"{remote}/{name}")
        else:
            raise BranchNotFoundError(f"branch not found: {name}")

        logger.info("Switched to branch %s", name)

    def checkout_create(self, name: str) -> None:
        """
        Create a branch at HEAD and switch to it.

        Raises:
            BranchExistsError: If the branch already exists
        """
        self._ensure_valid()
        self._validate_branch_name(name)

        if self._local_branch_exists(name):
            raise BranchExistsError(f"branch already exists: {name}")

        self._git("checkout", "-q", "-b", name)
        logger.info("Switched to new branch %s", name)

    def delete_branch(self, name: str) -> None:
        """
        Delete a local branch and its tracking configuration.

        Raises:
            BranchNotFoundError: If the branch does not exist
            CurrentBranchError: If the branch is checked out
        """
        self._ensure_valid()

        if not self._local_branch_exists(name):
            raise BranchNotFoundError(f"branch not found: {name}")
        if not self.repo.head.is_detached and self.repo.head.reference.name == name:
            raise CurrentBranchError(f"cannot delete the current branch: {name}")

        self._git("branch", "-D", name)
        logger.info("Deleted branch %s", name)

    def rename_branch(self, old: str, new: str) -> None:
        """
        Rename a local branch; HEAD and tracking config follow it.

        Raises:
            BranchNotFoundError: If ``old`` does not exist
            BranchExistsError: If ``new`` already exists
        """
        self._ensure_valid()
        self._validate_branch_name(new)

        if not self._local_branch_exists(old):
            raise BranchNotFoundError(f"branch not found: {old}")
        if self._local_branch_exists(new):
            raise BranchExistsError(f"branch already exists: {new}")

        self._git("branch", "-m", old, new)
        logger.info("Renamed branch %s to %s", old, new)
