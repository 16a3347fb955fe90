"""
Remote synchronization: push, pull and fetch.

Mixed into ``Repository``. Every operation needs the configured remote
(``origin`` by default) with a URL, resolves a credential for it and runs a
cancellable ``git`` process through the transport runner.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from git.refs import RemoteReference

from gitdesk.core.git.auth import resolve_credential
from gitdesk.core.git.errors import (
    BranchNotFoundError,
    NoCommitsError,
    RemoteNotConfiguredError,
)
from gitdesk.core.git.models import AuthConfig, FetchResult, PullResult, PushResult
from gitdesk.core.git.transport import GitProcessResult, run_network_command

if TYPE_CHECKING:
    from git import Repo

    from gitdesk.core.config.models import GitDeskConfig

logger = logging.getLogger(__name__)

UP_TO_DATE = "Already up to date"


class RemoteOperations:
    """Push, pull and fetch against the configured remote."""

    repo: Repo
    config: GitDeskConfig

    def _require_remote(self) -> str:
        url = self.remote_url
        if not url:
            raise RemoteNotConfiguredError(
                f"no remote '{self.config.remote.name}' configured"
            )
        return url

    def _run_remote(
        self,
        args: list[str],
        auth: AuthConfig | None,
        cancel: threading.Event | None,
        timeout: float | None,
    ) -> GitProcessResult:
        url = self._require_remote()
        credential = resolve_credential(url, auth, self.config.remote)
        if timeout is None:
            timeout = self.config.remote.network_timeout

        with credential as env:
            return run_network_command(
                self.repo.git, args, env=env, cancel=cancel, timeout=timeout
            )

    def _remote_ref_tips(self) -> dict[str, str]:
        remote = self.config.remote.name
        return {
            ref.path: ref.commit.hexsha
            for ref in self.repo.refs
            if isinstance(ref, RemoteReference)
            and ref.remote_name == remote
            and ref.remote_head != "HEAD"
        }

    def push(
        self,
        auth: AuthConfig | None = None,
        set_upstream: bool = False,
        cancel: threading.Event | None = None,
        timeout: float | None = None,
    ) -> PushResult:
        """
        Push the current branch to the remote.

        Raises:
            RemoteNotConfiguredError: If the remote is missing
            NoCommitsError: If there is nothing to push
            DetachedHeadError: If HEAD is detached
            NonFastForwardError: If the remote rejected the update
            TransportError: On any other transport failure
        """
        self._ensure_valid()
        self._require_remote()

        branch = self.current_branch()
        if not self.repo.head.is_valid():
            raise NoCommitsError("nothing to push before the first commit")

        remote = self.config.remote.name
        args = ["push"]
        if set_upstream:
            args.append("--set-upstream")
        args.extend([remote, f"refs/heads/{branch}:refs/heads/{branch}"])

        result = self._run_remote(args, auth, cancel, timeout)

        if "Everything up-to-date" in result.stderr:
            return PushResult(message=UP_TO_DATE)

        logger.info("Pushed %s to %s", branch, remote)
        return PushResult(message=f"Pushed {branch} to {remote}")

    def push_new_branch(
        self,
        auth: AuthConfig | None = None,
        cancel: threading.Event | None = None,
        timeout: float | None = None,
    ) -> PushResult:
        """Push the current branch and record it as the upstream."""
        return self.push(auth=auth, set_upstream=True, cancel=cancel, timeout=timeout)

    def pull(
        self,
        auth: AuthConfig | None = None,
        cancel: threading.Event | None = None,
        timeout: float | None = None,
    ) -> PullResult:
        """
        Fast-forward the current branch from the remote.

        Raises:
            NonFastForwardError: If local and remote history have diverged
            TransportError: On any other transport failure
        """
        self._ensure_valid()
        self._require_remote()

        branch = self.current_branch()
        old_head = self.repo.head.commit.hexsha if self.repo.head.is_valid() else None

        remote = self.config.remote.name
        self._run_remote(["pull", "--ff-only", remote, branch], auth, cancel, timeout)

        new_head = self.repo.head.commit.hexsha if self.repo.head.is_valid() else None
        if new_head is None or new_head == old_head:
            return PullResult(message=UP_TO_DATE)

        rev = f"{old_head}..{new_head}" if old_head else new_head
        new_commits = sum(1 for _ in self.repo.iter_commits(rev))

        logger.info("Pulled %d commit(s) into %s", new_commits, branch)
        return PullResult(
            message=f"Fast-forwarded {branch} by {new_commits} commit(s)",
            fast_forward=True,
            new_commits=new_commits,
        )

    def fetch(
        self,
        auth: AuthConfig | None = None,
        cancel: threading.Event | None = None,
        timeout: float | None = None,
    ) -> FetchResult:
        """Update remote-tracking branches for every branch on the remote."""
        self._ensure_valid()
        self._require_remote()

        remote = self.config.remote.name
        before = self._remote_ref_tips()
        self._run_remote(
            ["fetch", remote, f"+refs/heads/*:refs/remotes/{remote}/*"],
            auth,
            cancel,
            timeout,
        )
        after = self._remote_ref_tips()

        if before == after:
            return FetchResult(message=UP_TO_DATE)

        changed = sum(1 for path, sha in after.items() if before.get(path) != sha)
        logger.info("Fetched %d updated ref(s) from %s", changed, remote)
        return FetchResult(message=f"Fetched {changed} updated ref(s) from {remote}")

    def set_upstream(self, remote: str, branch: str) -> None:
        """
        Make local ``branch`` track ``<remote>/<branch>``.

        Raises:
            BranchNotFoundError: If the local branch does not exist
        """
        self._ensure_valid()

        if not any(head.name == branch for head in self.repo.heads):
            raise BranchNotFoundError(f"branch not found: {branch}")

        section = f'branch "{branch}"'
        with self.repo.config_writer() as writer:
            writer.set_value(section, "remote", remote)
            writer.set_value(section, "merge", f"refs/heads/{branch}")
