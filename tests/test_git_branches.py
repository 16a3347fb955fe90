"""
Tests for branch listing, creation, checkout, deletion and renaming.
"""

import pytest

from gitdesk.core.git.errors import (
    BranchExistsError,
    BranchNotFoundError,
    CurrentBranchError,
    DetachedHeadError,
    InvalidBranchNameError,
    NoCommitsError,
)
from gitdesk.core.git.models import Branch


def _local(repo):
    return [b.name for b in repo.list_branches() if not b.is_remote]


class TestListBranches:
    def test_single_branch(self, repo):
        assert repo.list_branches() == [Branch(name="main", is_current=True)]

    def test_sorted_locals_then_remotes(self, repo, git_repo, bare_remote, git_cli):
        git_cli(git_repo, "branch", "zeta")
        git_cli(git_repo, "branch", "alpha")
        git_cli(git_repo, "push", "-q", "origin", "alpha")

        branches = repo.list_branches()

        assert [(b.name, b.is_remote) for b in branches] == [
            ("alpha", False),
            ("main", False),
            ("zeta", False),
            ("origin/alpha", True),
            ("origin/main", True),
        ]
        assert [b.name for b in branches if b.is_current] == ["main"]

    def test_upstream(self, repo, bare_remote):
        main = repo.list_branches()[0]
        assert main.upstream == "origin/main"

    def test_remote_head_skipped(self, repo, git_repo, bare_remote, git_cli):
        git_cli(git_repo, "remote", "set-head", "origin", "main")
        names = [b.name for b in repo.list_branches()]
        assert "origin/HEAD" not in names

    def test_no_commits(self, empty_repo):
        assert empty_repo.list_branches() == []


class TestCurrentBranch:
    def test_current(self, repo):
        assert repo.current_branch() == "main"

    def test_detached(self, repo, git_repo, git_cli):
        git_cli(git_repo, "checkout", "-q", "--detach", "HEAD")
        with pytest.raises(DetachedHeadError):
            repo.current_branch()


class TestCreateBranch:
    def test_create_does_not_switch(self, repo):
        repo.create_branch("draft")
        assert _local(repo) == ["draft", "main"]
        assert repo.current_branch() == "main"

    def test_create_existing(self, repo):
        with pytest.raises(BranchExistsError):
            repo.create_branch("main")

    def test_create_without_commits(self, empty_repo):
        with pytest.raises(NoCommitsError):
            empty_repo.create_branch("draft")

    @pytest.mark.parametrize("name", ["", "-bad", "has space", "a..b", "ends.lock", "x~1"])
    def test_invalid_names(self, repo, name):
        with pytest.raises(InvalidBranchNameError):
            repo.create_branch(name)

    def test_nested_name(self, repo):
        repo.create_branch("feature/notes")
        assert "feature/notes" in _local(repo)


class TestCheckout:
    def test_local_branch(self, repo, git_repo, make_commit):
        repo.create_branch("draft")
        repo.checkout("draft")
        assert repo.current_branch() == "draft"
        assert repo.status().branch == "draft"

    def test_remote_only_branch_gets_tracking(self, repo, git_repo, collaborator, git_cli):
        git_cli(collaborator, "checkout", "-q", "-b", "shared")
        git_cli(collaborator, "push", "-q", "origin", "shared")
        git_cli(git_repo, "fetch", "-q", "origin")

        repo.checkout("shared")

        assert repo.current_branch() == "shared"
        shared = next(b for b in repo.list_branches() if b.name == "shared")
        assert shared.upstream == "origin/shared"
        assert shared.is_current

    def test_unknown_branch(self, repo):
        with pytest.raises(BranchNotFoundError):
            repo.checkout("nope")

    def test_checkout_create(self, repo):
        repo.checkout_create("draft")
        assert repo.current_branch() == "draft"
        assert _local(repo) == ["draft", "main"]

    def test_checkout_create_existing(self, repo):
        with pytest.raises(BranchExistsError):
            repo.checkout_create("main")

    def test_checkout_create_invalid(self, repo):
        with pytest.raises(InvalidBranchNameError):
            repo.checkout_create("bad name")


class TestDeleteBranch:
    def test_delete(self, repo):
        repo.create_branch("draft")
        repo.delete_branch("draft")
        assert _local(repo) == ["main"]

    def test_delete_unmerged(self, repo, git_repo, make_commit):
        repo.checkout_create("draft")
        make_commit(git_repo, {"draft.txt": "wip\n"}, "WIP")
        repo.checkout("main")

        repo.delete_branch("draft")

        assert _local(repo) == ["main"]

    def test_delete_current(self, repo):
        with pytest.raises(CurrentBranchError):
            repo.delete_branch("main")

    def test_delete_missing(self, repo):
        with pytest.raises(BranchNotFoundError):
            repo.delete_branch("nope")

    def test_delete_removes_tracking_config(self, repo, git_repo, bare_remote, git_cli):
        repo.checkout_create("draft")
        repo.push(set_upstream=True)
        repo.checkout("main")

        repo.delete_branch("draft")

        config = git_cli(git_repo, "config", "--list")
        assert "branch.draft.remote" not in config


class TestRenameBranch:
    def test_rename_other(self, repo):
        repo.create_branch("draft")
        repo.rename_branch("draft", "final")
        assert _local(repo) == ["final", "main"]

    def test_rename_current_moves_head(self, repo):
        repo.rename_branch("main", "trunk")
        assert repo.current_branch() == "trunk"

    def test_rename_missing(self, repo):
        with pytest.raises(BranchNotFoundError):
            repo.rename_branch("nope", "other")

    def test_rename_onto_existing(self, repo):
        repo.create_branch("draft")
        with pytest.raises(BranchExistsError):
            repo.rename_branch("draft", "main")

    def test_rename_invalid(self, repo):
        repo.create_branch("draft")
        with pytest.raises(InvalidBranchNameError):
            repo.rename_branch("draft", "bad name")
