"""
Tests for status snapshots and staging.

Covers porcelain parsing, status on fresh, dirty and empty repositories,
ahead/behind against a remote-tracking branch, stale handles, and the
stage/unstage operations (including the no-commits cases).
"""

import shutil

import pytest

from gitdesk.core.git.errors import StaleRepositoryError
from gitdesk.core.git.models import FileStatus, FileStatusKind
from gitdesk.core.git.repository import Repository, parse_porcelain_status


def _entries(status):
    return {(f.path, f.status, f.staged) for f in status.files}


class TestParsePorcelainStatus:
    def test_empty(self):
        assert parse_porcelain_status("") == ([], False)

    def test_untracked(self):
        files, conflicts = parse_porcelain_status("?? notes.txt\0")
        assert files == [FileStatus(path="notes.txt", status=FileStatusKind.UNTRACKED)]
        assert conflicts is False

    def test_staged_and_unstaged_yield_two_entries(self):
        files, _ = parse_porcelain_status("MM README.md\0")
        assert files == [
            FileStatus(path="README.md", status=FileStatusKind.MODIFIED, staged=True),
            FileStatus(path="README.md", status=FileStatusKind.MODIFIED, staged=False),
        ]

    def test_added_then_deleted_in_worktree(self):
        files, _ = parse_porcelain_status("AD new.txt\0")
        assert files == [
            FileStatus(path="new.txt", status=FileStatusKind.ADDED, staged=True),
            FileStatus(path="new.txt", status=FileStatusKind.DELETED, staged=False),
        ]

    def test_staged_deletion(self):
        files, _ = parse_porcelain_status("D  gone.txt\0")
        assert files == [FileStatus(path="gone.txt", status=FileStatusKind.DELETED, staged=True)]

    def test_rename_skips_original_path(self):
        files, _ = parse_porcelain_status("R  new-name.md\0old-name.md\0?? other.txt\0")
        assert [f.path for f in files] == ["new-name.md", "other.txt"]
        assert files[0].staged

    @pytest.mark.parametrize("code", ["UU", "AA", "DD", "AU", "UA", "DU", "UD"])
    def test_conflicts(self, code):
        files, conflicts = parse_porcelain_status(f"{code} clash.txt\0")
        assert conflicts is True
        assert files == [FileStatus(path="clash.txt", status=FileStatusKind.CONFLICTED)]

    def test_ignored_entries_skipped(self):
        files, _ = parse_porcelain_status("!! build/\0")
        assert files == []

    def test_path_with_spaces(self):
        files, _ = parse_porcelain_status(" M my notes/draft one.md\0")
        assert files[0].path == "my notes/draft one.md"


class TestStatus:
    def test_clean(self, repo):
        status = repo.status()
        assert status.branch == "main"
        assert status.is_clean
        assert (status.ahead, status.behind) == (0, 0)
        assert status.has_conflicts is False
        assert status.remote_url is None

    def test_dirty_tree(self, repo, git_repo, write_file):
        write_file(git_repo, "README.md", "changed\n")
        write_file(git_repo, "notes/todo.txt", "todo\n")
        (git_repo / "docs" / "guide.md").unlink()

        assert _entries(repo.status()) == {
            ("README.md", FileStatusKind.MODIFIED, False),
            ("notes/todo.txt", FileStatusKind.UNTRACKED, False),
            ("docs/guide.md", FileStatusKind.DELETED, False),
        }

    def test_staged_and_modified_again(self, repo, git_repo, write_file):
        write_file(git_repo, "README.md", "staged\n")
        repo.stage(["README.md"])
        write_file(git_repo, "README.md", "staged and more\n")

        assert _entries(repo.status()) == {
            ("README.md", FileStatusKind.MODIFIED, True),
            ("README.md", FileStatusKind.MODIFIED, False),
        }

    def test_no_commits(self, empty_repo, empty_repo_path, write_file):
        status = empty_repo.status()
        assert status.branch == "main"
        assert status.is_clean

        write_file(empty_repo_path, "first.txt", "1\n")
        assert _entries(empty_repo.status()) == {
            ("first.txt", FileStatusKind.UNTRACKED, False)
        }

    def test_detached_head(self, repo, git_repo, git_cli):
        git_cli(git_repo, "checkout", "-q", "--detach", "HEAD")
        assert repo.status().branch == "HEAD"

    def test_remote_url(self, repo, bare_remote):
        assert repo.status().remote_url == str(bare_remote)

    def test_wire_format_uses_camel_case(self, repo):
        data = repo.status().model_dump(by_alias=True)
        assert set(data) == {
            "branch", "ahead", "behind", "files", "hasConflicts", "remoteUrl", "isClean"
        }

    def test_staged_and_unstaged_file_lists(self, repo, git_repo, write_file):
        write_file(git_repo, "README.md", "changed\n")
        write_file(git_repo, "new.txt", "new\n")
        repo.stage(["new.txt"])

        assert repo.staged_files() == ["new.txt"]
        assert repo.unstaged_files() == ["README.md"]


class TestAheadBehind:
    def test_no_tracking_ref(self, repo):
        assert repo.ahead_behind() == (0, 0)

    def test_level_with_remote(self, repo, bare_remote):
        assert repo.ahead_behind() == (0, 0)

    def test_ahead(self, repo, git_repo, bare_remote, make_commit):
        make_commit(git_repo, {"a.txt": "a\n"}, "local 1")
        make_commit(git_repo, {"b.txt": "b\n"}, "local 2")
        assert repo.ahead_behind() == (2, 0)

    def test_behind_after_fetch(self, repo, git_repo, collaborator, make_commit, git_cli):
        make_commit(collaborator, {"c.txt": "c\n"}, "remote 1")
        git_cli(collaborator, "push", "-q", "origin", "main")
        git_cli(git_repo, "fetch", "-q", "origin")
        assert repo.ahead_behind() == (0, 1)

    def test_diverged(self, repo, git_repo, collaborator, make_commit, git_cli):
        make_commit(collaborator, {"c.txt": "c\n"}, "remote 1")
        git_cli(collaborator, "push", "-q", "origin", "main")
        make_commit(git_repo, {"l.txt": "l\n"}, "local 1")
        git_cli(git_repo, "fetch", "-q", "origin")
        assert repo.ahead_behind() == (1, 1)

    def test_no_commits(self, empty_repo):
        assert empty_repo.ahead_behind() == (0, 0)


class TestStaleHandle:
    def test_not_a_repository(self, tmp_path):
        with pytest.raises(StaleRepositoryError):
            Repository(tmp_path)

    def test_git_dir_removed(self, repo, git_repo):
        shutil.rmtree(git_repo / ".git")
        with pytest.raises(StaleRepositoryError):
            repo.status()
        with pytest.raises(StaleRepositoryError):
            repo.stage(["README.md"])


class TestStaging:
    def test_stage_and_unstage_modified(self, repo, git_repo, write_file):
        write_file(git_repo, "README.md", "changed\n")

        repo.stage(["README.md"])
        assert _entries(repo.status()) == {("README.md", FileStatusKind.MODIFIED, True)}

        repo.unstage(["README.md"])
        assert _entries(repo.status()) == {("README.md", FileStatusKind.MODIFIED, False)}
        assert (git_repo / "README.md").read_text() == "changed\n"

    def test_stage_new_file_then_unstage_makes_it_untracked(self, repo, git_repo, write_file):
        write_file(git_repo, "new.txt", "new\n")

        repo.stage(["new.txt"])
        assert _entries(repo.status()) == {("new.txt", FileStatusKind.ADDED, True)}

        repo.unstage(["new.txt"])
        assert _entries(repo.status()) == {("new.txt", FileStatusKind.UNTRACKED, False)}

    @pytest.mark.parametrize(
        "path,changed",
        [
            ("docs/", "docs/guide.md"),
            ("docs", "docs/guide.md"),
            ("./README.md", "README.md"),
            ("docs/../README.md", "README.md"),
        ],
    )
    def test_unstage_restores_previous_status(self, repo, git_repo, write_file, path, changed):
        write_file(git_repo, changed, "changed\n")
        before = _entries(repo.status())

        repo.stage([path])
        assert _entries(repo.status()) == {(changed, FileStatusKind.MODIFIED, True)}

        repo.unstage([path])
        assert _entries(repo.status()) == before
        assert (git_repo / changed).read_text() == "changed\n"

    def test_unstage_directory_mixes_tracked_and_new(self, repo, git_repo, write_file):
        write_file(git_repo, "docs/guide.md", "changed\n")
        write_file(git_repo, "docs/new.md", "new\n")
        repo.stage(["docs"])

        repo.unstage(["docs/"])

        assert repo.staged_files() == []
        assert _entries(repo.status()) == {
            ("docs/guide.md", FileStatusKind.MODIFIED, False),
            ("docs/new.md", FileStatusKind.UNTRACKED, False),
        }

    def test_stage_deletion(self, repo, git_repo):
        (git_repo / "README.md").unlink()
        repo.stage(["README.md"])
        assert _entries(repo.status()) == {("README.md", FileStatusKind.DELETED, True)}

    def test_stage_empty_list_is_noop(self, repo, git_repo, write_file):
        write_file(git_repo, "README.md", "changed\n")
        repo.stage([])
        assert repo.staged_files() == []

    def test_stage_all(self, repo, git_repo, write_file):
        write_file(git_repo, "README.md", "changed\n")
        write_file(git_repo, "new.txt", "new\n")
        (git_repo / "docs" / "guide.md").unlink()

        repo.stage_all()

        assert _entries(repo.status()) == {
            ("README.md", FileStatusKind.MODIFIED, True),
            ("new.txt", FileStatusKind.ADDED, True),
            ("docs/guide.md", FileStatusKind.DELETED, True),
        }

    def test_unstage_all(self, repo, git_repo, write_file):
        write_file(git_repo, "README.md", "changed\n")
        write_file(git_repo, "new.txt", "new\n")
        repo.stage_all()

        repo.unstage_all()

        assert repo.staged_files() == []
        assert _entries(repo.status()) == {
            ("README.md", FileStatusKind.MODIFIED, False),
            ("new.txt", FileStatusKind.UNTRACKED, False),
        }

    def test_unstage_without_commits(self, empty_repo, empty_repo_path, write_file):
        write_file(empty_repo_path, "a.txt", "a\n")
        write_file(empty_repo_path, "b.txt", "b\n")
        empty_repo.stage_all()

        empty_repo.unstage(["a.txt"])
        assert _entries(empty_repo.status()) == {
            ("a.txt", FileStatusKind.UNTRACKED, False),
            ("b.txt", FileStatusKind.ADDED, True),
        }

        empty_repo.unstage_all()
        assert empty_repo.staged_files() == []
        assert (empty_repo_path / "b.txt").exists()
