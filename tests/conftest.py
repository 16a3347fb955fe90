"""
Pytest configuration and shared fixtures.

Provides isolated home/config directories, real on-disk git repositories
(with and without commits), a bare remote and a second clone of it, and
small helpers for writing files and committing with the git CLI.
"""

import subprocess
from collections.abc import Callable
from pathlib import Path

import pytest

from gitdesk.core.config import clear_cache
from gitdesk.core.config.models import (
    CloneConfig,
    GitDeskConfig,
    IdentityConfig,
    RecentsConfig,
)
from gitdesk.core.git.repository import Repository


def run_git(cwd: Path, *args: str) -> str:
    """Run git in ``cwd`` and return stdout."""
    result = subprocess.run(
        ["git", *args], cwd=cwd, check=True, capture_output=True, text=True
    )
    return result.stdout.strip()


def _configure_identity(path: Path) -> None:
    run_git(path, "config", "user.name", "Fixture User")
    run_git(path, "config", "user.email", "fixture@example.com")
    run_git(path, "config", "commit.gpgsign", "false")


# ==============================================================================
# Environment isolation
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point HOME and XDG_CONFIG_HOME at temp dirs and drop GITDESK_* overrides."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for var in (
        "GITDESK_AUTHOR_NAME",
        "GITDESK_AUTHOR_EMAIL",
        "GITDESK_REPOS_DIR",
        "GITDESK_NETWORK_TIMEOUT",
        "GITDESK_PORT",
        "GITDESK_PASSWORD",
    ):
        monkeypatch.delenv(var, raising=False)

    clear_cache()
    yield home
    clear_cache()


@pytest.fixture
def config(tmp_path):
    """Configuration with clone and recents paths under tmp_path."""
    return GitDeskConfig(
        identity=IdentityConfig(name="Test User", email="test@example.com"),
        clone=CloneConfig(repos_dir=tmp_path / "repos"),
        recents=RecentsConfig(path=tmp_path / "recents.json", max_entries=5),
    )


# ==============================================================================
# Repository fixtures
# ==============================================================================


@pytest.fixture
def write_file() -> Callable[..., Path]:
    """Return a helper that writes text (or bytes) under a directory."""

    def _write(root: Path, rel: str, content: str | bytes) -> Path:
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content)
        return path

    return _write


@pytest.fixture
def make_commit(write_file) -> Callable[..., str]:
    """Return a helper that writes files, commits them with the git CLI and returns the sha."""

    def _commit(root: Path, files: dict[str, str | bytes], message: str) -> str:
        for rel, content in files.items():
            write_file(root, rel, content)
        run_git(root, "add", "--", *files)
        run_git(root, "commit", "-q", "-m", message)
        return run_git(root, "rev-parse", "HEAD")

    return _commit


@pytest.fixture
def empty_repo_path(tmp_path) -> Path:
    """A repository on branch main with no commits."""
    path = tmp_path / "empty"
    path.mkdir()
    run_git(path, "init", "-q", "-b", "main")
    _configure_identity(path)
    return path


@pytest.fixture
def git_repo(tmp_path, make_commit) -> Path:
    """
    A repository on branch main with one commit.

    Contains:
    - README.md ("hello\\n")
    - docs/guide.md ("guide\\n")
    """
    path = tmp_path / "project"
    path.mkdir()
    run_git(path, "init", "-q", "-b", "main")
    _configure_identity(path)
    make_commit(path, {"README.md": "hello\n", "docs/guide.md": "guide\n"}, "Initial commit")
    return path


@pytest.fixture
def repo(git_repo, config) -> Repository:
    return Repository(git_repo, config=config)


@pytest.fixture
def empty_repo(empty_repo_path, config) -> Repository:
    return Repository(empty_repo_path, config=config)


@pytest.fixture
def bare_remote(tmp_path, git_repo) -> Path:
    """
    A bare repository registered as ``origin`` of git_repo.

    main is pushed and tracked, so git_repo starts level with its remote.
    """
    remote = tmp_path / "remote.git"
    run_git(tmp_path, "init", "-q", "--bare", "-b", "main", str(remote))
    run_git(git_repo, "remote", "add", "origin", str(remote))
    run_git(git_repo, "push", "-q", "-u", "origin", "main")
    return remote


@pytest.fixture
def collaborator(tmp_path, bare_remote) -> Path:
    """A second clone of bare_remote, for making commits the first clone lacks."""
    path = tmp_path / "collaborator"
    run_git(tmp_path, "clone", "-q", str(bare_remote), str(path))
    _configure_identity(path)
    return path


@pytest.fixture
def git_cli() -> Callable[..., str]:
    """The run_git helper, for tests that shell out to git directly."""
    return run_git
