"""
Git API routes.

All responses are wrapped as ``{"success": true, "data": ...}``:
- GET /api/git/status - Status of the current repository (or isRepo: false)
- POST /api/git/init - Initialize a repository in the open directory
- POST /api/git/clone - Clone a remote repository
- GET /api/git/repos - Repositories under the clone directory
- GET /api/git/validate-url - Check a clone URL and detect its auth type
- POST /api/git/stage, /unstage, /discard - Index and working tree edits
- POST /api/git/commit, /quick-commit - Create commits
- POST /api/git/push, /pull, /fetch - Remote synchronization
- GET /api/git/branches, POST /checkout, /branches/{create,delete,rename}
- GET /api/git/history, /commit-detail, /diff, /file-at-commit
"""

import threading
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from pydantic import Field

from gitdesk.core.api.deps import envelope, get_cancel_event, get_manager, get_repository
from gitdesk.core.git.auth import detect_auth_type, validate_clone_url
from gitdesk.core.git.errors import (
    InvalidBranchNameError,
    InvalidPathError,
    InvalidURLError,
    RepositoryExistsError,
)
from gitdesk.core.git.models import AuthConfig, AuthType, CloneOptions, GitModel
from gitdesk.core.git.repository import Repository

router = APIRouter()


# ==============================================================================
# Request bodies
# ==============================================================================


class InitRequest(GitModel):
    path: str | None = None


class CloneRequest(GitModel):
    url: str
    dest_path: str | None = None
    branch: str | None = None
    depth: int = Field(default=0, ge=0)
    ssh_key_path: str | None = None
    ssh_passphrase: str | None = Field(default=None, repr=False)
    username: str | None = None
    password: str | None = Field(default=None, repr=False)

    def to_auth(self) -> AuthConfig:
        if self.ssh_key_path or self.ssh_passphrase:
            auth_type = AuthType.SSH
        elif self.username or self.password:
            auth_type = AuthType.HTTPS
        else:
            auth_type = AuthType.NONE
        return AuthConfig(
            type=auth_type,
            ssh_key_path=self.ssh_key_path,
            ssh_passphrase=self.ssh_passphrase,
            username=self.username,
            password=self.password,
        )


class FilesRequest(GitModel):
    files: list[str] = Field(default_factory=list)
    all_files: bool = Field(default=False, alias="all")


class CommitRequest(GitModel):
    message: str
    files: list[str] | None = None
    author_name: str | None = None
    author_email: str | None = None


class SyncRequest(GitModel):
    auth: AuthConfig | None = None
    set_upstream: bool = False


class CheckoutRequest(GitModel):
    name: str
    create: bool = False


class BranchRequest(GitModel):
    name: str
    new_name: str | None = None


class QuickCommitRequest(GitModel):
    message: str
    files: list[str] | None = None
    push: bool = False
    auth: AuthConfig | None = None


# ==============================================================================
# Repository lifecycle
# ==============================================================================


@router.get("/status")
def get_status(request: Request) -> dict[str, Any]:
    """Status of the current repository; ``isRepo`` is false when none is open."""
    repo = get_manager(request).current()
    if repo is None:
        return envelope({"isRepo": False})

    with request.app.state.operation_lock:
        status = repo.status()
    return envelope({"isRepo": True, "status": status})


@router.post("/init")
def init_repository(request: Request, body: InitRequest | None = None) -> dict[str, Any]:
    """Initialize a repository at ``path`` or in the currently open directory."""
    manager = get_manager(request)

    if body is not None and body.path:
        target = Path(body.path)
    else:
        if manager.current() is not None:
            raise RepositoryExistsError("Directory is already a git repository")
        target = manager.current_path()
        if target is None:
            raise InvalidPathError("No directory is open")

    with request.app.state.operation_lock:
        repo = manager.init(target)
        status = repo.status()
    return envelope({"isRepo": True, "status": status})


@router.post("/clone")
def clone_repository(
    request: Request,
    body: CloneRequest,
    cancel: threading.Event = Depends(get_cancel_event),
) -> dict[str, Any]:
    """Clone a remote repository into the clone directory (or ``destPath``)."""
    validate_clone_url(body.url)
    opts = CloneOptions(
        url=body.url,
        dest_path=body.dest_path,
        branch=body.branch,
        depth=body.depth,
        auth=body.to_auth(),
    )
    result = get_manager(request).clone(opts, cancel=cancel)
    return envelope(result)


@router.get("/repos")
def list_repos(request: Request) -> dict[str, Any]:
    return envelope(get_manager(request).list_cloned_repos())


@router.get("/validate-url")
def validate_url(url: str = Query(default="")) -> dict[str, Any]:
    """
    Check whether ``url`` looks like a git remote.

    Example response:
        {"success": true, "data": {"valid": true, "authType": "ssh", "error": ""}}
    """
    if not url:
        raise InvalidURLError("URL parameter required")

    error = ""
    try:
        validate_clone_url(url)
    except InvalidURLError as e:
        error = str(e)

    return envelope(
        {"valid": not error, "authType": detect_auth_type(url).value, "error": error}
    )


# ==============================================================================
# Staging and commits
# ==============================================================================


@router.post("/stage")
def stage(body: FilesRequest, repo: Repository = Depends(get_repository)) -> dict[str, Any]:
    if body.all_files:
        repo.stage_all()
    else:
        repo.stage(body.files)
    return envelope(repo.status())


@router.post("/unstage")
def unstage(body: FilesRequest, repo: Repository = Depends(get_repository)) -> dict[str, Any]:
    if body.all_files:
        repo.unstage_all()
    else:
        repo.unstage(body.files)
    return envelope(repo.status())


@router.post("/discard")
def discard(body: FilesRequest, repo: Repository = Depends(get_repository)) -> dict[str, Any]:
    if body.all_files:
        repo.discard_all()
    else:
        repo.discard(body.files)
    return envelope(repo.status())


@router.post("/commit")
def commit(body: CommitRequest, repo: Repository = Depends(get_repository)) -> dict[str, Any]:
    new_commit = repo.commit(
        body.message,
        author_name=body.author_name,
        author_email=body.author_email,
        files=body.files,
    )
    return envelope({"commit": new_commit, "status": repo.status()})


@router.post("/quick-commit")
def quick_commit(
    body: QuickCommitRequest,
    repo: Repository = Depends(get_repository),
    cancel: threading.Event = Depends(get_cancel_event),
) -> dict[str, Any]:
    """Stage, commit and optionally push; push failures come back in ``pushError``."""
    result = repo.quick_commit(
        body.message, files=body.files, push=body.push, auth=body.auth, cancel=cancel
    )
    return envelope(result)


# ==============================================================================
# Remote synchronization
# ==============================================================================


@router.post("/push")
def push(
    body: SyncRequest | None = None,
    repo: Repository = Depends(get_repository),
    cancel: threading.Event = Depends(get_cancel_event),
) -> dict[str, Any]:
    body = body or SyncRequest()
    result = repo.push(auth=body.auth, set_upstream=body.set_upstream, cancel=cancel)
    return envelope({"result": result, "status": repo.status()})


@router.post("/pull")
def pull(
    body: SyncRequest | None = None,
    repo: Repository = Depends(get_repository),
    cancel: threading.Event = Depends(get_cancel_event),
) -> dict[str, Any]:
    body = body or SyncRequest()
    result = repo.pull(auth=body.auth, cancel=cancel)
    return envelope({"result": result, "status": repo.status()})


@router.post("/fetch")
def fetch(
    body: SyncRequest | None = None,
    repo: Repository = Depends(get_repository),
    cancel: threading.Event = Depends(get_cancel_event),
) -> dict[str, Any]:
    body = body or SyncRequest()
    result = repo.fetch(auth=body.auth, cancel=cancel)
    return envelope({"result": result, "status": repo.status()})


# ==============================================================================
# Branches
# ==============================================================================


@router.get("/branches")
def list_branches(repo: Repository = Depends(get_repository)) -> dict[str, Any]:
    return envelope({"branches": repo.list_branches(), "current": repo.branch})


@router.post("/checkout")
def checkout(body: CheckoutRequest, repo: Repository = Depends(get_repository)) -> dict[str, Any]:
    if body.create:
        repo.checkout_create(body.name)
    else:
        repo.checkout(body.name)
    return envelope({"status": repo.status(), "branches": repo.list_branches()})


@router.post("/branches/create")
def create_branch(
    body: BranchRequest, repo: Repository = Depends(get_repository)
) -> dict[str, Any]:
    repo.create_branch(body.name)
    return envelope(repo.list_branches())


@router.post("/branches/delete")
def delete_branch(
    body: BranchRequest, repo: Repository = Depends(get_repository)
) -> dict[str, Any]:
    repo.delete_branch(body.name)
    return envelope(repo.list_branches())


@router.post("/branches/rename")
def rename_branch(
    body: BranchRequest, repo: Repository = Depends(get_repository)
) -> dict[str, Any]:
    if not body.new_name:
        raise InvalidBranchNameError("newName is required")
    repo.rename_branch(body.name, body.new_name)
    return envelope(repo.list_branches())


# ==============================================================================
# History and diffs
# ==============================================================================


@router.get("/history")
def history(
    limit: int | None = None,
    skip: int = Query(default=0, ge=0),
    path: str | None = None,
    repo: Repository = Depends(get_repository),
) -> dict[str, Any]:
    return envelope(repo.history(limit=limit, skip=skip, path=path))


@router.get("/commit-detail")
def commit_detail(
    hash: str = Query(...), repo: Repository = Depends(get_repository)
) -> dict[str, Any]:
    return envelope(repo.commit_detail(hash))


@router.api_route("/diff", methods=["GET", "POST"])
def diff(
    from_hash: str = Query(..., alias="from"),
    to_hash: str = Query(..., alias="to"),
    path: str | None = None,
    repo: Repository = Depends(get_repository),
) -> dict[str, Any]:
    """Whole-commit diff, or the diff of one file when ``path`` is given."""
    if path:
        return envelope(repo.file_diff(from_hash, to_hash, path))
    return envelope(repo.diff(from_hash, to_hash))


@router.get("/file-at-commit")
def file_at_commit(
    hash: str = Query(...),
    path: str = Query(...),
    repo: Repository = Depends(get_repository),
) -> dict[str, Any]:
    return envelope({"content": repo.file_at_commit(hash, path)})
