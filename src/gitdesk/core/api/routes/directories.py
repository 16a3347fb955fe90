"""
Directory switching and recent locations.

- POST /api/directories - Switch the working directory; opens its repository
- GET /api/recents - Recently opened directories, most recent first
"""

from pathlib import Path
from typing import Any

from fastapi import APIRouter, Request

from gitdesk.core.api.deps import envelope, get_manager, get_recents
from gitdesk.core.git.errors import InvalidPathError
from gitdesk.core.git.models import GitModel

router = APIRouter()


class DirectoryRequest(GitModel):
    path: str


@router.post("/directories")
def switch_directory(request: Request, body: DirectoryRequest) -> dict[str, Any]:
    """
    Make ``path`` the working directory.

    The repository containing it (if any) becomes current and the directory
    is recorded in the recent locations list.
    """
    path = Path(body.path).expanduser()
    if not path.is_dir():
        raise InvalidPathError(f"not a directory: {body.path}")

    with request.app.state.operation_lock:
        repo = get_manager(request).open(path)

    return envelope({"path": str(path.resolve()), "isRepo": repo is not None})


@router.get("/recents")
def list_recents(request: Request) -> dict[str, Any]:
    recents = get_recents(request)
    return envelope(recents.all() if recents is not None else [])
