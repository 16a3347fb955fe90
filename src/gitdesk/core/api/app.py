"""
FastAPI application setup for gitdesk.

Creates the app, registers routes and maps the git error families onto HTTP
responses:

- not-found errors -> 404
- precondition errors -> 400
- authentication errors -> 401
- stale repository handle -> 409
- transport errors -> 502
- no current repository -> 400 ``NO_REPOSITORY``
"""

import logging
import threading
import traceback
from enum import Enum
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from gitdesk import __version__
from gitdesk.core.api.deps import NoRepositoryError
from gitdesk.core.api.routes import directories, git
from gitdesk.core.config.models import GitDeskConfig
from gitdesk.core.git.errors import (
    AuthenticationError,
    GitDeskError,
    NotFoundError,
    PassphraseRequiredError,
    PreconditionError,
    StaleRepositoryError,
    TransportError,
)
from gitdesk.core.git.manager import GitManager
from gitdesk.core.recents import RecentsStore

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Standard error codes for API responses."""

    # Client errors (4xx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    PRECONDITION_FAILED = "PRECONDITION_FAILED"
    NO_REPOSITORY = "NO_REPOSITORY"
    AUTH_FAILED = "AUTH_FAILED"
    PASSPHRASE_REQUIRED = "PASSPHRASE_REQUIRED"
    STALE_REPOSITORY = "STALE_REPOSITORY"

    # Server errors (5xx)
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    GIT_ERROR = "GIT_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorResponse(BaseModel):
    """Standard error response model."""

    success: bool = False
    error_code: ErrorCode
    message: str
    detail: str | None = None
    request_id: str | None = None


def classify_error(exc: GitDeskError) -> tuple[int, ErrorCode]:
    """Map a git error onto an HTTP status and error code."""
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND, ErrorCode.NOT_FOUND
    if isinstance(exc, PreconditionError):
        return status.HTTP_400_BAD_REQUEST, ErrorCode.PRECONDITION_FAILED
    if isinstance(exc, PassphraseRequiredError):
        return status.HTTP_401_UNAUTHORIZED, ErrorCode.PASSPHRASE_REQUIRED
    if isinstance(exc, AuthenticationError):
        return status.HTTP_401_UNAUTHORIZED, ErrorCode.AUTH_FAILED
    if isinstance(exc, StaleRepositoryError):
        return status.HTTP_409_CONFLICT, ErrorCode.STALE_REPOSITORY
    if isinstance(exc, TransportError):
        return status.HTTP_502_BAD_GATEWAY, ErrorCode.TRANSPORT_ERROR
    return status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.GIT_ERROR


def _error_response(
    request: Request,
    status_code: int,
    error_code: ErrorCode,
    message: str,
    detail: str | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        error_code=error_code,
        message=message,
        detail=detail,
        request_id=str(id(request)),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(GitDeskError)
    async def git_exception_handler(request: Request, exc: GitDeskError) -> JSONResponse:
        """Translate git errors into the standard error envelope."""
        status_code, error_code = classify_error(exc)

        if status_code >= 500:
            logger.error(
                "HTTP %d on %s %s: %s",
                status_code,
                request.method,
                request.url.path,
                exc,
                extra={"request_id": id(request)},
            )
        else:
            logger.info(
                "HTTP %d on %s %s: %s",
                status_code,
                request.method,
                request.url.path,
                exc,
                extra={"request_id": id(request)},
            )

        detail = getattr(exc, "stderr", None) or None
        return _error_response(request, status_code, error_code, str(exc), detail)

    @app.exception_handler(NoRepositoryError)
    async def no_repository_handler(request: Request, exc: NoRepositoryError) -> JSONResponse:
        logger.info(
            "HTTP 400 on %s %s: no repository open",
            request.method,
            request.url.path,
            extra={"request_id": id(request)},
        )
        return _error_response(
            request, status.HTTP_400_BAD_REQUEST, ErrorCode.NO_REPOSITORY, str(exc)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """
        Handle validation errors from request bodies and query parameters.

        Only the first error is reported to the client; all are logged.
        """
        logger.warning(
            "Validation error on %s %s: %s",
            request.method,
            request.url.path,
            exc.errors(),
            extra={"request_id": id(request)},
        )

        first_error = exc.errors()[0] if exc.errors() else {}
        field = " -> ".join(str(loc) for loc in first_error.get("loc", []))
        error_msg = first_error.get("msg", "Invalid input")

        return _error_response(
            request,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            ErrorCode.VALIDATION_ERROR,
            "Request validation failed",
            f"{field}: {error_msg}" if field else error_msg,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Handle all uncaught exceptions.

        The traceback is logged; the client only sees a generic message.
        """
        logger.error(
            "Unhandled exception on %s %s: %s\n%s",
            request.method,
            request.url.path,
            str(exc),
            traceback.format_exc(),
            extra={"request_id": id(request)},
        )
        return _error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ErrorCode.INTERNAL_ERROR,
            "An internal server error occurred",
            str(exc),
        )


def create_app(
    manager: GitManager | None = None,
    root_dir: Path | None = None,
    config: GitDeskConfig | None = None,
    recents: RecentsStore | None = None,
) -> FastAPI:
    """
    Build the API app.

    Args:
        manager: Git manager to serve (one is created from ``config`` if omitted)
        root_dir: Directory opened at startup
        config: Configuration for a newly created manager and recents store
        recents: Recent locations store shared with the manager

    Returns:
        Configured FastAPI application
    """
    config = config or (manager.config if manager is not None else GitDeskConfig())
    if recents is None and manager is not None:
        recents = manager.recents
    if recents is None:
        recents = RecentsStore(config.recents.path, config.recents.max_entries)
    if manager is None:
        manager = GitManager(config, recents=recents)

    app = FastAPI(
        title="GitDesk API",
        description="REST API for the embedded git client",
        version=__version__,
    )

    app.state.manager = manager
    app.state.recents = recents
    app.state.operation_lock = threading.Lock()

    # Configure CORS for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(git.router, prefix="/api/git", tags=["git"])
    app.include_router(directories.router, prefix="/api", tags=["directories"])

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    register_exception_handlers(app)

    if root_dir is not None:
        repo = manager.open(root_dir)
        if repo is not None:
            logger.info("Git repository detected: %s (branch: %s)", repo.path, repo.branch)
        else:
            logger.info("%s is not a git repository", root_dir)

    return app
