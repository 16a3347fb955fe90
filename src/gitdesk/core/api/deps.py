"""
Request dependencies shared by the API routes.

The app keeps its ``GitManager`` on ``app.state.manager``. Operations on the
current repository are serialized through ``app.state.operation_lock``
because a ``Repository`` handle does no locking of its own. Network routes
also take a cancel event that fires when the client goes away.
"""

import asyncio
import threading
from collections.abc import AsyncIterator, Iterator
from typing import Any

from fastapi import Request

from gitdesk.core.git.manager import GitManager
from gitdesk.core.git.repository import Repository
from gitdesk.core.recents import RecentsStore

# Seconds between client disconnect checks during network operations
DISCONNECT_POLL_INTERVAL = 0.2


class NoRepositoryError(Exception):
    """Raised when an endpoint needs a current repository and there is none."""

    def __init__(self) -> None:
        super().__init__("No git repository is open")


def envelope(data: Any) -> dict[str, Any]:
    """Wrap response data as ``{"success": true, "data": ...}``."""
    return {"success": True, "data": data}


def get_manager(request: Request) -> GitManager:
    return request.app.state.manager


def get_recents(request: Request) -> RecentsStore | None:
    return request.app.state.recents


def get_repository(request: Request) -> Iterator[Repository]:
    """Yield the current repository while holding the operation lock."""
    repo = get_manager(request).current()
    if repo is None:
        raise NoRepositoryError()
    with request.app.state.operation_lock:
        yield repo


async def get_cancel_event(request: Request) -> AsyncIterator[threading.Event]:
    """
    Yield an event that is set once the client disconnects.

    Network routes hand it to the transfer as its ``cancel`` event so an
    abandoned request does not keep git running until the timeout.
    """
    cancel = threading.Event()

    async def watch() -> None:
        while not await request.is_disconnected():
            await asyncio.sleep(DISCONNECT_POLL_INTERVAL)
        cancel.set()

    watcher = asyncio.create_task(watch())
    try:
        yield cancel
    finally:
        watcher.cancel()
