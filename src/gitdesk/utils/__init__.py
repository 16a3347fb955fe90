"""Utility modules for gitdesk."""

from .locking import ReadWriteLock

__all__ = [
    "ReadWriteLock",
]
