"""Recently opened locations."""

from .store import RecentLocation, RecentsStore

__all__ = ["RecentLocation", "RecentsStore"]
