"""
Recent locations store.

Keeps the last few directories the user switched to, most recent first, in a
small JSON file (``~/.gitdesk/recents.json`` by default).
"""

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class RecentLocation(BaseModel):
    """A directory the user opened."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    path: str = Field(..., description="Absolute directory path")
    name: str = Field(..., description="Directory base name, for display")
    last_opened: datetime


_LOCATIONS = TypeAdapter(list[RecentLocation])


class RecentsStore:
    """
    JSON-backed list of recent locations.

    Entries are deduplicated by path and capped at ``max_entries``. A missing
    or corrupt file is treated as empty.
    """

    def __init__(self, path: Path, max_entries: int = 5):
        self.path = Path(path).expanduser()
        self.max_entries = max_entries
        self._lock = threading.Lock()

    def _load(self) -> list[RecentLocation]:
        if not self.path.exists():
            return []
        try:
            return _LOCATIONS.validate_json(self.path.read_bytes())
        except (OSError, ValidationError) as e:
            logger.warning("Ignoring unreadable recents file %s: %s", self.path, e)
            return []

    def _save(self, locations: list[RecentLocation]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        temp_path = self.path.with_suffix(".tmp")
        data = [loc.model_dump(mode="json", by_alias=True) for loc in locations]
        try:
            temp_path.write_text(json.dumps(data, indent=2))
            temp_path.replace(self.path)
        except OSError:
            if temp_path.exists():
                temp_path.unlink()
            raise

    def all(self) -> list[RecentLocation]:
        with self._lock:
            return self._load()

    def add(self, path: Path) -> list[RecentLocation]:
        """
        Move ``path`` to the front of the list.

        Paths that are not existing directories are ignored.

        Returns:
            The updated list
        """
        path = Path(path).expanduser().resolve()

        with self._lock:
            locations = self._load()
            if not path.is_dir():
                return locations

            entry = RecentLocation(
                path=str(path),
                name=path.name or str(path),
                last_opened=datetime.now(timezone.utc),
            )
            locations = [entry] + [loc for loc in locations if loc.path != entry.path]
            locations = locations[: self.max_entries]

            self._save(locations)
            return locations
