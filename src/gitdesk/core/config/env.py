"""
Layered .env loading.

Files are read lowest precedence first:

    ~/.config/gitdesk/.env < <project>/.env < <project>/.env.local

Later files override keys set by earlier ones. A variable that was already in
the process environment before loading started is never touched.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from dotenv import dotenv_values

logger = logging.getLogger(__name__)


def user_env_path() -> Path:
    xdg_home = Path(os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config")))
    return xdg_home / "gitdesk" / ".env"


def read_env_file(path: Path) -> dict[str, str]:
    """Key/value pairs from a .env file; keys without values are skipped."""
    if not path.exists():
        return {}
    return {str(k): str(v) for k, v in dotenv_values(path).items() if k and v is not None}


def load_layered_env(
    *,
    project_dir: Path | None = None,
    user_env_paths: Iterable[Path] | None = None,
    project_env_paths: Iterable[Path] | None = None,
) -> dict[str, str]:
    """
    Load user and project .env files into ``os.environ``.

    Args:
        project_dir: Directory holding .env and .env.local (defaults to cwd)
        user_env_paths: Override the user-level files
        project_env_paths: Override the project-level files

    Returns:
        The variables that were set, for logging
    """
    project_dir = project_dir or Path.cwd()
    if user_env_paths is None:
        user_env_paths = [user_env_path()]
    if project_env_paths is None:
        project_env_paths = [project_dir / ".env", project_dir / ".env.local"]

    preexisting = set(os.environ)
    loaded: dict[str, str] = {}

    for path in [*user_env_paths, *project_env_paths]:
        for key, value in read_env_file(Path(path)).items():
            if key in preexisting:
                continue
            loaded[key] = value

    os.environ.update(loaded)
    if loaded:
        logger.debug("Loaded %d variable(s) from .env files", len(loaded))
    return loaded
