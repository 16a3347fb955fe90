"""
Layered configuration loading.

Layers, lowest precedence first:

    model defaults < ~/.config/gitdesk/config.json < <project>/.gitdesk.json < GITDESK_* env

Nested sections merge key by key, so a project file that only sets
``identity.name`` keeps the user's ``identity.email``.
"""

import json
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

from .models import GitDeskConfig

logger = logging.getLogger(__name__)

_config_cache: GitDeskConfig | None = None


def get_xdg_config_home() -> Path:
    return Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config")


def get_user_config_path() -> Path:
    return get_xdg_config_home() / "gitdesk" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    return (cwd or Path.cwd()) / ".gitdesk.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Merge ``override`` into a copy of ``base``, recursing into nested dicts.

    Example:
        >>> deep_merge({"identity": {"name": "a", "email": "e"}}, {"identity": {"name": "b"}})
        {'identity': {'name': 'b', 'email': 'e'}}
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Parse a JSON object from ``path``.

    Returns None when the file is missing, unreadable, or not a JSON object.
    """
    try:
        data = json.loads(path.read_text())
    except FileNotFoundError:
        return None
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None

    if not isinstance(data, dict):
        logger.warning("Ignoring config at %s: top level is not an object", path)
        return None
    return data


def _min_timeout(raw: str) -> float:
    value = float(raw)
    if value < 1:
        raise ValueError("must be >= 1")
    return value


def _expand_path(raw: str) -> str:
    return str(Path(raw).expanduser())


# env var -> (section, key, converter)
ENV_OVERRIDES: dict[str, tuple[str, str, Callable[[str], Any]]] = {
    "GITDESK_AUTHOR_NAME": ("identity", "name", str),
    "GITDESK_AUTHOR_EMAIL": ("identity", "email", str),
    "GITDESK_REPOS_DIR": ("clone", "repos_dir", _expand_path),
    "GITDESK_NETWORK_TIMEOUT": ("remote", "network_timeout", _min_timeout),
    "GITDESK_PORT": ("server", "port", int),
}


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Overlay ``GITDESK_*`` variables on a config dict.

    Unset or empty variables are skipped. A value that fails conversion is
    logged and ignored rather than failing the whole load.
    """
    overrides: dict[str, Any] = {}
    for var, (section, key, convert) in ENV_OVERRIDES.items():
        raw = os.environ.get(var)
        if not raw:
            continue
        try:
            value = convert(raw)
        except ValueError as e:
            logger.warning("Invalid %s value '%s' (%s), ignoring", var, raw, e)
            continue
        overrides.setdefault(section, {})[key] = value

    return deep_merge(config_dict, overrides)


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> GitDeskConfig:
    """
    Load and validate the merged configuration.

    Args:
        project_dir: Directory holding .gitdesk.json (defaults to cwd)
        use_cache: Return the previously loaded config if there is one

    Raises:
        ValidationError: If the merged values fail validation
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged: dict[str, Any] = {}
    for path in (get_user_config_path(), get_project_config_path(project_dir)):
        layer = load_json_file(path)
        if layer:
            logger.debug("Merging config from %s", path)
            merged = deep_merge(merged, layer)

    _config_cache = GitDeskConfig(**apply_env_overrides(merged))
    return _config_cache


def clear_cache() -> None:
    """Forget the cached config so the next ``load_config`` rereads files."""
    global _config_cache
    _config_cache = None
