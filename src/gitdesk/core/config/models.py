"""
Configuration data models for gitdesk.

These models define the structure of .gitdesk.json and
~/.config/gitdesk/config.json files, with validation via Pydantic.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


def _default_gitdesk_home() -> Path:
    return Path.home() / ".gitdesk"


class IdentityConfig(BaseModel):
    """
    Commit identity used when a commit request omits author fields.
    """
    name: str = Field(
        default="GitDesk User",
        min_length=1,
        description="Author and committer name"
    )
    email: str = Field(
        default="user@gitdesk.local",
        min_length=1,
        description="Author and committer email"
    )


class RemoteConfig(BaseModel):
    """
    Remote synchronization settings.

    Controls which remote push/pull/fetch talk to and how long a network
    operation may run before it is aborted.
    """
    name: str = Field(
        default="origin",
        min_length=1,
        description="Name of the remote used for push, pull and fetch"
    )
    network_timeout: float = Field(
        default=300.0,
        ge=1.0,
        description="Seconds before an in-flight clone/push/pull/fetch is killed"
    )
    ssh_key_candidates: list[str] = Field(
        default_factory=lambda: ["id_ed25519", "id_rsa"],
        description="Key file names tried in ~/.ssh, in order, when no key is given"
    )
    ssh_user: str = Field(
        default="git",
        description="User for SSH transports"
    )


class CloneConfig(BaseModel):
    """Where clones land when no destination is given."""
    repos_dir: Path = Field(
        default_factory=lambda: _default_gitdesk_home() / "repos",
        description="Parent directory for cloned repositories"
    )


class HistoryConfig(BaseModel):
    default_limit: int = Field(
        default=50,
        ge=1,
        description="Commits returned by history when no limit is given"
    )


class RecentsConfig(BaseModel):
    """Recent locations store."""
    max_entries: int = Field(
        default=5,
        ge=1,
        description="Number of recent locations kept"
    )
    path: Path = Field(
        default_factory=lambda: _default_gitdesk_home() / "recents.json",
        description="JSON file holding recent locations"
    )


class ServerConfig(BaseModel):
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8080, ge=1, le=65535)


class GitDeskConfig(BaseModel):
    """
    Root configuration for gitdesk.

    Example:
        >>> config = GitDeskConfig()
        >>> config.remote.name
        'origin'
        >>> config.identity.email
        'user@gitdesk.local'
    """
    model_config = ConfigDict(extra="ignore")

    identity: IdentityConfig = Field(default_factory=IdentityConfig)
    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    clone: CloneConfig = Field(default_factory=CloneConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    recents: RecentsConfig = Field(default_factory=RecentsConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
