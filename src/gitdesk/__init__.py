"""
GitDesk - embedded git client

Repository status, staging, commits, branches and remote sync for an
editing application, served over HTTP and a CLI.
"""

__version__ = "0.4.0"

# Re-export core models for convenience
from gitdesk.core.config.models import GitDeskConfig
from gitdesk.core.git.models import Commit, FileStatus, GitStatus

__all__ = ["Commit", "FileStatus", "GitDeskConfig", "GitStatus", "__version__"]
