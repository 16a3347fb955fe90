"""
FastAPI application for gitdesk.

API Endpoints:
- /api/git/* - Status, staging, commits, branches, sync, history and diffs
- POST /api/directories - Switch the working directory
- GET /api/recents - Recently opened directories

Usage:
    from gitdesk.core.api import create_app

    app = create_app(root_dir=Path.cwd())
"""

from gitdesk.core.api.app import create_app

__all__ = ["create_app"]
