"""
GitDesk CLI - Serve command.

Run the HTTP API that an editor host talks to.
"""

from pathlib import Path

import typer

from gitdesk.cli.common import console, is_debug, repo_dir
from gitdesk.core.config import load_config


def serve(
    ctx: typer.Context,
    host: str | None = typer.Option(
        None, "--host", help="Interface to bind (default from config)"
    ),
    port: int | None = typer.Option(
        None, "--port", "-p", min=1, max=65535, help="Port to listen on (default from config)"
    ),
    root: Path | None = typer.Option(
        None, "--root", help="Directory opened at startup (default: --repo or cwd)"
    ),
) -> None:
    """
    Start the gitdesk API server.

    Examples:
        gitdesk serve                   # 127.0.0.1:8080, opens the cwd
        gitdesk serve --port 9000
        gitdesk serve --root ~/notes
    """
    debug = is_debug(ctx)
    root_dir = (root or repo_dir(ctx)).expanduser()
    config = load_config(project_dir=root_dir)

    try:
        import uvicorn

        from gitdesk.core.api.app import create_app
        from gitdesk.core.recents import RecentsStore
    except ImportError as e:
        console.print(
            "[red]Error:[/red] Server dependencies not installed. "
            f"Missing module: {e.name}"
        )
        console.print("[dim]Install with: pip install fastapi uvicorn[/dim]")
        raise typer.Exit(1)

    recents = RecentsStore(config.recents.path, config.recents.max_entries)
    app = create_app(root_dir=root_dir, config=config, recents=recents)

    bind_host = host or config.server.host
    bind_port = port or config.server.port
    url = f"http://{bind_host}:{bind_port}"
    console.print("[bold cyan]Starting gitdesk server...[/bold cyan]")
    console.print(f"[dim]API: {url}/api/git/status[/dim]")
    console.print(f"[dim]Docs: {url}/docs[/dim]")
    console.print("\n[dim]Press Ctrl+C to stop[/dim]\n")

    try:
        uvicorn.run(
            app,
            host=bind_host,
            port=bind_port,
            log_level="info" if debug else "warning",
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]Server stopped[/yellow]")
        raise typer.Exit(0)
