"""evermark serve: run the HTTP API and the bot webhook."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from evermark.api.app import create_app
from evermark.cli.errors import warn_no_webhook_secret
from evermark.cli.runtime import open_services
from evermark.log import configure_logging

console = Console()


def serve_cmd(
    host: Annotated[
        str | None,
        typer.Option("--host", help="Bind address (defaults to server.host)."),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option("--port", help="Port (defaults to server.port)."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to .evermark.db (defaults to database.path)."),
    ] = None,
) -> None:
    """Serve the Evermark HTTP API (Flask development server)."""
    configure_logging(logging.INFO)
    services = open_services(db)
    cfg = services.config
    if not services.secrets.webhook_secret:
        console.print(warn_no_webhook_secret())

    app = create_app(services)
    bind_host = host or cfg.server.host
    bind_port = port or cfg.server.port
    console.print(f"[bold]Evermark API[/] on http://{bind_host}:{bind_port}")
    try:
        app.run(host=bind_host, port=bind_port, debug=False, threaded=True)
    finally:
        services.close()
