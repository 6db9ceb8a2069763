"""Evermark CLI entry point."""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Annotated

import typer

from evermark.cli.bot import bot_cmd
from evermark.cli.init import init_cmd
from evermark.cli.records import create_cmd, list_cmd, show_cmd
from evermark.cli.serve import serve_cmd
from evermark.log import configure_logging


def _installed_version() -> str:
    try:
        return importlib.metadata.version("evermark")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"evermark {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="evermark",
    help=(
        "Evermark: preserve web content, casts, papers and books.\n\n"
        "  evermark create   Preserve a URL from the terminal.\n"
        "  evermark serve    Run the HTTP API and the Farcaster bot webhook."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log pipeline steps (INFO)."),
    ] = False,
) -> None:
    """Evermark: preserve web content, casts, papers and books."""
    configure_logging(logging.INFO if verbose else logging.WARNING)


app.command("init")(init_cmd)
app.command("create")(create_cmd)
app.command("list")(list_cmd)
app.command("show")(show_cmd)
app.command("bot")(bot_cmd)
app.command("serve")(serve_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed Evermark version."""
    typer.echo(f"evermark {_installed_version()}")


if __name__ == "__main__":
    app()
