"""evermark bot: run a bot command locally, without Farcaster.

Parses TEXT exactly like a mention and prints the reply instead of casting
it. Useful to try commands against the local archive:

  evermark bot "save https://example.com" --fid 42
  evermark bot "/recent 3" --fid 42
  evermark bot "evermark this" --fid 42 --context https://warpcast.com/alice/0xabc123
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from evermark.bot.commands import parse
from evermark.bot.responses import HELP_REPLY, split_message
from evermark.cli.errors import err_no_neynar_key, err_processing
from evermark.cli.runtime import open_services
from evermark.errors import ExternalServiceError

console = Console()


def bot_cmd(
    text: Annotated[str, typer.Argument(help="Message as it would appear in a mention.")],
    fid: Annotated[int, typer.Option("--fid", help="Farcaster id of the sender.")],
    context: Annotated[
        str | None,
        typer.Option("--context", help="Cast URL the message replies to (fetched via Neynar)."),
    ] = None,
    thread: Annotated[
        bool,
        typer.Option("--thread", help="Show the reply split into cast-sized parts."),
    ] = False,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to .evermark.db (defaults to database.path)."),
    ] = None,
) -> None:
    """Run one bot command against the local archive and print the reply."""
    services = open_services(db)
    try:
        context_cast = None
        if context:
            if not services.neynar.can_read:
                console.print(err_no_neynar_key())
                raise typer.Exit(1)
            try:
                context_cast = services.neynar.fetch_cast(context, id_type="url")
            except ExternalServiceError as exc:
                console.print(err_processing(exc.message))
                raise typer.Exit(1) from exc

        command = parse(text, fid, context_cast)
        if command is None:
            typer.echo(HELP_REPLY)
            return

        result = services.processor.execute(command)
    finally:
        services.close()

    marker = "[green]✓[/]" if result.success else "[red]✗[/]"
    console.print(f"{marker} {command.kind.value}")
    parts = split_message(result.message) if thread and result.should_thread else [result.message]
    for index, part in enumerate(parts, start=1):
        if len(parts) > 1:
            console.print(f"[dim]--- part {index}/{len(parts)} ---[/]")
        typer.echo(part)
    if not result.success:
        raise typer.Exit(1)
