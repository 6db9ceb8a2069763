"""evermark create / list / show: record management from the terminal.

Usage:
  evermark create https://example.com/article --fid 42
  evermark list --page 2 --limit 10
  evermark show 7 --json
"""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from evermark.cli.errors import (
    err_duplicate,
    err_invalid_url,
    err_not_found,
    err_processing,
    warn_ipfs_failed,
)
from evermark.cli.runtime import open_services
from evermark.db.models import EvermarkRecord, ProcessingStatus
from evermark.errors import DuplicateError, EvermarkError, NotFoundError, ValidationError

console = Console()

_DbOption = Annotated[
    Path | None,
    typer.Option("--db", help="Path to .evermark.db (defaults to database.path)."),
]


def create_cmd(
    url: Annotated[str, typer.Argument(help="URL to preserve.")],
    fid: Annotated[
        int | None,
        typer.Option("--fid", help="Farcaster id of the owner."),
    ] = None,
    db: _DbOption = None,
) -> None:
    """Preserve a URL: detect, extract, store and pin its metadata."""
    services = open_services(db)
    try:
        result = services.service.create_evermark(url, fid)
    except ValidationError as exc:
        console.print(err_invalid_url(url, exc.message))
        raise typer.Exit(1) from exc
    except DuplicateError as exc:
        console.print(err_duplicate(url, exc.existing_token_id))
        raise typer.Exit(1) from exc
    except EvermarkError as exc:
        console.print(err_processing(exc.message))
        raise typer.Exit(1) from exc
    finally:
        services.close()

    console.print(f"[green]✓[/] Evermark #{result.token_id}: {result.metadata.title}")
    console.print(f"  Type:   {result.metadata.content_type.value}")
    console.print(f"  Status: {result.status.value}")
    if result.storage_hash:
        console.print(f"  IPFS:   {result.storage_hash}")
    if result.status is ProcessingStatus.IPFS_FAILED:
        console.print(warn_ipfs_failed(result.token_id))


def list_cmd(
    page: Annotated[int, typer.Option("--page", min=1, help="Page number (1-based).")] = 1,
    limit: Annotated[int, typer.Option("--limit", min=1, max=100, help="Records per page.")] = 20,
    db: _DbOption = None,
) -> None:
    """List preserved records, newest first."""
    services = open_services(db)
    try:
        records, total = services.service.list_evermarks(page, limit)
    finally:
        services.close()

    if not records:
        console.print("[dim]No evermarks yet.[/]  Run:  evermark create <url>")
        return

    table = Table(title=f"Evermarks (page {page}/{max(math.ceil(total / limit), 1)}, {total} total)")
    table.add_column("#", justify="right")
    table.add_column("Type")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Created")
    for record in records:
        table.add_row(
            str(record.token_id),
            record.metadata.content_type.value,
            record.metadata.title,
            _status_markup(record.processing_status),
            (record.created_at or "")[:19].replace("T", " "),
        )
    console.print(table)


def show_cmd(
    token_id: Annotated[int, typer.Argument(help="Token id of the record.")],
    as_json: Annotated[bool, typer.Option("--json", help="Print the raw record as JSON.")] = False,
    db: _DbOption = None,
) -> None:
    """Show one preserved record."""
    services = open_services(db)
    try:
        record = services.service.get_evermark(token_id)
    except NotFoundError as exc:
        console.print(err_not_found(token_id))
        raise typer.Exit(1) from exc
    finally:
        services.close()

    if as_json:
        typer.echo(json.dumps(record.to_dict(), indent=2))
        return
    console.print(_record_panel(record))


def _status_markup(status: ProcessingStatus) -> str:
    colour = {
        ProcessingStatus.METADATA_UPLOADED: "green",
        ProcessingStatus.COMPLETED: "green",
        ProcessingStatus.IPFS_FAILED: "red",
    }.get(status, "yellow")
    return f"[{colour}]{status.value}[/]"


def _record_panel(record: EvermarkRecord) -> Panel:
    meta = record.metadata
    lines = [
        f"[bold]{meta.title}[/]",
        "",
        f"Source:  {record.source_url}",
        f"Type:    {meta.content_type.value}",
        f"Author:  {meta.author or '-'}",
        f"Tags:    {', '.join(meta.tags) or '-'}",
        f"Status:  {_status_markup(record.processing_status)}",
    ]
    if record.ipfs_hash:
        lines.append(f"IPFS:    {record.ipfs_hash}")
    if record.processing_error:
        lines.append(f"Error:   {record.processing_error}")
    if record.mint_tx_hash:
        lines.append(f"Mint tx: {record.mint_tx_hash}")
    if meta.description:
        lines += ["", meta.description]
    return Panel("\n".join(lines), title=f"Evermark #{record.token_id}", expand=False)
