"""Shared start-up for CLI commands: config, secrets, database, services."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from evermark.cli.errors import err_config, err_no_db
from evermark.config import ConfigError, EvermarkConfig, load_config, load_secrets
from evermark.services import Services, build_services, open_database

console = Console()


def load_cli_config() -> EvermarkConfig:
    """Load config or exit 1 with an actionable message."""
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1) from exc


def resolve_db(db: Path | None, cfg: EvermarkConfig) -> Path:
    return db if db is not None else Path(cfg.database.path)


def open_services(db: Path | None) -> Services:
    """Build services over an existing database, or exit 1 if there is none."""
    cfg = load_cli_config()
    db_path = resolve_db(db, cfg)
    if not db_path.exists():
        console.print(err_no_db(str(db_path)))
        raise typer.Exit(1)
    return build_services(cfg, load_secrets(), open_database(db_path))
