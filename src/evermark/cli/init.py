"""evermark init: create the database and a project config.

Creates:
  .evermark.db             empty record store with schema
  evermark.yaml            project config (no secrets)
  ~/.evermark/config.yaml  global config (created once, mode 0o600)
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from evermark.config import ensure_global_config
from evermark.services import open_database

console = Console()

_DEFAULT_PROJECT_DIR = Path(".")
_DB_NAME = ".evermark.db"
_CONFIG_NAME = "evermark.yaml"

_PROJECT_YAML = """\
# Evermark project configuration. No secrets here.
# Credentials come from the environment:
#   NEYNAR_API_KEY, NEYNAR_WEBHOOK_SECRET, BOT_SIGNER_UUID, PINATA_JWT, BOT_PRIVATE_KEY

database:
  path: "{db_name}"

server:
  host: 127.0.0.1
  port: 8000

bot:
  username: {bot_username}
  fid: {bot_fid}

# chain:
#   enabled: true
#   rpc_url: https://mainnet.base.org

# insights:
#   enabled: true
#   model: openai/gpt-4o-mini
"""


def init_cmd(
    project_dir: Annotated[
        Path,
        typer.Argument(help="Directory to initialize. Defaults to current directory."),
    ] = _DEFAULT_PROJECT_DIR,
    bot_username: Annotated[
        str,
        typer.Option("--bot-username", help="Farcaster handle the bot answers to."),
    ] = "emark-bot",
    bot_fid: Annotated[
        int,
        typer.Option("--bot-fid", help="Farcaster id of the bot account."),
    ] = 0,
    global_config: Annotated[
        Path | None,
        typer.Option("--global-config", hidden=True, help="Override ~/.evermark/config.yaml (for testing)."),
    ] = None,
) -> None:
    """Initialize an Evermark project: database + evermark.yaml."""
    project_dir = project_dir.resolve()
    project_dir.mkdir(parents=True, exist_ok=True)

    db_path = project_dir / _DB_NAME
    if db_path.exists():
        console.print(f"[yellow]⚠[/]  {db_path} already exists; schema upgraded in place.")
    conn = open_database(db_path)
    conn.close()
    console.print(f"  [green]✓[/] {_DB_NAME}")

    config_path = project_dir / _CONFIG_NAME
    if config_path.exists():
        console.print(f"  [dim]-[/] {_CONFIG_NAME} (kept existing)")
    else:
        config_path.write_text(
            _PROJECT_YAML.format(db_name=_DB_NAME, bot_username=bot_username, bot_fid=bot_fid),
            encoding="utf-8",
        )
        console.print(f"  [green]✓[/] {_CONFIG_NAME}")

    _update_gitignore(project_dir)

    cfg_path = ensure_global_config(global_config)
    console.print(f"  [green]✓[/] {cfg_path} (global config)")

    console.print("\n[bold green]✓ Evermark project initialized.[/]")
    console.print("\nNext steps:")
    console.print("  1. export PINATA_JWT=...                 (IPFS uploads)")
    console.print("  2. evermark create <url>                  (preserve something)")
    console.print("  3. evermark serve                         (HTTP API + bot webhook)")


def _update_gitignore(project_dir: Path) -> None:
    """Add Evermark entries to .gitignore if it already exists."""
    gitignore = project_dir / ".gitignore"
    entries = [_DB_NAME, f"{_DB_NAME}-wal", f"{_DB_NAME}-shm"]

    if gitignore.exists():
        existing = gitignore.read_text(encoding="utf-8")
        to_add = [e for e in entries if e not in existing]
        if to_add:
            with gitignore.open("a", encoding="utf-8") as f:
                f.write("\n# Evermark\n")
                for entry in to_add:
                    f.write(f"{entry}\n")
            console.print("  [green]✓[/] .gitignore (updated with Evermark entries)")
