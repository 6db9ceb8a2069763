"""Evermark rich error messages: actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from evermark.cli.errors import err_no_db
    console.print(err_no_db(".evermark.db"))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_no_db(db_path: str = ".evermark.db") -> str:
    """No database found at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  evermark init"
    )


def err_config(message: str) -> str:
    """evermark.yaml or ~/.evermark/config.yaml is invalid."""
    return (
        f"[red]Error:[/] Invalid configuration: {message}\n"
        "  Fix evermark.yaml (or ~/.evermark/config.yaml). Secrets belong in environment variables."
    )


def err_invalid_url(url: str, reason: str) -> str:
    return (
        f"[red]Error:[/] Cannot preserve '{url}': {reason}\n"
        "  Use an absolute http:// or https:// URL."
    )


def err_duplicate(url: str, token_id: int) -> str:
    """URL already preserved."""
    return (
        f"[yellow]Already preserved:[/] '{url}' is evermark #{token_id}.\n"
        f"  Run:  evermark show {token_id}"
    )


def err_not_found(token_id: int) -> str:
    return (
        f"[yellow]Not found:[/] evermark #{token_id} does not exist.\n"
        "  Run:  evermark list  to see all records."
    )


def err_processing(message: str) -> str:
    return f"[red]Error:[/] {message}"


def err_no_neynar_key() -> str:
    """A cast lookup needs NEYNAR_API_KEY."""
    return (
        "[red]Error:[/] NEYNAR_API_KEY is not set.\n"
        "  Set:  export NEYNAR_API_KEY=..."
    )


def warn_no_webhook_secret() -> str:
    """Shown by evermark serve when the webhook cannot verify requests."""
    return (
        "[yellow]⚠[/] NEYNAR_WEBHOOK_SECRET is not set; /bot-webhook will answer 500.\n"
        "  Set:  export NEYNAR_WEBHOOK_SECRET=..."
    )


def warn_ipfs_failed(token_id: int) -> str:
    return (
        f"[yellow]⚠[/] Evermark #{token_id} was saved but its metadata was not pinned to IPFS.\n"
        "  Set:  export PINATA_JWT=...  to enable uploads."
    )
