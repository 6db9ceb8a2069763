"""Every CLI error message names the cause and the fix."""

from __future__ import annotations

from evermark.cli.errors import (
    err_config,
    err_duplicate,
    err_invalid_url,
    err_no_db,
    err_no_neynar_key,
    err_not_found,
    warn_ipfs_failed,
    warn_no_webhook_secret,
)


def test_err_no_db() -> None:
    msg = err_no_db("/tmp/x.db")
    assert "/tmp/x.db" in msg
    assert "evermark init" in msg


def test_err_config_mentions_env_vars() -> None:
    assert "environment variables" in err_config("bad key")


def test_err_invalid_url() -> None:
    msg = err_invalid_url("ftp://x", "Only HTTP and HTTPS URLs are supported")
    assert "ftp://x" in msg
    assert "https://" in msg


def test_err_duplicate_points_to_show() -> None:
    assert "evermark show 7" in err_duplicate("https://example.com", 7)


def test_err_not_found_points_to_list() -> None:
    assert "evermark list" in err_not_found(3)


def test_secret_hints() -> None:
    assert "export NEYNAR_API_KEY" in err_no_neynar_key()
    assert "export NEYNAR_WEBHOOK_SECRET" in warn_no_webhook_secret()
    assert "export PINATA_JWT" in warn_ipfs_failed(1)
