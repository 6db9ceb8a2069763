"""Tests for object-graph wiring."""

from __future__ import annotations

from unittest.mock import patch

from evermark.config import EvermarkConfig, Secrets
from evermark.services import build_services, open_database


def test_open_database_applies_schema(tmp_path) -> None:
    conn = open_database(tmp_path / "x.db")
    try:
        tables = {r[0] for r in conn.execute("SELECT name FROM sqlite_master").fetchall()}
        assert "evermarks" in tables
    finally:
        conn.close()


def test_build_services_without_credentials(tmp_db) -> None:
    services = build_services(EvermarkConfig(), Secrets(), conn=tmp_db)

    assert services.service.ipfs is None
    assert services.mint_queue is None
    assert not services.neynar.can_read
    assert services.webhook.bot_username == "emark-bot"


def test_build_services_with_pinata(tmp_db) -> None:
    cfg = EvermarkConfig()
    cfg.http.timeout = 4.0
    services = build_services(cfg, Secrets(pinata_jwt="jwt"), conn=tmp_db)

    assert services.service.ipfs is not None
    assert services.service.ipfs.timeout == 4.0


def test_chain_enabled_without_key_disables_minting(tmp_db) -> None:
    cfg = EvermarkConfig()
    cfg.chain.enabled = True
    assert build_services(cfg, Secrets(), conn=tmp_db).mint_queue is None


def test_chain_enabled_with_key_builds_queue(tmp_db) -> None:
    cfg = EvermarkConfig()
    cfg.chain.enabled = True
    with patch("evermark.services.Minter") as minter_cls:
        services = build_services(cfg, Secrets(bot_private_key="0xkey"), conn=tmp_db)
    try:
        minter_cls.assert_called_once_with(cfg.chain.rpc_url, cfg.chain.nft_contract, "0xkey")
        assert services.mint_queue is not None
    finally:
        services.mint_queue.shutdown()
