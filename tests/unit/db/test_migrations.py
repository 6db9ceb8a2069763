"""Tests for the forward-only migration runner."""

from __future__ import annotations

import sqlite3

from evermark.db.migrations import MIGRATIONS, current_version, run_migrations
from evermark.db.schema import CURRENT_VERSION, initialize


def _mem() -> sqlite3.Connection:
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    return conn


def _tables(conn: sqlite3.Connection) -> set[str]:
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    return {r[0] for r in rows}


def test_fresh_db_reaches_latest_version() -> None:
    conn = _mem()
    run_migrations(conn)
    assert current_version(conn) == MIGRATIONS[-1][0] == CURRENT_VERSION


def test_creates_expected_tables() -> None:
    conn = _mem()
    initialize(conn)
    tables = _tables(conn)
    assert {"schema_version", "users", "evermarks", "evermarks_fts"} <= tables


def test_v2_adds_mint_tx_hash_column() -> None:
    conn = _mem()
    initialize(conn)
    cols = {r["name"] for r in conn.execute("PRAGMA table_info(evermarks)").fetchall()}
    assert "mint_tx_hash" in cols


def test_idempotent() -> None:
    conn = _mem()
    run_migrations(conn)
    run_migrations(conn)
    count = conn.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0]
    assert count == len(MIGRATIONS)


def test_migrations_are_ascending() -> None:
    versions = [v for v, _ in MIGRATIONS]
    assert versions == sorted(versions)
    assert len(versions) == len(set(versions))


def test_upgrade_from_v1() -> None:
    """A database created at v1 picks up later migrations only."""
    conn = _mem()
    conn.execute(
        "CREATE TABLE schema_version (version INTEGER NOT NULL, "
        "applied_at DATETIME NOT NULL DEFAULT (datetime('now')))"
    )
    conn.executescript(MIGRATIONS[0][1])
    conn.execute("INSERT INTO schema_version (version) VALUES (1)")
    conn.commit()

    run_migrations(conn)
    assert current_version(conn) == CURRENT_VERSION
