"""Forward-only migration runner for Evermark's database schema."""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

_V1_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    fid         INTEGER NOT NULL UNIQUE,
    username    TEXT,
    created_at  DATETIME NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS evermarks (
    token_id            INTEGER PRIMARY KEY AUTOINCREMENT,
    source_url          TEXT NOT NULL UNIQUE,
    title               TEXT NOT NULL,
    author              TEXT,
    description         TEXT,
    content_type        TEXT NOT NULL,
    tags                TEXT NOT NULL DEFAULT '[]',
    metadata_json       TEXT NOT NULL,
    processing_status   TEXT NOT NULL DEFAULT 'pending',
    processing_error    TEXT,
    ipfs_hash           TEXT,
    arweave_ref         TEXT,
    user_id             INTEGER REFERENCES users(id) ON DELETE SET NULL,
    created_at          DATETIME NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    updated_at          DATETIME NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);

CREATE INDEX IF NOT EXISTS idx_evermarks_user ON evermarks(user_id, created_at);

CREATE VIRTUAL TABLE IF NOT EXISTS evermarks_fts
    USING fts5(title, description, author, tags, tokenize='porter ascii');
"""

# V2: background minting records the transaction hash.
_V2_SQL = """
ALTER TABLE evermarks ADD COLUMN mint_tx_hash TEXT;
"""

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
    (2, _V2_SQL),
]


def current_version(conn: sqlite3.Connection) -> int:
    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    return row[0] if row[0] is not None else 0


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    current = current_version(conn)
    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            conn.commit()
