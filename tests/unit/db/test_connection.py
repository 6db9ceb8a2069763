"""Tests for the SQLite connection layer."""

from __future__ import annotations

import sqlite3
import threading

from evermark.db.connection import Database


def test_connect_creates_file(tmp_path) -> None:
    path = tmp_path / ".evermark.db"
    conn = Database(path).connect()
    try:
        assert path.exists()
        assert conn.row_factory is sqlite3.Row
        assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1
        assert conn.execute("PRAGMA journal_mode").fetchone()[0] == "wal"
    finally:
        conn.close()


def test_memory_database() -> None:
    db = Database(":memory:")
    assert db.db_path == ":memory:"
    conn = db.connect()
    try:
        assert conn.execute("SELECT 1").fetchone()[0] == 1
    finally:
        conn.close()


def test_context_manager_closes(tmp_path) -> None:
    db = Database(tmp_path / "x.db")
    with db as conn:
        conn.execute("CREATE TABLE t (x INTEGER)")
    assert db._conn is None


def test_connection_usable_from_other_thread(tmp_path) -> None:
    conn = Database(tmp_path / "x.db").connect()
    errors: list[Exception] = []

    def _worker() -> None:
        try:
            conn.execute("SELECT 1").fetchone()
        except Exception as exc:  # pragma: no cover
            errors.append(exc)

    t = threading.Thread(target=_worker)
    t.start()
    t.join()
    conn.close()
    assert errors == []
