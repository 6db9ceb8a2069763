"""Repository for all Evermark database operations.

Single interface for: users, evermark records, FTS5 search.
"""

from __future__ import annotations

import json
import re
import sqlite3
import threading

from evermark.content.base import ContentMetadata
from evermark.db.models import EvermarkRecord, ProcessingStatus, User
from evermark.errors import DuplicateError

_RECORD_COLUMNS = """
    token_id, source_url, metadata_json, processing_status, processing_error,
    ipfs_hash, arweave_ref, user_id, mint_tx_hash, created_at, updated_at
"""


class Repository:
    """Data access layer for users and evermark records.

    Wraps an open sqlite3.Connection that may be shared between the HTTP
    worker threads and the background mint queue. Every write (and the read
    that follows it) runs under a re-entrant lock. The connection is owned
    by the caller and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with the schema initialised
                (see evermark.db.schema.initialize).
        """
        self._conn = conn
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def get_user_by_fid(self, fid: int) -> User | None:
        row = self._conn.execute(
            "SELECT id, fid, username, created_at FROM users WHERE fid = ?", (fid,)
        ).fetchone()
        return _row_to_user(row) if row else None

    def get_or_create_user(self, fid: int, username: str | None = None) -> User:
        """Return the user with Farcaster id *fid*, inserting it if missing.

        An existing user's username is filled in when it was unknown.
        """
        with self._lock:
            self._conn.execute(
                "INSERT OR IGNORE INTO users (fid, username) VALUES (?, ?)",
                (fid, username),
            )
            if username:
                self._conn.execute(
                    "UPDATE users SET username = ? WHERE fid = ? AND username IS NULL",
                    (username, fid),
                )
            self._conn.commit()
            user = self.get_user_by_fid(fid)
        if user is None:
            raise RuntimeError(f"User fid={fid} missing after insert")
        return user

    # ------------------------------------------------------------------
    # Evermarks
    # ------------------------------------------------------------------

    def add_evermark(
        self,
        source_url: str,
        metadata: ContentMetadata,
        user_id: int | None = None,
    ) -> int:
        """Insert a pending record and sync the FTS5 index. Returns the token id.

        Raises:
            DuplicateError: If a record for *source_url* already exists.
        """
        with self._lock:
            try:
                cur = self._conn.execute(
                    """
                    INSERT INTO evermarks (
                        source_url, title, author, description, content_type,
                        tags, metadata_json, processing_status, user_id
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        source_url,
                        metadata.title,
                        metadata.author,
                        metadata.description,
                        metadata.content_type.value,
                        json.dumps(metadata.tags),
                        metadata.to_json(),
                        ProcessingStatus.PENDING.value,
                        user_id,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                self._conn.rollback()
                existing = self.get_by_source_url(source_url)
                if existing is None:
                    raise
                raise DuplicateError(
                    "Content already preserved", existing.token_id
                ) from exc
            token_id = cur.lastrowid
            # Keep FTS5 in sync with explicit rowid = token_id mapping
            self._index(token_id, metadata)
            self._conn.commit()
        return token_id

    def get_evermark(self, token_id: int) -> EvermarkRecord | None:
        row = self._conn.execute(
            f"SELECT {_RECORD_COLUMNS} FROM evermarks WHERE token_id = ?",  # noqa: S608
            (token_id,),
        ).fetchone()
        return _row_to_record(row) if row else None

    def get_by_source_url(self, source_url: str) -> EvermarkRecord | None:
        """Return the record whose source URL equals *source_url* exactly."""
        row = self._conn.execute(
            f"SELECT {_RECORD_COLUMNS} FROM evermarks WHERE source_url = ?",  # noqa: S608
            (source_url,),
        ).fetchone()
        return _row_to_record(row) if row else None

    def list_evermarks(self, limit: int, offset: int = 0) -> list[EvermarkRecord]:
        """Return records newest first."""
        rows = self._conn.execute(
            f"""
            SELECT {_RECORD_COLUMNS} FROM evermarks
            ORDER BY created_at DESC, token_id DESC
            LIMIT ? OFFSET ?
            """,  # noqa: S608
            (limit, offset),
        ).fetchall()
        return [_row_to_record(r) for r in rows]

    def count_evermarks(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM evermarks").fetchone()[0]

    def list_for_user(
        self, user_id: int, limit: int | None = None
    ) -> list[EvermarkRecord]:
        """Return the records owned by *user_id*, newest first."""
        sql = f"""
            SELECT {_RECORD_COLUMNS} FROM evermarks
            WHERE user_id = ?
            ORDER BY created_at DESC, token_id DESC
        """  # noqa: S608
        params: tuple = (user_id,)
        if limit is not None:
            sql += " LIMIT ?"
            params = (user_id, limit)
        return [_row_to_record(r) for r in self._conn.execute(sql, params).fetchall()]

    def mark_uploaded(self, token_id: int, ipfs_hash: str) -> None:
        self._set_status(token_id, ProcessingStatus.METADATA_UPLOADED, ipfs_hash=ipfs_hash)

    def mark_upload_failed(self, token_id: int, error: str) -> None:
        self._set_status(token_id, ProcessingStatus.IPFS_FAILED, error=error)

    def set_mint_tx(self, token_id: int, tx_hash: str) -> None:
        with self._lock:
            self._conn.execute(
                """
                UPDATE evermarks
                SET mint_tx_hash = ?, updated_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now')
                WHERE token_id = ?
                """,
                (tx_hash, token_id),
            )
            self._conn.commit()

    def update_tags(self, token_id: int, tags: list[str]) -> EvermarkRecord | None:
        """Replace the tag list of a record, keeping metadata and FTS5 in sync.

        Returns the updated record, or None if *token_id* does not exist.
        """
        with self._lock:
            record = self.get_evermark(token_id)
            if record is None:
                return None
            record.metadata.tags = list(dict.fromkeys(t for t in tags if t))
            self._conn.execute(
                """
                UPDATE evermarks
                SET tags = ?, metadata_json = ?,
                    updated_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now')
                WHERE token_id = ?
                """,
                (json.dumps(record.metadata.tags), record.metadata.to_json(), token_id),
            )
            self._conn.execute("DELETE FROM evermarks_fts WHERE rowid = ?", (token_id,))
            self._index(token_id, record.metadata)
            self._conn.commit()
            return self.get_evermark(token_id)

    # ------------------------------------------------------------------
    # FTS5 / BM25 search
    # ------------------------------------------------------------------

    def search(
        self, query: str, user_id: int | None = None, limit: int = 5
    ) -> list[EvermarkRecord]:
        """BM25 full-text search over title, description, author and tags.

        Results are sorted best-first; when *user_id* is given only that
        user's records are considered.
        """
        # FTS5 MATCH rejects punctuation like commas as syntax errors.
        fts_query = " ".join(re.sub(r"[^\w\s]", " ", query).split())
        if not fts_query:
            return []
        sql = """
            SELECT e.token_id FROM evermarks_fts f
            JOIN evermarks e ON e.token_id = f.rowid
            WHERE evermarks_fts MATCH ?
        """
        params: list = [fts_query]
        if user_id is not None:
            sql += " AND e.user_id = ?"
            params.append(user_id)
        sql += " ORDER BY bm25(evermarks_fts) LIMIT ?"
        params.append(limit)

        results: list[EvermarkRecord] = []
        for row in self._conn.execute(sql, params).fetchall():
            record = self.get_evermark(row["token_id"])
            if record is not None:
                results.append(record)
        return results

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _index(self, token_id: int, metadata: ContentMetadata) -> None:
        self._conn.execute(
            """
            INSERT INTO evermarks_fts (rowid, title, description, author, tags)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                token_id,
                metadata.title,
                metadata.description or "",
                metadata.author or "",
                " ".join(metadata.tags),
            ),
        )

    def _set_status(
        self,
        token_id: int,
        status: ProcessingStatus,
        *,
        ipfs_hash: str | None = None,
        error: str | None = None,
    ) -> None:
        with self._lock:
            self._conn.execute(
                """
                UPDATE evermarks
                SET processing_status = ?,
                    ipfs_hash = COALESCE(?, ipfs_hash),
                    processing_error = ?,
                    updated_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now')
                WHERE token_id = ?
                """,
                (status.value, ipfs_hash, error, token_id),
            )
            self._conn.commit()


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------

def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        fid=row["fid"],
        username=row["username"],
        created_at=row["created_at"],
    )


def _row_to_record(row: sqlite3.Row) -> EvermarkRecord:
    return EvermarkRecord(
        token_id=row["token_id"],
        source_url=row["source_url"],
        metadata=ContentMetadata.from_json(row["metadata_json"]),
        processing_status=ProcessingStatus(row["processing_status"]),
        processing_error=row["processing_error"],
        ipfs_hash=row["ipfs_hash"],
        arweave_ref=row["arweave_ref"],
        owner_user_id=row["user_id"],
        mint_tx_hash=row["mint_tx_hash"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
