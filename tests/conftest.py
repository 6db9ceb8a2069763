"""Shared pytest fixtures."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from evermark.content.registry import default_registry
from evermark.db.connection import Database
from evermark.db.repository import Repository
from evermark.db.schema import initialize
from evermark.pipeline import EvermarkService


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".evermark.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def repo(tmp_db):
    return Repository(tmp_db)


@pytest.fixture
def fake_ipfs():
    """Pinata client double that pins everything as QmTestHash."""
    ipfs = MagicMock()
    ipfs.upload_metadata.return_value = "QmTestHash"
    return ipfs


@pytest.fixture
def service(repo, fake_ipfs):
    """Offline pipeline: no Neynar key, no DOI lookups, fake IPFS."""
    return EvermarkService(repo, default_registry(None, lookup=False), ipfs=fake_ipfs)
