"""Evermark database layer."""

from evermark.db.connection import Database
from evermark.db.migrations import MIGRATIONS, run_migrations
from evermark.db.models import EvermarkRecord, ProcessingStatus, User
from evermark.db.repository import Repository
from evermark.db.schema import initialize

__all__ = [
    "Database",
    "EvermarkRecord",
    "MIGRATIONS",
    "ProcessingStatus",
    "Repository",
    "User",
    "initialize",
    "run_migrations",
]
