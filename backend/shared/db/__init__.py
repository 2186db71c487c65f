"""Local storage layer: SQLite connection management and record store implementations."""

from shared.db.connection import Database
from shared.db.memory_store import InMemoryRecordStore
from shared.db.record_store import SqliteRecordStore

__all__ = [
    "Database",
    "InMemoryRecordStore",
    "SqliteRecordStore",
]
