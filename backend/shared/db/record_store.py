"""SQLite-backed record store."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from typing import TYPE_CHECKING, Any

import structlog

from shared.dal.record_store import INDEX_HASH, RecordStore
from shared.exceptions import StorageError

if TYPE_CHECKING:
    from shared.db.connection import Database

logger = structlog.get_logger()


class SqliteRecordStore(RecordStore):
    """SQLite implementation of RecordStore.

    Each document is stored as JSON in the ``records`` table keyed by
    (collection, key). The only secondary index is ``index_hash``. Writes
    are serialized by an asyncio lock and committed one statement at a time.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    def _execute_write(self, sql: str, params: tuple[Any, ...]) -> None:
        conn = self._db.connection
        try:
            conn.execute(sql, params)
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            msg = f"Local write failed: {exc}"
            raise StorageError(msg) from exc

    def _fetch_one(self, sql: str, params: tuple[Any, ...]) -> dict[str, Any] | None:
        try:
            row = self._db.connection.execute(sql, params).fetchone()
        except sqlite3.Error as exc:
            msg = f"Local read failed: {exc}"
            raise StorageError(msg) from exc
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except ValueError as exc:
            msg = f"Stored document is not valid JSON: {exc}"
            raise StorageError(msg) from exc

    async def get(self, collection: str, key: str) -> dict[str, Any] | None:
        return self._fetch_one(
            "SELECT data FROM records WHERE collection = ? AND key = ?",
            (collection, key),
        )

    async def put(
        self,
        collection: str,
        key: str,
        document: dict[str, Any],
        index_value: str | None = None,
    ) -> None:
        """Insert or replace a document. ``index_value`` feeds the index_hash index."""
        async with self._lock:
            self._execute_write(
                "INSERT INTO records (collection, key, index_hash, data) VALUES (?, ?, ?, ?) "
                "ON CONFLICT (collection, key) DO UPDATE SET index_hash = excluded.index_hash, data = excluded.data",
                (collection, key, index_value, json.dumps(document)),
            )

    async def delete(self, collection: str, key: str) -> None:
        async with self._lock:
            self._execute_write("DELETE FROM records WHERE collection = ? AND key = ?", (collection, key))

    async def clear(self, collection: str) -> None:
        async with self._lock:
            self._execute_write("DELETE FROM records WHERE collection = ?", (collection,))
        logger.info("cleared local collection", collection=collection)

    async def get_by_index(self, collection: str, index_name: str, index_value: str) -> dict[str, Any] | None:
        """Return the oldest document whose index matches (lowest key), or None."""
        if index_name != INDEX_HASH:
            msg = f"Unknown index {index_name!r} on collection {collection!r}"
            raise StorageError(msg)
        return self._fetch_one(
            "SELECT data FROM records WHERE collection = ? AND index_hash = ? ORDER BY key LIMIT 1",
            (collection, index_value),
        )

    async def list_keys(self, collection: str) -> list[str]:
        try:
            rows = self._db.connection.execute(
                "SELECT key FROM records WHERE collection = ? ORDER BY key",
                (collection,),
            ).fetchall()
        except sqlite3.Error as exc:
            msg = f"Local read failed: {exc}"
            raise StorageError(msg) from exc
        return [row[0] for row in rows]
