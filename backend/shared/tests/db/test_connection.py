"""Tests for Database connection and schema."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from shared.db.connection import Database
from shared.exceptions import StorageError

if TYPE_CHECKING:
    from pathlib import Path


def _table_names(db: Database) -> list[str]:
    rows = db.connection.execute("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name").fetchall()
    return [r[0] for r in rows]


class TestConnect:
    def test_creates_schema_and_connects(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        db.connect()

        assert "records" in _table_names(db)
        assert db.is_connected is True
        db.close()

    def test_creates_index_hash_index(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        db.connect()

        indexes = db.connection.execute("SELECT name FROM sqlite_master WHERE type='index'").fetchall()
        assert ("idx_records_index_hash",) in indexes
        db.close()

    def test_reconnect_after_close(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        db.connect()
        db.close()
        db.connect()

        assert "records" in _table_names(db)
        db.close()

    def test_in_memory_database(self) -> None:
        db = Database(":memory:")
        db.connect()

        assert "records" in _table_names(db)
        db.close()

    def test_connection_raises_when_disconnected(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        with pytest.raises(StorageError, match="not connected"):
            _ = db.connection

    def test_connection_raises_after_close(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        db.connect()
        db.close()

        assert db.is_connected is False
        with pytest.raises(StorageError, match="not connected"):
            _ = db.connection

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "nested" / "dir" / "test.db")
        db.connect()
        assert db.connection is not None
        db.close()

    def test_unopenable_path_raises_storage_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("")
        db = Database(blocker / "test.db")

        with pytest.raises(StorageError, match="Failed to open database"):
            db.connect()
        assert db.is_connected is False


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions only")
class TestPermissions:
    def test_db_file_has_restricted_permissions(self, tmp_path: Path) -> None:
        db_path = tmp_path / "test.db"
        db = Database(db_path)
        db.connect()

        mode = db_path.stat().st_mode & 0o777
        assert mode == 0o600
        db.close()

    def test_harden_permissions_warns_on_failure(self, tmp_path: Path) -> None:
        db_path = tmp_path / "test.db"
        db = Database(db_path)
        with patch("pathlib.Path.chmod", side_effect=OSError("permission denied")):
            db.connect()
        assert db.connection is not None
        db.close()
