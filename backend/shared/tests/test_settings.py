"""Tests for SyncSettings configuration."""

import pytest
from pydantic import ValidationError

from shared.settings import SyncSettings


class TestSyncSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("SYNC_DATABASE_PATH", raising=False)
        monkeypatch.delenv("SYNC_PDS_URL", raising=False)
        settings = SyncSettings()
        assert settings.database_path == "backend/data/records.db"
        assert settings.pds_url == "https://bsky.social"
        assert settings.request_timeout_seconds == 10.0
        assert settings.log_dir is None

    def test_reads_from_env(self, monkeypatch):
        monkeypatch.setenv("SYNC_DATABASE_PATH", "custom/records.db")
        monkeypatch.setenv("SYNC_REQUEST_TIMEOUT_SECONDS", "2.5")
        settings = SyncSettings()
        assert settings.database_path == "custom/records.db"
        assert settings.request_timeout_seconds == 2.5

    def test_pds_url_trailing_slash_is_stripped(self, monkeypatch):
        monkeypatch.setenv("SYNC_PDS_URL", "https://pds.example.com/")
        assert SyncSettings().pds_url == "https://pds.example.com"

    def test_pds_url_must_be_http(self, monkeypatch):
        monkeypatch.setenv("SYNC_PDS_URL", "ftp://pds.example.com")
        with pytest.raises(ValidationError, match="http"):
            SyncSettings()

    def test_timeout_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("SYNC_REQUEST_TIMEOUT_SECONDS", "0")
        with pytest.raises(ValidationError, match="request_timeout_seconds"):
            SyncSettings()

    def test_empty_database_path_rejected(self, monkeypatch):
        monkeypatch.setenv("SYNC_DATABASE_PATH", "")
        with pytest.raises(ValidationError, match="database_path"):
            SyncSettings()
