"""Tests for DAL persistence models."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from shared.dal.models import GameRecord, LocalGameIndexEntry, PlayerProfile, PlayerStats, SyncStatus


class TestAliases:
    def test_dump_by_alias_uses_lexicon_names(self):
        stats = PlayerStats(times_twenty_forty_eight_been_found=2)
        data = stats.model_dump(mode="json", by_alias=True)

        assert data["timesTwentyFortyEightBeenFound"] == 2
        assert data["leastMovesToFindTwentyFortyEight"] == 0
        assert set(data["syncStatus"]) == {"createdAt", "updatedAt", "hash", "syncedWithAtRepo"}

    def test_accepts_both_spellings(self):
        by_alias = PlayerProfile.model_validate({"soloPlay": True})
        by_name = PlayerProfile.model_validate({"solo_play": True})

        assert by_alias.solo_play is True
        assert by_name.solo_play is True

    def test_ignores_type_marker_from_remote(self):
        profile = PlayerProfile.model_validate({"$type": "blue.2048.player.profile", "soloPlay": False})

        assert profile.solo_play is False


class TestValidation:
    def test_counters_cannot_be_negative(self):
        with pytest.raises(ValidationError):
            PlayerStats(games_played=-1)

    def test_game_requires_recording(self):
        with pytest.raises(ValidationError, match="seeded_recording|seededRecording"):
            GameRecord.model_validate({"currentScore": 10})

    def test_records_are_frozen(self):
        with pytest.raises(ValidationError):
            PlayerStats().games_played = 3  # type: ignore[misc]


class TestDefaults:
    def test_sync_status_defaults(self):
        status = SyncStatus()

        assert status.hash == ""
        assert status.synced_with_at_repo is False
        assert status.created_at.tzinfo is not None

    def test_serialization_roundtrip(self):
        game = GameRecord(
            completed=True,
            won=False,
            created_at=datetime(2025, 1, 1, tzinfo=UTC),
            current_score=2048,
            seeded_recording="seed:LLRRUD",
        )
        entry = LocalGameIndexEntry(rkey="3kabc", record=game, index_hash="00ff00ff00ff00ff")

        restored = LocalGameIndexEntry.model_validate(entry.model_dump(mode="json", by_alias=True))
        assert restored == entry
