"""Data access layer: record store interface and shared persistence models."""

from shared.dal.models import (
    SELF_KEY,
    GameRecord,
    LocalGameIndexEntry,
    PlayerProfile,
    PlayerStats,
    SyncedRecord,
    SyncStatus,
)
from shared.dal.record_store import (
    CURRENT_GAME_STORE,
    GAME_STORE,
    INDEX_HASH,
    PROFILE_STORE,
    STATS_STORE,
    RecordStore,
)

__all__ = [
    "CURRENT_GAME_STORE",
    "GAME_STORE",
    "INDEX_HASH",
    "PROFILE_STORE",
    "SELF_KEY",
    "STATS_STORE",
    "GameRecord",
    "LocalGameIndexEntry",
    "PlayerProfile",
    "PlayerStats",
    "RecordStore",
    "SyncStatus",
    "SyncedRecord",
]
