"""Persistence models for player records.

Field names follow the remote lexicon when serialized by alias
(``createdAt``, ``syncStatus``, ...). Either spelling is accepted on input.
"""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SELF_KEY = "self"


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class SyncStatus(_Record):
    """Sync metadata embedded in every synced record."""

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    hash: str = ""  # content hash of the record with this field blanked out
    synced_with_at_repo: bool = False


class PlayerProfile(_Record):
    created_at: datetime = Field(default_factory=utc_now)
    solo_play: bool = False
    sync_status: SyncStatus = Field(default_factory=SyncStatus)


class PlayerStats(_Record):
    """Aggregate statistics across every completed game of one player."""

    created_at: datetime = Field(default_factory=utc_now)
    games_played: int = Field(default=0, ge=0)
    total_score: int = Field(default=0, ge=0)
    average_score: int = Field(default=0, ge=0)  # total_score // games_played
    highest_score: int = Field(default=0, ge=0)
    highest_number_block: int = Field(default=0, ge=0)
    times_twenty_forty_eight_been_found: int = Field(default=0, ge=0)
    least_moves_to_find_twenty_forty_eight: int = Field(default=0, ge=0)  # 0 until a 2048 is found
    sync_status: SyncStatus = Field(default_factory=SyncStatus)


class GameRecord(_Record):
    """A single game. Completed games are immutable once stored."""

    completed: bool = False
    won: bool = False
    created_at: datetime = Field(default_factory=utc_now)
    current_score: int = Field(default=0, ge=0)
    seeded_recording: str
    sync_status: SyncStatus = Field(default_factory=SyncStatus)


class LocalGameIndexEntry(BaseModel, frozen=True):
    """Local wrapper pairing a game record with its record key and dedup hash."""

    rkey: str
    record: GameRecord
    index_hash: str  # content hash of record.seeded_recording


SyncedRecord = PlayerProfile | PlayerStats | GameRecord
