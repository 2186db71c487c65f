"""Per-record-kind wiring between the local store and the remote repository."""

from collections.abc import Callable
from dataclasses import dataclass

from shared.dal.models import GameRecord, PlayerProfile, PlayerStats, SyncedRecord
from shared.dal.record_store import GAME_STORE, PROFILE_STORE, STATS_STORE


@dataclass(frozen=True)
class RecordKind:
    name: str
    local_collection: str
    remote_collection: str  # lexicon NSID
    model: type[SyncedRecord]
    default: Callable[[], SyncedRecord] | None = None  # None: no default (games)


PROFILE = RecordKind(
    name="profile",
    local_collection=PROFILE_STORE,
    remote_collection="blue.2048.player.profile",
    model=PlayerProfile,
    default=PlayerProfile,
)

STATS = RecordKind(
    name="stats",
    local_collection=STATS_STORE,
    remote_collection="blue.2048.player.stats",
    model=PlayerStats,
    default=PlayerStats,
)

GAME = RecordKind(
    name="game",
    local_collection=GAME_STORE,
    remote_collection="blue.2048.game",
    model=GameRecord,
)
