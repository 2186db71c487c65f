"""Keep local and remote copies of player records consistent.

Profile and stats live under the fixed key ``self``; each completed game
gets its own TID key. Every reconciliation reads the local copy, consults
the remote repository when one is configured, and writes the outcome back
locally. Remote failures never fail a call: the record is kept locally and
marked unsynced. Local storage failures always do.

Hashes are stamped in two phases. A record is pushed with
``synced_with_at_repo=True`` and a hash over that state; if the push fails
the flag is flipped and the hash recomputed before the local write, so the
stored hash always matches the stored payload.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from shared.dal.models import SELF_KEY, GameRecord, LocalGameIndexEntry, SyncedRecord, utc_now
from shared.dal.record_store import CURRENT_GAME_STORE, INDEX_HASH
from shared.exceptions import MissingStatsError, RecordNotFoundError, RemoteCallError, StorageError, SyncError
from shared.hashing import index_hash, record_hash
from shared.record_keys import RecordKeyAllocator
from sync.conflict import ConflictPolicy, RemoteWinsPolicy
from sync.kinds import GAME, PROFILE, STATS, RecordKind
from sync.stats import apply_completed_game

if TYPE_CHECKING:
    from shared.dal.models import PlayerProfile, PlayerStats
    from shared.dal.record_store import RecordStore
    from sync.remote import RemoteRepository
    from sync.rules import RuleEngine

logger = structlog.get_logger()


class CompletionOutcome(StrEnum):
    SUCCESS = "success"
    ALREADY_SYNCED = "already_synced"


class CollectionLocks:
    """One asyncio.Lock per local collection, shared by every engine on a loop."""

    def __init__(self) -> None:
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def __getitem__(self, collection: str) -> asyncio.Lock:
        return self._locks[collection]


def stamp(record: SyncedRecord, *, synced: bool) -> SyncedRecord:
    """Set the sync flag, then hash the record in that final state."""
    status = record.sync_status.model_copy(update={"synced_with_at_repo": synced, "hash": ""})
    flagged = record.model_copy(update={"sync_status": status})
    return flagged.model_copy(
        update={"sync_status": status.model_copy(update={"hash": record_hash(flagged)})},
    )


def touch(record: SyncedRecord) -> SyncedRecord:
    status = record.sync_status.model_copy(update={"updated_at": utc_now()})
    return record.model_copy(update={"sync_status": status})


def to_document(record: SyncedRecord | LocalGameIndexEntry) -> dict[str, Any]:
    return record.model_dump(mode="json", by_alias=True)


class SyncEngine:
    """Record synchronization for one player.

    ``remote`` is None for anonymous play or when the player's session could
    not be restored; the engine then works purely on the local store.
    Callers sharing a store should share ``locks`` so that at most one
    read-modify-write per collection is in flight.
    """

    def __init__(
        self,
        store: RecordStore,
        rules: RuleEngine,
        remote: RemoteRepository | None = None,
        *,
        conflict_policy: ConflictPolicy | None = None,
        key_allocator: RecordKeyAllocator | None = None,
        locks: CollectionLocks | None = None,
    ) -> None:
        self._store = store
        self._rules = rules
        self._remote = remote
        self._conflict_policy = conflict_policy or RemoteWinsPolicy()
        self._key_allocator = key_allocator or RecordKeyAllocator()
        self._locks = locks or CollectionLocks()

    @property
    def can_remote_sync(self) -> bool:
        return self._remote is not None

    # Local store helpers

    async def _read_local(self, kind: RecordKind, key: str = SELF_KEY) -> SyncedRecord | None:
        document = await self._store.get(kind.local_collection, key)
        if document is None:
            return None
        try:
            return kind.model.model_validate(document)
        except ValidationError as exc:
            msg = f"Corrupt local {kind.name} record under key {key!r}"
            raise StorageError(msg) from exc

    async def _write_local(self, kind: RecordKind, record: SyncedRecord, key: str = SELF_KEY) -> None:
        await self._store.put(kind.local_collection, key, to_document(record))

    @staticmethod
    def _parse_game_entry(document: dict[str, Any] | None) -> LocalGameIndexEntry | None:
        if document is None:
            return None
        try:
            return LocalGameIndexEntry.model_validate(document)
        except ValidationError as exc:
            raise StorageError("Corrupt local game entry") from exc

    async def _write_game_entry(self, entry: LocalGameIndexEntry) -> None:
        await self._store.put(GAME.local_collection, entry.rkey, to_document(entry), index_value=entry.index_hash)

    # Remote helpers

    async def _fetch_remote(self, kind: RecordKind, key: str = SELF_KEY) -> SyncedRecord | None:
        """Return the remote record, or None when it is absent or unreachable."""
        if self._remote is None:
            return None
        try:
            value = await self._remote.get_record(kind.remote_collection, key)
        except RecordNotFoundError:
            logger.info("no remote record", kind=kind.name, key=key)
            return None
        except RemoteCallError as exc:
            logger.warning("remote fetch failed, treating as missing", kind=kind.name, key=key, error=str(exc))
            return None
        try:
            return kind.model.model_validate(value)
        except ValidationError as exc:
            logger.warning("remote record is malformed, treating as missing", kind=kind.name, key=key, error=str(exc))
            return None

    async def _push(self, kind: RecordKind, key: str, record: SyncedRecord, *, create: bool) -> bool:
        if self._remote is None:
            return False
        call = self._remote.create_record if create else self._remote.put_record
        try:
            await call(kind.remote_collection, key, to_document(record))
        except RemoteCallError as exc:
            logger.error("remote push failed, keeping local copy unsynced", kind=kind.name, key=key, error=str(exc))
            return False
        return True

    async def _publish(self, kind: RecordKind, key: str, record: SyncedRecord, *, create: bool) -> SyncedRecord:
        """Push a record best-effort and return it stamped with the push outcome."""
        if self._remote is None:
            return stamp(record, synced=False)
        candidate = stamp(record, synced=True)
        if await self._push(kind, key, candidate, create=create):
            return candidate
        return stamp(candidate, synced=False)

    # Profile and stats reconciliation

    async def sync(self, kind: RecordKind) -> None:
        if kind.default is None:
            msg = f"{kind.name} records are not synced under a fixed key"
            raise ValueError(msg)
        async with self._locks[kind.local_collection]:
            await self._sync_unlocked(kind)

    async def _sync_unlocked(self, kind: RecordKind) -> None:
        local = await self._read_local(kind)

        if self._remote is None:
            if local is None:
                await self._write_local(kind, stamp(kind.default(), synced=False))
                logger.info("created local-only record", kind=kind.name)
            return

        remote = await self._fetch_remote(kind)
        if remote is None:
            # Absent or unreachable remote: start over from a fresh default, replacing any local copy.
            published = await self._publish(kind, SELF_KEY, kind.default(), create=True)
            await self._write_local(kind, published)
            logger.info(
                "materialized default record",
                kind=kind.name,
                replaced_local=local is not None,
                synced=published.sync_status.synced_with_at_repo,
            )
            return

        if local is not None and local.sync_status.hash == remote.sync_status.hash:
            return

        resolved = self._conflict_policy.resolve(local, remote)
        await self._write_local(kind, resolved)
        logger.info("local record replaced from remote", kind=kind.name, had_local=local is not None)

    async def sync_profile(self) -> None:
        await self.sync(PROFILE)

    async def sync_stats(self) -> None:
        await self.sync(STATS)

    async def sync_all(self) -> None:
        """Reconcile profile then stats, as done right after login."""
        await self.sync_profile()
        await self.sync_stats()

    async def get_local_profile(self) -> PlayerProfile | None:
        return await self._read_local(PROFILE)

    async def get_local_stats(self) -> PlayerStats | None:
        return await self._read_local(STATS)

    # Completed games

    async def get_local_game(self, rkey: str) -> LocalGameIndexEntry | None:
        return self._parse_game_entry(await self._store.get(GAME.local_collection, rkey))

    async def find_local_game(self, seeded_recording: str) -> LocalGameIndexEntry | None:
        document = await self._store.get_by_index(GAME.local_collection, INDEX_HASH, index_hash(seeded_recording))
        return self._parse_game_entry(document)

    async def list_local_games(self, limit: int | None = None) -> list[LocalGameIndexEntry]:
        """Return stored games newest first (TID keys sort chronologically)."""
        keys = sorted(await self._store.list_keys(GAME.local_collection), reverse=True)
        if limit is not None:
            keys = keys[:limit]
        entries = []
        for key in keys:
            entry = await self.get_local_game(key)
            if entry is not None:
                entries.append(entry)
        return entries

    async def record_completed_game(self, seeded_recording: str) -> CompletionOutcome:
        """Fold a finished game into the stats and store it, at most once.

        Raises ParseError or ReconstructionError before touching any state,
        MissingStatsError if no stats record exists after the stats sync, and
        StorageError if a local write fails. A local write that already
        happened is not rolled back.
        """
        async with self._locks[GAME.local_collection], self._locks[STATS.local_collection]:
            recording = self._rules.parse(seeded_recording)
            final_state = self._rules.reconstruct_final_state(recording)
            history = self._rules.reconstruct_full_history(recording)

            game_hash = index_hash(seeded_recording)
            existing = await self.find_local_game(seeded_recording)
            if existing is not None:
                if not existing.record.sync_status.synced_with_at_repo and self._remote is not None:
                    await self._retry_game_push(existing)
                logger.info("game already recorded", rkey=existing.rkey, index_hash=game_hash)
                return CompletionOutcome.ALREADY_SYNCED

            try:
                await self._sync_unlocked(STATS)
            except SyncError:
                logger.exception("stats sync before game completion failed")

            stats = await self._read_local(STATS)
            if stats is None:
                raise MissingStatsError("No local stats after stats sync; cannot record game")

            update = apply_completed_game(stats, final_state, history)
            new_stats = await self._publish(STATS, SELF_KEY, touch(update.stats), create=False)
            await self._write_local(STATS, new_stats)

            rkey = self._key_allocator.next_key()
            game = GameRecord(
                completed=final_state.over,
                won=final_state.won,
                current_score=final_state.score,
                seeded_recording=seeded_recording,
            )
            published_game = await self._publish(GAME, rkey, game, create=True)
            await self._write_game_entry(LocalGameIndexEntry(rkey=rkey, record=published_game, index_hash=game_hash))

            logger.info(
                "recorded completed game",
                rkey=rkey,
                score=update.tally.score,
                peak_tile=update.tally.peak_tile,
                turns_till_2048=update.tally.turns_till_2048,
                games_played=new_stats.games_played,
                game_synced=published_game.sync_status.synced_with_at_repo,
                stats_synced=new_stats.sync_status.synced_with_at_repo,
            )
            return CompletionOutcome.SUCCESS

    async def _retry_game_push(self, entry: LocalGameIndexEntry) -> None:
        """Push a stored but unsynced game again. Stats are not recounted."""
        candidate = stamp(touch(entry.record), synced=True)
        # put is an upsert, so a create that landed without us seeing the reply is harmless
        if not await self._push(GAME, entry.rkey, candidate, create=False):
            return
        await self._write_game_entry(entry.model_copy(update={"record": candidate}))
        logger.info("retried game push succeeded", rkey=entry.rkey)

    # In-progress game slot

    async def save_current_game(self, seeded_recording: str, *, score: int, over: bool, won: bool) -> GameRecord:
        """Overwrite the single in-progress game slot. Never pushed remotely."""
        existing = await self.load_current_game()
        if existing is None:
            current = GameRecord(seeded_recording=seeded_recording, current_score=score, completed=over, won=won)
        else:
            current = existing.model_copy(
                update={
                    "seeded_recording": seeded_recording,
                    "current_score": score,
                    "completed": over,
                    "won": won,
                },
            )
        current = stamp(touch(current), synced=False)
        await self._store.put(CURRENT_GAME_STORE, SELF_KEY, to_document(current))
        return current

    async def load_current_game(self) -> GameRecord | None:
        document = await self._store.get(CURRENT_GAME_STORE, SELF_KEY)
        if document is None:
            return None
        try:
            return GameRecord.model_validate(document)
        except ValidationError:
            logger.warning("discarding unreadable in-progress game")
            return None

    async def clear_current_game(self) -> None:
        await self._store.delete(CURRENT_GAME_STORE, SELF_KEY)
