"""Dispatch decoded storage requests to a SyncEngine.

Runs entirely inside the worker's event loop. Every failure is turned into
an error response here so the interactive side always gets exactly one
reply per request.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from shared.exceptions import RemoteCallError, SyncError
from sync.engine import CollectionLocks, CompletionOutcome, SyncEngine, to_document
from worker.encoder import DecodeError, decode, encode
from worker.types import (
    ErrorKind,
    GameCompletedRequest,
    GetLocalProfileRequest,
    GetLocalStatsRequest,
    ResponseStatus,
    StorageResponse,
    SyncProfileRequest,
    SyncStatsRequest,
    parse_storage_request,
)

if TYPE_CHECKING:
    from shared.dal.record_store import RecordStore
    from shared.record_keys import RecordKeyAllocator
    from sync.remote import RemoteRepository
    from sync.rules import RuleEngine
    from worker.types import StorageRequest

logger = structlog.get_logger()

# Restores the remote repository session for a DID. Raises RemoteCallError
# when the session cannot be restored.
RemoteFactory = Callable[[str], Awaitable["RemoteRepository"]]

_OUTCOME_STATUS = {
    CompletionOutcome.SUCCESS: ResponseStatus.SUCCESS,
    CompletionOutcome.ALREADY_SYNCED: ResponseStatus.ALREADY_SYNCED,
}


class StorageRequestHandler:
    """
    Turns request bytes into response bytes.

    One engine is built per request so each request sees the remote session
    for its own identity. All engines share one set of collection locks.
    """

    def __init__(
        self,
        store: RecordStore,
        rules: RuleEngine,
        *,
        remote_factory: RemoteFactory | None = None,
        key_allocator: RecordKeyAllocator | None = None,
    ) -> None:
        self._store = store
        self._rules = rules
        self._remote_factory = remote_factory
        self._key_allocator = key_allocator
        self._locks = CollectionLocks()

    async def _resolve_remote(self, identity: str | None) -> RemoteRepository | None:
        if identity is None or self._remote_factory is None:
            return None
        try:
            return await self._remote_factory(identity)
        except RemoteCallError as exc:
            logger.warning("could not restore remote session, continuing local-only", identity=identity, error=str(exc))
            return None

    async def _engine_for(self, identity: str | None) -> SyncEngine:
        return SyncEngine(
            self._store,
            self._rules,
            await self._resolve_remote(identity),
            key_allocator=self._key_allocator,
            locks=self._locks,
        )

    async def handle(self, payload: bytes) -> bytes:
        try:
            request = parse_storage_request(decode(payload))
        except (DecodeError, ValidationError) as exc:
            logger.warning("invalid storage request", error=str(exc))
            response = StorageResponse.failure(ErrorKind.INVALID_REQUEST, str(exc))
        else:
            response = await self.dispatch(request)
        return encode(response.model_dump(mode="json"))

    async def dispatch(self, request: StorageRequest) -> StorageResponse:
        try:
            return await self._dispatch(request)
        except SyncError as exc:
            logger.error("storage request failed", request_type=request.type, kind=exc.kind, error=str(exc))
            return StorageResponse.failure(ErrorKind(exc.kind), str(exc))
        except Exception as exc:
            logger.exception("unexpected error handling storage request", request_type=request.type)
            return StorageResponse.failure(ErrorKind.INTERNAL, str(exc))

    async def _dispatch(self, request: StorageRequest) -> StorageResponse:
        if isinstance(request, GameCompletedRequest):
            engine = await self._engine_for(request.identity)
            outcome = await engine.record_completed_game(request.seeded_recording)
            return StorageResponse(status=_OUTCOME_STATUS[outcome])
        if isinstance(request, SyncProfileRequest):
            await (await self._engine_for(request.identity)).sync_profile()
            return StorageResponse(status=ResponseStatus.SUCCESS)
        if isinstance(request, SyncStatsRequest):
            await (await self._engine_for(request.identity)).sync_stats()
            return StorageResponse(status=ResponseStatus.SUCCESS)
        if isinstance(request, GetLocalStatsRequest):
            record = await (await self._engine_for(None)).get_local_stats()
        elif isinstance(request, GetLocalProfileRequest):
            record = await (await self._engine_for(None)).get_local_profile()
        else:  # pragma: no cover
            msg = f"unhandled request type {request.type}"
            raise TypeError(msg)
        return StorageResponse(
            status=ResponseStatus.SUCCESS,
            record=to_document(record) if record is not None else None,
        )
