from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter

# Identities are DIDs, e.g. did:plc:abc123
_IDENTITY_FIELD = Field(default=None, min_length=8, max_length=2048, pattern=r"^did:[a-z]+:[a-zA-Z0-9._:%-]+$")


class StorageRequestType(StrEnum):
    GAME_COMPLETED = "game_completed"
    SYNC_PROFILE = "sync_profile"
    SYNC_STATS = "sync_stats"
    GET_LOCAL_STATS = "get_local_stats"
    GET_LOCAL_PROFILE = "get_local_profile"


class ResponseStatus(StrEnum):
    SUCCESS = "success"
    ALREADY_SYNCED = "already_synced"
    ERROR = "error"


class ErrorKind(StrEnum):
    SYNC = "sync"
    PARSE = "parse"
    RECONSTRUCTION = "reconstruction"
    STORAGE = "storage"
    MISSING_STATS = "missing_stats"
    REMOTE_CALL = "remote_call"
    NOT_FOUND = "not_found"
    CHANNEL_CLOSED = "channel_closed"
    INVALID_REQUEST = "invalid_request"
    INTERNAL = "internal"


class GameCompletedRequest(BaseModel):
    type: Literal[StorageRequestType.GAME_COMPLETED] = StorageRequestType.GAME_COMPLETED
    seeded_recording: str = Field(min_length=1)
    identity: str | None = _IDENTITY_FIELD


class SyncProfileRequest(BaseModel):
    type: Literal[StorageRequestType.SYNC_PROFILE] = StorageRequestType.SYNC_PROFILE
    identity: str | None = _IDENTITY_FIELD


class SyncStatsRequest(BaseModel):
    type: Literal[StorageRequestType.SYNC_STATS] = StorageRequestType.SYNC_STATS
    identity: str | None = _IDENTITY_FIELD


class GetLocalStatsRequest(BaseModel):
    type: Literal[StorageRequestType.GET_LOCAL_STATS] = StorageRequestType.GET_LOCAL_STATS


class GetLocalProfileRequest(BaseModel):
    type: Literal[StorageRequestType.GET_LOCAL_PROFILE] = StorageRequestType.GET_LOCAL_PROFILE


StorageRequest = Annotated[
    GameCompletedRequest | SyncProfileRequest | SyncStatsRequest | GetLocalStatsRequest | GetLocalProfileRequest,
    Field(discriminator="type"),
]

_request_adapter = TypeAdapter(StorageRequest)


def parse_storage_request(data: dict[str, Any]) -> StorageRequest:
    """Parse a raw dict into a typed StorageRequest."""
    return _request_adapter.validate_python(data)


class ErrorInfo(BaseModel):
    kind: ErrorKind
    message: str


class StorageResponse(BaseModel):
    """Single reply to a single request."""

    status: ResponseStatus
    error: ErrorInfo | None = None
    record: dict[str, Any] | None = None  # get_local_* payload, serialized by alias

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "StorageResponse":
        return cls(status=ResponseStatus.ERROR, error=ErrorInfo(kind=kind, message=message))
