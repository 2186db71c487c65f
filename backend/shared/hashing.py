"""Content hashing for divergence detection and completed-game dedup.

Digests are 64-bit BLAKE2b over a canonical JSON rendering (sorted keys,
compact separators), formatted as 16 lowercase hex characters. They are
not meant to resist deliberate collisions.
"""

from __future__ import annotations

import hashlib
import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from shared.dal.models import SyncedRecord

_DIGEST_SIZE = 8


def canonical_json(payload: Any) -> str:
    """Render a JSON-compatible payload independent of dict key order."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _digest(data: str) -> str:
    return hashlib.blake2b(data.encode("utf-8"), digest_size=_DIGEST_SIZE).hexdigest()


def content_hash(payload: Any) -> str:
    """Hash any JSON-compatible payload."""
    return _digest(canonical_json(payload))


def record_hash(record: SyncedRecord) -> str:
    """Hash a synced record's payload with its own hash field excluded."""
    payload = record.model_dump(mode="json", by_alias=True, exclude={"sync_status": {"hash"}})
    return content_hash(payload)


def index_hash(seeded_recording: str) -> str:
    """Dedup key for a completed game: hash of the raw recording string."""
    return _digest(seeded_recording)
