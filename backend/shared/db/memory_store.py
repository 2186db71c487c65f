"""In-memory record store for ephemeral sessions and tests."""

import copy
from typing import Any

from shared.dal.record_store import INDEX_HASH, RecordStore
from shared.exceptions import StorageError


class InMemoryRecordStore(RecordStore):
    """Dict-backed RecordStore. Documents are deep-copied on the way in and out."""

    def __init__(self) -> None:
        # collection -> key -> (index_value, document)
        self._collections: dict[str, dict[str, tuple[str | None, dict[str, Any]]]] = {}

    async def get(self, collection: str, key: str) -> dict[str, Any] | None:
        entry = self._collections.get(collection, {}).get(key)
        return copy.deepcopy(entry[1]) if entry else None

    async def put(
        self,
        collection: str,
        key: str,
        document: dict[str, Any],
        index_value: str | None = None,
    ) -> None:
        self._collections.setdefault(collection, {})[key] = (index_value, copy.deepcopy(document))

    async def delete(self, collection: str, key: str) -> None:
        self._collections.get(collection, {}).pop(key, None)

    async def clear(self, collection: str) -> None:
        self._collections.pop(collection, None)

    async def get_by_index(self, collection: str, index_name: str, index_value: str) -> dict[str, Any] | None:
        if index_name != INDEX_HASH:
            msg = f"Unknown index {index_name!r} on collection {collection!r}"
            raise StorageError(msg)
        entries = self._collections.get(collection, {})
        for key in sorted(entries):
            value, document = entries[key]
            if value == index_value:
                return copy.deepcopy(document)
        return None

    async def list_keys(self, collection: str) -> list[str]:
        return sorted(self._collections.get(collection, {}))
