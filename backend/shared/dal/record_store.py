"""Abstract interface for the on-device record store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

# Collection names in the local store.
GAME_STORE = "games"
CURRENT_GAME_STORE = "current_game"
STATS_STORE = "stats"
PROFILE_STORE = "profile"

# Secondary index on the games collection.
INDEX_HASH = "index_hash"


class RecordStore(ABC):
    """Keyed, named-collection document store.

    Documents are plain JSON-compatible dicts. Implementations raise
    StorageError when the underlying storage fails.
    """

    @abstractmethod
    async def get(self, collection: str, key: str) -> dict[str, Any] | None: ...

    @abstractmethod
    async def put(
        self,
        collection: str,
        key: str,
        document: dict[str, Any],
        index_value: str | None = None,
    ) -> None: ...

    @abstractmethod
    async def delete(self, collection: str, key: str) -> None: ...

    @abstractmethod
    async def clear(self, collection: str) -> None: ...

    @abstractmethod
    async def get_by_index(self, collection: str, index_name: str, index_value: str) -> dict[str, Any] | None: ...

    @abstractmethod
    async def list_keys(self, collection: str) -> list[str]: ...
