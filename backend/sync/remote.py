"""Abstract interface for the player's remote personal data repository."""

from abc import ABC, abstractmethod
from typing import Any


class RemoteRepository(ABC):
    """Record access scoped to one authenticated identity.

    get_record raises RecordNotFoundError when the key is absent. All three
    methods raise RemoteCallError for any other failure.
    """

    @property
    @abstractmethod
    def identity(self) -> str:
        """DID of the repository owner."""
        ...

    @abstractmethod
    async def get_record(self, collection: str, rkey: str) -> dict[str, Any]: ...

    @abstractmethod
    async def create_record(self, collection: str, rkey: str, record: dict[str, Any]) -> None: ...

    @abstractmethod
    async def put_record(self, collection: str, rkey: str, record: dict[str, Any]) -> None: ...
