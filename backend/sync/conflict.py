"""Resolution of diverged local and remote copies of a record."""

from abc import ABC, abstractmethod

from shared.dal.models import SyncedRecord


class ConflictPolicy(ABC):
    """Decide which record to keep locally when local and remote hashes differ."""

    @abstractmethod
    def resolve(self, local: SyncedRecord | None, remote: SyncedRecord) -> SyncedRecord: ...


class RemoteWinsPolicy(ConflictPolicy):
    """The remote copy replaces the local one verbatim. No field-level merge."""

    def resolve(self, local: SyncedRecord | None, remote: SyncedRecord) -> SyncedRecord:  # noqa: ARG002
        return remote
