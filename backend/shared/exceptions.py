"""Typed exceptions for record synchronization.

Every failure the engine surfaces is a subclass of SyncError carrying a
stable ``kind`` string. The worker boundary catches SyncError and converts
it into an error response; anything else is treated as an internal fault.
"""


class SyncError(Exception):
    """Base exception for synchronization failures."""

    kind = "sync"


class ParseError(SyncError):
    """The seeded recording could not be parsed. Not retryable."""

    kind = "parse"


class ReconstructionError(SyncError):
    """The rule engine could not replay the recording. Not retryable."""

    kind = "reconstruction"


class StorageError(SyncError):
    """Local persistence failed. Fatal to the current operation."""

    kind = "storage"


class MissingStatsError(SyncError):
    """No local stats record exists after a stats sync should have created one."""

    kind = "missing_stats"


class RemoteCallError(SyncError):
    """A call to the remote repository failed (network, auth, server).

    Swallowed by the engine: the affected record is kept locally as unsynced.
    """

    kind = "remote_call"


class RecordNotFoundError(RemoteCallError):
    """The remote repository has no record under the requested key."""

    kind = "not_found"


class ChannelClosedError(SyncError):
    """The background worker stopped before replying."""

    kind = "channel_closed"
