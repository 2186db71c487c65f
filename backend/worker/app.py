"""Wire a StorageWorker from settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from shared.db.connection import Database
from shared.db.record_store import SqliteRecordStore
from shared.logging import setup_logging
from shared.settings import SyncSettings
from worker.handler import StorageRequestHandler
from worker.task import StorageTaskClient, StorageWorker

if TYPE_CHECKING:
    from sync.rules import RuleEngine
    from worker.handler import RemoteFactory

logger = structlog.get_logger()


def create_storage_worker(
    rules: RuleEngine,
    *,
    settings: SyncSettings | None = None,
    remote_factory: RemoteFactory | None = None,
    configure_logging: bool = False,
) -> tuple[StorageWorker, StorageTaskClient]:
    """Build an unstarted worker backed by the SQLite database from settings.

    The database is opened and closed on the worker thread. Without a
    remote_factory every request runs local-only.
    """
    if settings is None:
        settings = SyncSettings()
    if configure_logging:
        setup_logging(log_dir=settings.log_dir)

    db = Database(settings.database_path)
    handler = StorageRequestHandler(SqliteRecordStore(db), rules, remote_factory=remote_factory)

    async def _open_db() -> None:
        db.connect()
        logger.info("local record database ready", path=db.path, remote_enabled=remote_factory is not None)

    async def _close_db() -> None:
        db.close()

    worker = StorageWorker(handler, on_start=_open_db, on_stop=_close_db)
    return worker, StorageTaskClient(worker)
