"""Background execution context for storage and network work.

StorageWorker runs its own asyncio event loop on a dedicated thread and
consumes requests from a single inbox, one at a time. The interactive side
talks to it only through StorageTaskClient, which sends MessagePack bytes
and awaits the reply bytes without blocking its own loop.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import threading
from typing import TYPE_CHECKING, Protocol

import structlog

from shared.exceptions import ChannelClosedError
from shared.logging import bind_exec_context
from worker.encoder import decode, encode
from worker.types import (
    GameCompletedRequest,
    GetLocalProfileRequest,
    GetLocalStatsRequest,
    StorageResponse,
    SyncProfileRequest,
    SyncStatsRequest,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from worker.types import StorageRequest

logger = structlog.get_logger()

_STOP = object()

_Envelope = tuple[bytes, "concurrent.futures.Future[bytes]"]


class RequestHandler(Protocol):
    async def handle(self, payload: bytes) -> bytes: ...


class StorageWorker:
    """Owns the background thread, its event loop and the request inbox.

    ``on_start`` and ``on_stop`` run on the worker loop, before the first
    request and after the last one. Use them for resources that must live
    on the worker thread, such as the database connection.
    """

    def __init__(
        self,
        handler: RequestHandler,
        *,
        on_start: Callable[[], Awaitable[None]] | None = None,
        on_stop: Callable[[], Awaitable[None]] | None = None,
        name: str = "storage-worker",
    ) -> None:
        self._handler = handler
        self._on_start = on_start
        self._on_stop = on_stop
        self._name = name
        self._thread: threading.Thread | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._inbox: asyncio.Queue[_Envelope | object] | None = None
        self._ready = threading.Event()
        self._startup_error: BaseException | None = None
        self._state_lock = threading.Lock()
        self._accepting = False

    @property
    def is_running(self) -> bool:
        return self._accepting

    def start(self) -> None:
        """Start the worker thread and wait until it accepts requests."""
        if self._thread is not None:
            raise RuntimeError("StorageWorker already started")
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()
        self._ready.wait()
        if self._startup_error is not None:
            self._thread.join()
            raise self._startup_error

    def stop(self, timeout: float | None = None) -> None:
        """Stop accepting requests, finish the one in flight, and join the thread.

        Requests queued before the stop are still served. Callers that
        submit afterwards get ChannelClosedError.
        """
        with self._state_lock:
            if not self._accepting:
                return
            self._accepting = False
            self._loop.call_soon_threadsafe(self._inbox.put_nowait, _STOP)
        self._thread.join(timeout)

    def __enter__(self) -> StorageWorker:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def submit(self, payload: bytes) -> concurrent.futures.Future[bytes]:
        """Queue one request from any thread. The future resolves to the reply bytes."""
        future: concurrent.futures.Future[bytes] = concurrent.futures.Future()
        with self._state_lock:
            if not self._accepting:
                raise ChannelClosedError("storage worker is not running")
            self._loop.call_soon_threadsafe(self._inbox.put_nowait, (payload, future))
        return future

    def _run(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            loop.run_until_complete(self._main())
        finally:
            loop.close()

    async def _main(self) -> None:
        bind_exec_context("worker")
        self._loop = asyncio.get_running_loop()
        self._inbox = asyncio.Queue()
        try:
            if self._on_start is not None:
                await self._on_start()
        except Exception as exc:
            logger.exception("storage worker failed to start")
            self._startup_error = exc
            self._ready.set()
            return

        with self._state_lock:
            self._accepting = True
        self._ready.set()
        logger.info("storage worker started")

        try:
            await self._serve()
        finally:
            self._fail_pending()
            if self._on_stop is not None:
                await self._on_stop()
            logger.info("storage worker stopped")

    async def _serve(self) -> None:
        while True:
            item = await self._inbox.get()
            if item is _STOP:
                return
            payload, future = item
            if not future.set_running_or_notify_cancel():
                continue
            try:
                reply = await self._handler.handle(payload)
            except Exception as exc:
                future.set_exception(exc)
            else:
                future.set_result(reply)

    def _fail_pending(self) -> None:
        while not self._inbox.empty():
            item = self._inbox.get_nowait()
            if item is _STOP:
                continue
            _, future = item
            if future.set_running_or_notify_cancel():
                future.set_exception(ChannelClosedError("storage worker stopped before replying"))


class StorageTaskClient:
    """Interactive-side handle: one request in, one response out."""

    def __init__(self, worker: StorageWorker) -> None:
        self._worker = worker

    async def run(self, request: StorageRequest) -> StorageResponse:
        """Send a request and await its response.

        Raises ChannelClosedError if the worker is gone or stops before replying.
        """
        future = self._worker.submit(encode(request.model_dump(mode="json")))
        raw = await asyncio.wrap_future(future)
        return StorageResponse.model_validate(decode(raw))

    async def game_completed(self, seeded_recording: str, identity: str | None = None) -> StorageResponse:
        return await self.run(GameCompletedRequest(seeded_recording=seeded_recording, identity=identity))

    async def sync_profile(self, identity: str | None = None) -> StorageResponse:
        return await self.run(SyncProfileRequest(identity=identity))

    async def sync_stats(self, identity: str | None = None) -> StorageResponse:
        return await self.run(SyncStatsRequest(identity=identity))

    async def get_local_stats(self) -> StorageResponse:
        return await self.run(GetLocalStatsRequest())

    async def get_local_profile(self) -> StorageResponse:
        return await self.run(GetLocalProfileRequest())
