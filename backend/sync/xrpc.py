"""AT Protocol repository client over XRPC.

Talks to the player's personal data server with an already-issued access
token. Obtaining and refreshing that token is the caller's concern.
"""

from __future__ import annotations

import contextlib
from collections.abc import Awaitable, Callable
from http import HTTPStatus
from typing import Any

import httpx
import structlog

from shared.exceptions import RecordNotFoundError, RemoteCallError
from sync.remote import RemoteRepository

logger = structlog.get_logger()

_GET_RECORD = "com.atproto.repo.getRecord"
_CREATE_RECORD = "com.atproto.repo.createRecord"
_PUT_RECORD = "com.atproto.repo.putRecord"

_NOT_FOUND_ERRORS = {"RecordNotFound"}


class XrpcRepositoryClient(RemoteRepository):
    def __init__(
        self,
        pds_url: str,
        did: str,
        access_token: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._pds_url = pds_url.rstrip("/")
        self._did = did
        self._access_token = access_token
        self._timeout = timeout
        self._transport = transport

    @property
    def identity(self) -> str:
        return self._did

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._pds_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={"Authorization": f"Bearer {self._access_token}"},
        )

    async def _call(
        self,
        method: str,
        nsid: str,
        *,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        async with self._client() as client:
            try:
                response = await client.request(method, f"/xrpc/{nsid}", params=params, json=body)
            except httpx.RequestError as e:
                raise RemoteCallError(f"{nsid} failed: {e}") from e

        if response.status_code == HTTPStatus.OK:
            try:
                return response.json()
            except ValueError as e:
                raise RemoteCallError(f"{nsid} returned invalid JSON") from e

        error_name = ""
        with contextlib.suppress(ValueError):
            payload = response.json()
            if isinstance(payload, dict):
                error_name = str(payload.get("error", ""))
        if error_name in _NOT_FOUND_ERRORS:
            raise RecordNotFoundError(f"{nsid}: {error_name}")
        raise RemoteCallError(f"{nsid} returned {response.status_code}: {error_name or response.text}")

    async def get_record(self, collection: str, rkey: str) -> dict[str, Any]:
        data = await self._call(
            "GET",
            _GET_RECORD,
            params={"repo": self._did, "collection": collection, "rkey": rkey},
        )
        value = data.get("value")
        if not isinstance(value, dict):
            raise RemoteCallError(f"{_GET_RECORD} response has no record value")
        return value

    def _write_body(self, collection: str, rkey: str, record: dict[str, Any]) -> dict[str, Any]:
        return {
            "repo": self._did,
            "collection": collection,
            "rkey": rkey,
            "record": {"$type": collection, **record},
        }

    async def create_record(self, collection: str, rkey: str, record: dict[str, Any]) -> None:
        await self._call("POST", _CREATE_RECORD, body=self._write_body(collection, rkey, record))
        logger.debug("created remote record", collection=collection, rkey=rkey)

    async def put_record(self, collection: str, rkey: str, record: dict[str, Any]) -> None:
        await self._call("POST", _PUT_RECORD, body=self._write_body(collection, rkey, record))
        logger.debug("put remote record", collection=collection, rkey=rkey)


def xrpc_remote_factory(
    pds_url: str,
    token_provider: Callable[[str], Awaitable[str | None]],
    *,
    timeout: float = 10.0,
) -> Callable[[str], Awaitable[RemoteRepository]]:
    """Build a worker remote factory from a DID -> access token lookup.

    A missing token means the session cannot be restored, reported as
    RemoteCallError so the caller falls back to local-only.
    """

    async def factory(did: str) -> RemoteRepository:
        token = await token_provider(did)
        if not token:
            raise RemoteCallError(f"no session for {did}")
        return XrpcRepositoryClient(pds_url, did, token, timeout=timeout)

    return factory
