"""
HTTP Key-Value Store: adapter for a remote REST key-value service.

    GET {url}/{key}  -> 200 {"value": ...} | 404
    PUT {url}/{key}  <- {"value": ...}
"""

import logging
from typing import Any

import httpx

from lexis.domain.constants import REQUEST_TIMEOUT
from lexis.domain.errors import StoreError
from lexis.domain.interfaces import KeyValueStore


class HttpKeyValueStore(KeyValueStore):
    def __init__(self, url: str, token: str | None = None, timeout: float = REQUEST_TIMEOUT):
        self.logger = logging.getLogger(__name__)
        self.url = url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, headers=self._headers)
        return self._client

    async def get(self, key: str, default: Any = None) -> Any:
        try:
            resp = await self._get_client().get(f"{self.url}/{key}")
        except httpx.HTTPError as e:
            raise StoreError(f"GET {key} failed: {e}") from e
        if resp.status_code == 404:
            return default
        if resp.status_code != 200:
            raise StoreError(f"GET {key} returned HTTP {resp.status_code}")
        try:
            return resp.json().get("value", default)
        except ValueError as e:
            raise StoreError(f"GET {key} returned invalid JSON: {e}") from e

    async def set(self, key: str, value: Any) -> None:
        try:
            resp = await self._get_client().put(f"{self.url}/{key}", json={"value": value})
        except httpx.HTTPError as e:
            raise StoreError(f"PUT {key} failed: {e}") from e
        if resp.status_code not in (200, 201, 204):
            raise StoreError(f"PUT {key} returned HTTP {resp.status_code}")
        self.logger.debug(f"PUT {key} -> {resp.status_code}")

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
