"""Async Redis record backend.

Records are stored as Redis strings under ``<key_prefix><key>``, in the
same Redis instance as the shared key-value store but under their own
prefix.

Classes
-------
- AsyncRedisBackend  — redis.asyncio-backed record storage
"""
from __future__ import annotations

from typing import Any, Sequence

from kiosk_handoff.kv.redis import make_redis_client
from kiosk_handoff.storage.async_base import AsyncRecordBackend


class AsyncRedisBackend(AsyncRecordBackend):
    """Persists records in Redis.

    Parameters
    ----------
    url:
        Redis connection URL.  Ignored when ``client`` is given.
    key_prefix:
        String prepended to every record key, e.g. ``"session:"``.
    client:
        Optional pre-built ``redis.asyncio.Redis`` client with
        ``decode_responses=True``.
    """

    def __init__(
        self,
        url: str | None = None,
        key_prefix: str = "record:",
        client: Any | None = None,
    ) -> None:
        if client is None:
            if url is None:
                raise ValueError("AsyncRedisBackend needs either a url or a client.")
            client = make_redis_client(url)
        self._client = client
        self._key_prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    async def save(self, key: str, payload: str) -> None:
        await self._client.set(self._key(key), payload)

    async def load(self, key: str) -> str:
        value: str | None = await self._client.get(self._key(key))
        if value is None:
            raise KeyError(f"{key!r} not found under prefix {self._key_prefix!r}.")
        return str(value)

    async def list_keys(self) -> Sequence[str]:
        """Return all keys under the configured prefix using SCAN."""
        prefix_len = len(self._key_prefix)
        keys: list[str] = []
        cursor: int = 0
        while True:
            cursor, batch = await self._client.scan(
                cursor=cursor, match=f"{self._key_prefix}*", count=100
            )
            keys.extend(str(raw)[prefix_len:] for raw in batch)
            if cursor == 0:
                break
        return keys

    async def delete(self, key: str) -> bool:
        deleted: int = await self._client.delete(self._key(key))
        return deleted > 0

    async def exists(self, key: str) -> bool:
        return bool(await self._client.exists(self._key(key)))

    async def close(self) -> None:
        await self._client.aclose()

    def __repr__(self) -> str:
        return f"AsyncRedisBackend(key_prefix={self._key_prefix!r})"


__all__ = ["AsyncRedisBackend"]
