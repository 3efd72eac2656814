"""Redis-backed shared key-value store using ``redis.asyncio``.

Connection failures are retried by the client itself with a bounded
exponential backoff and a hard retry ceiling.  Once the ceiling is hit the
operation raises :class:`~kiosk_handoff.errors.StoreUnavailableError`;
callers decide whether that degrades a feature or fails a request.

Classes
-------
- AsyncRedisStore  — redis.asyncio implementation of AsyncKeyValueStore
"""
from __future__ import annotations

import logging
from typing import Any

from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from kiosk_handoff.errors import StoreUnavailableError
from kiosk_handoff.kv.base import AsyncKeyValueStore

logger = logging.getLogger(__name__)

_MAX_RETRIES: int = 3
_BACKOFF_BASE_SECONDS: float = 0.05
_BACKOFF_CAP_SECONDS: float = 2.0
_SCAN_COUNT: int = 100

_UNAVAILABLE_ERRORS = (RedisConnectionError, RedisTimeoutError, OSError)


def make_redis_client(url: str) -> Redis:
    """Build a ``redis.asyncio`` client with bounded reconnect retries."""
    return Redis.from_url(
        url,
        decode_responses=True,
        socket_connect_timeout=2.0,
        retry=Retry(
            ExponentialBackoff(cap=_BACKOFF_CAP_SECONDS, base=_BACKOFF_BASE_SECONDS),
            _MAX_RETRIES,
        ),
        retry_on_error=[RedisConnectionError, RedisTimeoutError],
    )


class AsyncRedisStore(AsyncKeyValueStore):
    """Shared store backed by a Redis server.

    Parameters
    ----------
    url:
        Redis connection URL (e.g. ``"redis://localhost:6379/0"``).
        Ignored when ``client`` is given.
    client:
        An existing ``redis.asyncio.Redis`` client created with
        ``decode_responses=True``.
    """

    def __init__(self, url: str | None = None, client: Any | None = None) -> None:
        if client is None:
            if url is None:
                raise ValueError("AsyncRedisStore needs either a url or a client.")
            client = make_redis_client(url)
        self._client = client

    async def _call(self, operation: str, coro: Any) -> Any:
        try:
            return await coro
        except _UNAVAILABLE_ERRORS as exc:
            logger.warning("Redis %s failed: %s", operation, exc)
            raise StoreUnavailableError(
                "Shared store is unavailable; handoff features are degraded"
            ) from exc

    # ------------------------------------------------------------------
    # AsyncKeyValueStore interface
    # ------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        value = await self._call("GET", self._client.get(key))
        return None if value is None else str(value)

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        if ttl_seconds is not None:
            await self._call("SETEX", self._client.setex(key, ttl_seconds, value))
        else:
            await self._call("SET", self._client.set(key, value))

    async def delete(self, key: str) -> bool:
        deleted: int = await self._call("DEL", self._client.delete(key))
        return deleted > 0

    async def pop(self, key: str) -> str | None:
        value = await self._call("GETDEL", self._client.getdel(key))
        return None if value is None else str(value)

    async def ttl(self, key: str) -> int:
        return int(await self._call("TTL", self._client.ttl(key)))

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        return bool(await self._call("EXPIRE", self._client.expire(key, ttl_seconds)))

    async def keys(self, pattern: str) -> list[str]:
        """Return keys matching ``pattern`` using SCAN so Redis never blocks."""
        found: list[str] = []
        cursor: int = 0
        while True:
            cursor, batch = await self._call(
                "SCAN",
                self._client.scan(cursor=cursor, match=pattern, count=_SCAN_COUNT),
            )
            found.extend(str(key) for key in batch)
            if cursor == 0:
                break
        return found

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except _UNAVAILABLE_ERRORS as exc:
            logger.warning("Redis PING failed: %s", exc)
            return False

    async def close(self) -> None:
        await self._client.aclose()

    def __repr__(self) -> str:
        return f"AsyncRedisStore(client={self._client!r})"


__all__ = ["AsyncRedisStore", "make_redis_client"]
