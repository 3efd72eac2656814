"""Async in-process key-value store with TTL support.

Stores entries in a plain dict guarded by ``asyncio.Lock``.  All data is
lost when the process exits, and the store is not shared between
processes, so it is only suitable for tests, local development and
single-process deployments.

Classes
-------
- AsyncInMemoryStore  — dict-backed store with lazy TTL expiry
"""
from __future__ import annotations

import asyncio
import fnmatch
import math
import time
from dataclasses import dataclass
from typing import Callable

from kiosk_handoff.kv.base import TTL_MISSING, TTL_NO_EXPIRY, AsyncKeyValueStore


@dataclass
class _Entry:
    value: str
    expires_at: float | None = None


class AsyncInMemoryStore(AsyncKeyValueStore):
    """Ephemeral shared store backed by a Python dict.

    Parameters
    ----------
    clock:
        Zero-argument callable returning the current time in seconds.
        Defaults to :func:`time.time`; tests inject a fake clock.
    passive_expiry:
        When True (default), lapsed entries vanish on their next access,
        as they do in Redis.  When False, lapsed entries stay readable and
        report a TTL of ``0`` until something deletes them, which models a
        backend without guaranteed passive expiry.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        passive_expiry: bool = True,
    ) -> None:
        self._clock = clock
        self._passive_expiry = passive_expiry
        self._entries: dict[str, _Entry] = {}
        self._lock: asyncio.Lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _lapsed(self, entry: _Entry) -> bool:
        return entry.expires_at is not None and entry.expires_at <= self._clock()

    def _live(self, key: str) -> _Entry | None:
        """Return the entry for ``key``, dropping it first if it lapsed."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._passive_expiry and self._lapsed(entry):
            del self._entries[key]
            return None
        return entry

    # ------------------------------------------------------------------
    # AsyncKeyValueStore interface
    # ------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        async with self._lock:
            entry = self._live(key)
            return entry.value if entry is not None else None

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        async with self._lock:
            expires_at = None if ttl_seconds is None else self._clock() + ttl_seconds
            self._entries[key] = _Entry(value=value, expires_at=expires_at)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._entries.pop(key, None) is not None

    async def pop(self, key: str) -> str | None:
        async with self._lock:
            entry = self._live(key)
            if entry is None:
                return None
            del self._entries[key]
            return entry.value

    async def ttl(self, key: str) -> int:
        async with self._lock:
            entry = self._live(key)
            if entry is None:
                return TTL_MISSING
            if entry.expires_at is None:
                return TTL_NO_EXPIRY
            return max(0, math.ceil(entry.expires_at - self._clock()))

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        async with self._lock:
            entry = self._live(key)
            if entry is None:
                return False
            entry.expires_at = self._clock() + ttl_seconds
            return True

    async def keys(self, pattern: str) -> list[str]:
        async with self._lock:
            matched = [key for key in self._entries if fnmatch.fnmatchcase(key, pattern)]
            return [key for key in matched if self._live(key) is not None]

    # ------------------------------------------------------------------
    # Extras
    # ------------------------------------------------------------------

    async def clear(self) -> None:
        """Remove every entry."""
        async with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return (
            f"AsyncInMemoryStore(entries={len(self._entries)}, "
            f"passive_expiry={self._passive_expiry!r})"
        )


__all__ = ["AsyncInMemoryStore"]
