"""Async in-memory record backend.

Stores records in a plain Python dict guarded by ``asyncio.Lock``.  All
data is lost when the process exits.

Classes
-------
- AsyncInMemoryBackend  — dict-backed ephemeral record storage
"""
from __future__ import annotations

import asyncio
from typing import Sequence

from kiosk_handoff.storage.async_base import AsyncRecordBackend


class AsyncInMemoryBackend(AsyncRecordBackend):
    """Ephemeral record storage backed by a Python dict.

    Parameters
    ----------
    namespace:
        Label for the record kind held by this backend (``"sessions"``,
        ``"products"``).  Only used in error messages and ``repr``.
    initial_data:
        Optional pre-populated mapping of keys to raw payloads.  A shallow
        copy is taken so the caller's dict is not mutated.
    """

    def __init__(
        self,
        namespace: str = "records",
        initial_data: dict[str, str] | None = None,
    ) -> None:
        self.namespace = namespace
        self._records: dict[str, str] = dict(initial_data or {})
        self._lock: asyncio.Lock = asyncio.Lock()

    async def save(self, key: str, payload: str) -> None:
        async with self._lock:
            self._records[key] = payload

    async def load(self, key: str) -> str:
        async with self._lock:
            try:
                return self._records[key]
            except KeyError:
                raise KeyError(f"{key!r} not found in {self.namespace!r}.") from None

    async def list_keys(self) -> Sequence[str]:
        """Return all stored keys in insertion order."""
        async with self._lock:
            return list(self._records)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._records.pop(key, None) is not None

    async def exists(self, key: str) -> bool:
        async with self._lock:
            return key in self._records

    async def clear(self) -> None:
        """Remove all stored records."""
        async with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"AsyncInMemoryBackend(namespace={self.namespace!r}, records={len(self._records)})"


__all__ = ["AsyncInMemoryBackend"]
