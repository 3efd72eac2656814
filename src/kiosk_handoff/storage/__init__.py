"""Record storage subpackage for session and product documents.

All backends implement the ``AsyncRecordBackend`` ABC.  The SQLite backend
guards its third-party import so the package stays installable without the
``sqlite`` extra.

Public surface
--------------
- AsyncRecordBackend   — abstract base class
- AsyncInMemoryBackend — dict-based backend with asyncio.Lock
- AsyncRedisBackend    — redis.asyncio backend with prefixed keys
- AsyncSQLiteBackend   — aiosqlite backend, one table per namespace
"""
from __future__ import annotations

from kiosk_handoff.storage.async_base import AsyncRecordBackend
from kiosk_handoff.storage.async_memory import AsyncInMemoryBackend
from kiosk_handoff.storage.async_redis import AsyncRedisBackend
from kiosk_handoff.storage.async_sqlite import AsyncSQLiteBackend

__all__ = [
    "AsyncInMemoryBackend",
    "AsyncRecordBackend",
    "AsyncRedisBackend",
    "AsyncSQLiteBackend",
]
