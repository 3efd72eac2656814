"""Shared expiring key-value store.

Transfer tokens and connection registrations live here.

Public surface
--------------
- AsyncKeyValueStore  — abstract base class
- AsyncInMemoryStore  — single-process dict store with TTL (tests, dev)
- AsyncRedisStore     — redis.asyncio store with bounded retries
"""
from __future__ import annotations

from kiosk_handoff.kv.base import TTL_MISSING, TTL_NO_EXPIRY, AsyncKeyValueStore
from kiosk_handoff.kv.memory import AsyncInMemoryStore
from kiosk_handoff.kv.redis import AsyncRedisStore

__all__ = [
    "AsyncInMemoryStore",
    "AsyncKeyValueStore",
    "AsyncRedisStore",
    "TTL_MISSING",
    "TTL_NO_EXPIRY",
]
