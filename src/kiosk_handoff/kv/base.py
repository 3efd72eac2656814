"""Abstract base class for the shared expiring key-value store.

The handoff core keeps transfer tokens and connection registrations in a
single fast store.  Every operation touches exactly one key; no
cross-key transactions are needed.

TTL semantics follow Redis: :meth:`AsyncKeyValueStore.ttl` returns the
remaining seconds, ``-1`` for a key without expiry and ``-2`` for a missing
key.

Classes
-------
- AsyncKeyValueStore  — abstract base for all shared-store implementations
"""
from __future__ import annotations

from abc import ABC, abstractmethod

TTL_NO_EXPIRY: int = -1
TTL_MISSING: int = -2


class AsyncKeyValueStore(ABC):
    """Protocol for single-key async reads and writes with optional TTL.

    Implementations raise :class:`~kiosk_handoff.errors.StoreUnavailableError`
    when the underlying store cannot be reached.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value stored under ``key`` or None when absent."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        """Store ``value`` under ``key``, overwriting any previous value.

        Parameters
        ----------
        key:
            Full key including its namespace prefix.
        value:
            UTF-8 string to store.
        ttl_seconds:
            Seconds until the key expires.  ``None`` stores it without
            expiry.
        """

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove ``key``.

        Returns
        -------
        bool
            True if the key existed and was deleted, False otherwise.
        """

    @abstractmethod
    async def pop(self, key: str) -> str | None:
        """Remove ``key`` and return its value in one atomic step.

        Of several concurrent callers, at most one receives the value.
        Returns None when the key is absent.
        """

    @abstractmethod
    async def ttl(self, key: str) -> int:
        """Return the remaining lifetime of ``key`` in whole seconds.

        Returns
        -------
        int
            Remaining seconds, ``-1`` when the key has no expiry, ``-2``
            when the key does not exist.
        """

    @abstractmethod
    async def expire(self, key: str, ttl_seconds: int) -> bool:
        """Reset the lifetime of an existing key.

        Returns
        -------
        bool
            True if the key existed and its TTL was updated.
        """

    @abstractmethod
    async def keys(self, pattern: str) -> list[str]:
        """Return all keys matching the glob ``pattern`` (e.g. ``"qr:*"``)."""

    async def ping(self) -> bool:
        """Return True when the store answers.  Defaults to True."""
        return True

    async def close(self) -> None:
        """Release any held connections.  Defaults to a no-op."""


__all__ = ["AsyncKeyValueStore", "TTL_MISSING", "TTL_NO_EXPIRY"]
