"""Abstract base class for async record storage backends.

Session and product records are persisted as UTF-8 JSON strings keyed by
their identifier.  Each backend instance holds exactly one record kind
(its *namespace*), so sessions and products never share a key space.

Classes
-------
- AsyncRecordBackend  — abstract base for all record backends
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence


class AsyncRecordBackend(ABC):
    """Protocol for async reading and writing of raw record payloads."""

    @abstractmethod
    async def save(self, key: str, payload: str) -> None:
        """Persist ``payload`` under ``key``, overwriting any existing record.

        Parameters
        ----------
        key:
            Record identifier (session id or product id).
        payload:
            UTF-8 string to persist (typically JSON).
        """

    @abstractmethod
    async def load(self, key: str) -> str:
        """Return the raw payload stored under ``key``.

        Raises
        ------
        KeyError
            If no record exists for ``key``.
        """

    @abstractmethod
    async def list_keys(self) -> Sequence[str]:
        """Return the identifiers of all stored records.

        Order is implementation-defined.
        """

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove the record for ``key``.

        Returns
        -------
        bool
            True if the record existed and was deleted, False otherwise.
        """

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Return True if a record for ``key`` exists."""

    async def close(self) -> None:
        """Release held resources.  Defaults to a no-op."""


__all__ = ["AsyncRecordBackend"]
