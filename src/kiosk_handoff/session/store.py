"""Session persistence.

Provides ``SessionStore``, the facade for creating, saving, loading,
listing and deleting shopping sessions via a pluggable record backend.

Classes
-------
- SessionStore  — async CRUD facade over an AsyncRecordBackend
"""
from __future__ import annotations

import asyncio
import logging
import weakref
from datetime import datetime, timezone
from typing import Callable

from pydantic import ValidationError

from kiosk_handoff.errors import SessionNotFoundError
from kiosk_handoff.session.serializer import SchemaVersionError, SessionSerializer
from kiosk_handoff.session.state import ShoppingSession
from kiosk_handoff.storage.async_base import AsyncRecordBackend

logger = logging.getLogger(__name__)


class SessionStore:
    """Create, save, load, list and delete sessions.

    ``save`` overwrites whatever is stored under the session id.  Paths
    that change a session concurrently go through ``update``, which
    re-reads the record and applies only the caller's change, so one
    writer never rolls back another's fields (such as ``status``).

    Parameters
    ----------
    backend:
        The record backend to use for persistence.
    serializer:
        Optional custom serializer.
    """

    def __init__(
        self,
        backend: AsyncRecordBackend,
        serializer: SessionSerializer | None = None,
    ) -> None:
        self._backend = backend
        self._serializer = serializer or SessionSerializer()
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @property
    def backend(self) -> AsyncRecordBackend:
        return self._backend

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    def create(self, session_id: str, user_id: str) -> ShoppingSession:
        """Return a new, unpersisted ``active`` session.

        Call ``save`` to persist it.
        """
        return ShoppingSession(session_id=session_id, user_id=user_id)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def save(self, session: ShoppingSession) -> str:
        """Persist ``session``, refreshing ``updated_at``.

        Returns
        -------
        str
            The ``session_id`` under which the record was saved.
        """
        session.updated_at = datetime.now(timezone.utc)
        raw = self._serializer.to_json(session)
        await self._backend.save(session.session_id, raw)
        return session.session_id

    async def load(self, session_id: str) -> ShoppingSession:
        """Load a session.

        Raises
        ------
        SessionNotFoundError
            If no session with ``session_id`` exists.
        """
        try:
            raw = await self._backend.load(session_id)
        except KeyError:
            raise SessionNotFoundError(session_id) from None
        return self._serializer.from_json(raw)

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    async def update(
        self,
        session_id: str,
        apply: Callable[[ShoppingSession], None],
        *,
        user_id: str | None = None,
    ) -> ShoppingSession:
        """Re-load a session, apply one change to it and save it.

        Updates to the same session are serialized, and each one starts
        from the record as currently stored.

        Parameters
        ----------
        session_id:
            Session to change.
        apply:
            Mutates the freshly loaded session in place.  An exception
            aborts the update without saving.
        user_id:
            When given, a missing session is created for this user
            instead of raising.

        Raises
        ------
        SessionNotFoundError
            If the session does not exist and ``user_id`` is None.
        """
        lock = self._lock_for(session_id)
        async with lock:
            if user_id is None:
                session = await self.load(session_id)
            else:
                session = await self.load_or_create(session_id, user_id)
            apply(session)
            await self.save(session)
        return session

    async def get(self, session_id: str) -> ShoppingSession | None:
        """Return the session, or None when it does not exist."""
        try:
            return await self.load(session_id)
        except SessionNotFoundError:
            return None

    async def load_or_create(self, session_id: str, user_id: str) -> ShoppingSession:
        """Return the stored session, or a new unpersisted one."""
        session = await self.get(session_id)
        if session is None:
            logger.info("Creating session %s for user %s", session_id, user_id)
            session = self.create(session_id, user_id)
        return session

    async def delete(self, session_id: str) -> None:
        """Remove a session.

        Raises
        ------
        SessionNotFoundError
            If no session with ``session_id`` exists.
        """
        if not await self._backend.delete(session_id):
            raise SessionNotFoundError(session_id)

    async def exists(self, session_id: str) -> bool:
        return await self._backend.exists(session_id)

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    async def list_ids(self) -> list[str]:
        """Return the sorted IDs of all stored sessions."""
        return sorted(await self._backend.list_keys())

    async def list_for_user(self, user_id: str) -> list[ShoppingSession]:
        """Return the sessions belonging to ``user_id``.

        This performs a full scan; unreadable records are skipped with a
        warning.
        """
        matching: list[ShoppingSession] = []
        for session_id in await self.list_ids():
            try:
                session = await self.load(session_id)
            except (SessionNotFoundError, SchemaVersionError, ValidationError, ValueError) as exc:
                logger.warning("Skipping unreadable session %s: %s", session_id, exc)
                continue
            if session.user_id == user_id:
                matching.append(session)
        return matching


__all__ = ["SessionStore"]
