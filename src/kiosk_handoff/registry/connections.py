"""Live connection registry.

Maps a logical identity (a shopper's user id, a kiosk id) to the handle of
its current connection on one of two channels.  Entries live in the shared
key-value store under ``socket:<channel>:<identity>``; the last
registration for an identity wins.

Registry operations are best effort.  When the store is unavailable they
log a warning and behave as if nothing was registered, so a shopper can
still chat and transfer without live push notifications.

Classes
-------
- Channel             — the two connection channels
- ConnectionRegistry  — register, look up and remove connection handles
"""
from __future__ import annotations

import logging
from enum import Enum

from kiosk_handoff.errors import StoreUnavailableError
from kiosk_handoff.kv.base import AsyncKeyValueStore

logger = logging.getLogger(__name__)

SOCKET_KEY_PREFIX = "socket:"
DEFAULT_REGISTRY_TTL_SECONDS = 1800


class Channel(str, Enum):
    """Connection channels."""

    MOBILE = "mobile"
    KIOSK = "kiosk"


def registry_key(channel: Channel, identity: str) -> str:
    return f"{SOCKET_KEY_PREFIX}{Channel(channel).value}:{identity}"


class ConnectionRegistry:
    """Identity to connection-handle mapping per channel.

    Parameters
    ----------
    store:
        Shared key-value store.
    ttl_seconds:
        Lifetime of a registration, refreshed by every ``register`` and
        ``touch``.  None keeps entries until the connection closes.
    """

    def __init__(
        self,
        store: AsyncKeyValueStore,
        ttl_seconds: int | None = DEFAULT_REGISTRY_TTL_SECONDS,
    ) -> None:
        self._store = store
        self._ttl_seconds = ttl_seconds

    async def register(self, channel: Channel, identity: str, handle: str) -> bool:
        """Map ``identity`` to ``handle``, replacing any earlier mapping.

        Returns
        -------
        bool
            False when the store was unavailable and nothing was recorded.
        """
        if not identity or not handle:
            return False
        try:
            await self._store.set(registry_key(channel, identity), handle, self._ttl_seconds)
        except StoreUnavailableError as exc:
            logger.warning("Could not register %s %s: %s", channel.value, identity, exc.message)
            return False
        logger.debug("Registered %s %s -> %s", channel.value, identity, handle)
        return True

    async def lookup(self, channel: Channel, identity: str) -> str | None:
        """Return the current handle for ``identity``, or None."""
        if not identity:
            return None
        try:
            return await self._store.get(registry_key(channel, identity))
        except StoreUnavailableError as exc:
            logger.warning("Could not look up %s %s: %s", channel.value, identity, exc.message)
            return None

    async def touch(self, channel: Channel, identity: str) -> None:
        """Refresh the TTL of ``identity``'s registration, if any."""
        if not identity or self._ttl_seconds is None:
            return
        try:
            await self._store.expire(registry_key(channel, identity), self._ttl_seconds)
        except StoreUnavailableError as exc:
            logger.warning("Could not refresh %s %s: %s", channel.value, identity, exc.message)

    async def unregister_by_handle(self, channel: Channel, handle: str) -> str | None:
        """Remove the registration pointing at ``handle``.

        The channel namespace is scanned linearly and the first entry whose
        value equals ``handle`` is deleted.

        Returns
        -------
        str | None
            The identity that was unregistered, or None when no entry
            pointed at ``handle`` (or the store was unavailable).
        """
        prefix = registry_key(channel, "")
        try:
            for key in await self._store.keys(f"{prefix}*"):
                if await self._store.get(key) == handle:
                    await self._store.delete(key)
                    identity = key[len(prefix):]
                    logger.debug("Unregistered %s %s (%s)", channel.value, identity, handle)
                    return identity
        except StoreUnavailableError as exc:
            logger.warning("Could not unregister %s handle %s: %s", channel.value, handle, exc.message)
        return None


__all__ = [
    "Channel",
    "ConnectionRegistry",
    "DEFAULT_REGISTRY_TTL_SECONDS",
    "SOCKET_KEY_PREFIX",
    "registry_key",
]
