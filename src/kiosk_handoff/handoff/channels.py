"""Channel transport protocol.

A transport delivers outbound events to live connections identified by an
opaque handle.  The coordinator receives one transport per channel at
construction; the server provides WebSocket-backed transports.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class ChannelTransport(Protocol):
    """Delivers events to connections on one channel."""

    async def send(self, handle: str, event: str, data: Mapping[str, Any]) -> bool:
        """Send ``event`` to the connection ``handle``.

        Returns False when the connection is gone; never raises for a
        closed or unknown connection.
        """
        ...


class NullChannel:
    """Transport with no live connections; every send is dropped."""

    def __init__(self, name: str = "null") -> None:
        self.name = name

    async def send(self, handle: str, event: str, data: Mapping[str, Any]) -> bool:
        logger.debug("Dropping %s for %s on %s channel", event, handle, self.name)
        return False


__all__ = ["ChannelTransport", "NullChannel"]
