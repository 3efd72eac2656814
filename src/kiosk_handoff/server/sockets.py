"""WebSocket channels for mobile and kiosk clients.

Each connection gets an opaque handle (a uuid4 hex string) and is served by
one coroutine that processes its frames in order.  Frames are JSON objects
``{"event": <name>, "data": {...}}`` in both directions.
"""
from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Mapping

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from kiosk_handoff.handoff.events import KioskEvent, MobileEvent
from kiosk_handoff.registry.connections import Channel

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])

_ERROR_EVENTS: dict[Channel, str] = {
    Channel.MOBILE: MobileEvent.ERROR.value,
    Channel.KIOSK: KioskEvent.ERROR.value,
}


class WebSocketChannel:
    """Channel transport over the live WebSocket connections of one channel.

    Parameters
    ----------
    channel:
        Which channel these connections belong to.
    """

    def __init__(self, channel: Channel) -> None:
        self.channel = Channel(channel)
        self._connections: dict[str, WebSocket] = {}

    def add(self, websocket: WebSocket) -> str:
        """Track ``websocket`` and return its new handle."""
        handle = uuid.uuid4().hex
        self._connections[handle] = websocket
        return handle

    def remove(self, handle: str) -> None:
        self._connections.pop(handle, None)

    def __contains__(self, handle: object) -> bool:
        return handle in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    async def send(self, handle: str, event: str, data: Mapping[str, Any]) -> bool:
        websocket = self._connections.get(handle)
        if websocket is None:
            return False
        try:
            await websocket.send_json({"event": event, "data": dict(data)})
        except (WebSocketDisconnect, RuntimeError) as exc:
            logger.debug("Dropping %s for closed %s connection %s: %s", event, self.channel.value, handle, exc)
            self.remove(handle)
            return False
        return True


def decode_frame(raw: str) -> tuple[str, Any] | None:
    """Return ``(event, data)`` from a text frame, or None if it is malformed."""
    try:
        frame = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(frame, dict):
        return None
    event = frame.get("event")
    if not isinstance(event, str) or not event:
        return None
    data = frame.get("data")
    return event, {} if data is None else data


async def serve_connection(websocket: WebSocket, channel: Channel) -> None:
    """Run one connection until the client goes away.

    Binary and malformed frames are answered with an error event; they
    never close the connection.
    """
    runtime = websocket.app.state.runtime
    transport: WebSocketChannel = websocket.app.state.channels[channel]
    coordinator = runtime.coordinator

    await websocket.accept()
    handle = transport.add(websocket)
    try:
        await coordinator.on_connect(channel, handle)
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            raw = message.get("text")
            decoded = None if raw is None else decode_frame(raw)
            if decoded is None:
                await transport.send(handle, _ERROR_EVENTS[channel], {"message": "Malformed frame"})
                continue
            event, data = decoded
            await coordinator.dispatch(channel, handle, event, data)
    except WebSocketDisconnect:
        pass
    finally:
        transport.remove(handle)
        await coordinator.disconnect(channel, handle)


@router.websocket("/mobile")
async def mobile_socket(websocket: WebSocket) -> None:
    await serve_connection(websocket, Channel.MOBILE)


@router.websocket("/kiosk")
async def kiosk_socket(websocket: WebSocket) -> None:
    await serve_connection(websocket, Channel.KIOSK)


__all__ = ["WebSocketChannel", "decode_frame", "router", "serve_connection"]
