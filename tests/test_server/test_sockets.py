"""Tests for the WebSocket channels in kiosk_handoff.server.sockets."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Iterator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from kiosk_handoff.catalog.product import Product
from kiosk_handoff.config import HandoffSettings
from kiosk_handoff.kv.memory import AsyncInMemoryStore
from kiosk_handoff.registry.connections import Channel
from kiosk_handoff.runtime import HandoffRuntime, build_runtime
from kiosk_handoff.server.app import create_app
from kiosk_handoff.server.sockets import WebSocketChannel, decode_frame

WEDDING_MESSAGE = "I need an outfit for a summer wedding, budget around $200"


@pytest.fixture()
def runtime(tmp_path: Path, products: list[Product]) -> HandoffRuntime:
    inventory = tmp_path / "inventory.json"
    inventory.write_text(json.dumps([p.to_wire() for p in products]), encoding="utf-8")
    settings = HandoffSettings(
        signing_secret="socket-test-secret", redis_url=None, catalog_path=inventory
    )
    return build_runtime(settings, kv=AsyncInMemoryStore())


@pytest.fixture()
def client(runtime: HandoffRuntime) -> Iterator[TestClient]:
    with TestClient(create_app(runtime=runtime)) as test_client:
        yield test_client


# ---------------------------------------------------------------------------
# Frame decoding
# ---------------------------------------------------------------------------


class TestDecodeFrame:
    def test_valid(self) -> None:
        assert decode_frame('{"event": "mobile:identify", "data": {"userId": "u1"}}') == (
            "mobile:identify",
            {"userId": "u1"},
        )

    def test_missing_data_becomes_empty(self) -> None:
        assert decode_frame('{"event": "kiosk:identify"}') == ("kiosk:identify", {})

    @pytest.mark.parametrize("raw", ["not json", "[1, 2]", '{"data": {}}', '{"event": ""}'])
    def test_malformed(self, raw: str) -> None:
        assert decode_frame(raw) is None


# ---------------------------------------------------------------------------
# WebSocketChannel transport
# ---------------------------------------------------------------------------


class TestWebSocketChannel:
    @pytest.mark.asyncio
    async def test_send_to_known_handle(self) -> None:
        channel = WebSocketChannel(Channel.MOBILE)
        websocket = MagicMock()
        websocket.send_json = AsyncMock()
        handle = channel.add(websocket)
        assert handle in channel
        assert await channel.send(handle, "mobile:welcome", {"message": "hi"}) is True
        websocket.send_json.assert_awaited_once_with(
            {"event": "mobile:welcome", "data": {"message": "hi"}}
        )

    @pytest.mark.asyncio
    async def test_send_to_unknown_handle(self) -> None:
        channel = WebSocketChannel(Channel.KIOSK)
        assert await channel.send("ghost", "kiosk:welcome", {}) is False

    @pytest.mark.asyncio
    async def test_closed_connection_is_dropped(self) -> None:
        channel = WebSocketChannel(Channel.KIOSK)
        websocket = MagicMock()
        websocket.send_json = AsyncMock(side_effect=WebSocketDisconnect())
        handle = channel.add(websocket)
        assert await channel.send(handle, "kiosk:sessionData", {}) is False
        assert handle not in channel
        assert len(channel) == 0


# ---------------------------------------------------------------------------
# End to end over WebSockets
# ---------------------------------------------------------------------------


class TestRealtimeHandoff:
    def test_welcome(self, client: TestClient) -> None:
        with client.websocket_connect("/kiosk") as kiosk:
            frame = kiosk.receive_json()
        assert frame["event"] == "kiosk:welcome"
        assert frame["data"]["message"] == "Connected to kiosk namespace"
        assert frame["data"]["socketId"]

    def test_malformed_frame(self, client: TestClient) -> None:
        with client.websocket_connect("/mobile") as phone:
            phone.receive_json()
            phone.send_text("not json")
            assert phone.receive_json() == {
                "event": "mobile:error",
                "data": {"message": "Malformed frame"},
            }

    def test_binary_frame_keeps_connection_open(self, client: TestClient) -> None:
        with client.websocket_connect("/kiosk") as kiosk:
            kiosk.receive_json()
            kiosk.send_bytes(b"\x00\x01binary")
            assert kiosk.receive_json() == {
                "event": "kiosk:error",
                "data": {"message": "Malformed frame"},
            }
            kiosk.send_json({"event": "kiosk:identify", "data": {"kioskId": "k1"}})
            assert kiosk.receive_json()["event"] == "kiosk:identified"

    def test_unknown_event_keeps_connection_open(self, client: TestClient) -> None:
        with client.websocket_connect("/mobile") as phone:
            phone.receive_json()
            phone.send_json({"event": "mobile:dance", "data": {}})
            assert phone.receive_json()["event"] == "mobile:error"
            phone.send_json({"event": "mobile:identify", "data": {"userId": "u1"}})
            assert phone.receive_json()["event"] == "mobile:identified"

    def test_chat_scan_and_notify(self, client: TestClient) -> None:
        with client.websocket_connect("/mobile") as phone:
            phone.receive_json()
            phone.send_json(
                {
                    "event": "mobile:message",
                    "data": {"sessionId": "s1", "userId": "u1", "message": WEDDING_MESSAGE},
                }
            )
            reply = phone.receive_json()
            assert reply["event"] == "mobile:aiResponse"
            assert reply["data"]["intent"]["occasion"] == "wedding"

            phone.send_json({"event": "mobile:generateQR", "data": {"sessionId": "s1"}})
            generated = phone.receive_json()
            assert generated["event"] == "mobile:qrGenerated"
            token = generated["data"]
            assert "sessionId" not in token

            with client.websocket_connect("/kiosk") as kiosk:
                kiosk.receive_json()
                kiosk.send_json(
                    {
                        "event": "kiosk:scanQR",
                        "data": {
                            "tokenId": token["tokenId"],
                            "signature": token["signature"],
                            "kioskId": "k1",
                        },
                    }
                )
                session_data = kiosk.receive_json()
                assert session_data["event"] == "kiosk:sessionData"
                assert session_data["data"]["status"] == "transferred"
                assert session_data["data"]["kioskId"] == "k1"

                notice = phone.receive_json()
                assert notice["event"] == "mobile:sessionTransferred"
                assert notice["data"]["kioskId"] == "k1"

                kiosk.send_json(
                    {
                        "event": "kiosk:scanQR",
                        "data": {"tokenId": token["tokenId"], "signature": token["signature"]},
                    }
                )
                assert kiosk.receive_json() == {
                    "event": "kiosk:invalidQR",
                    "data": {"message": "Invalid or expired QR code"},
                }
