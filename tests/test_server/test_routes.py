"""Tests for the request API in kiosk_handoff.server."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Iterator

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from kiosk_handoff.catalog.product import Product
from kiosk_handoff.config import HandoffSettings
from kiosk_handoff.errors import (
    ConfigurationError,
    HandoffError,
    InvalidPayloadError,
    InvalidStatusTransition,
    ProductNotFoundError,
    SessionNotFoundError,
    StoreUnavailableError,
    TokenNotFoundError,
)
from kiosk_handoff.kv.memory import AsyncInMemoryStore
from kiosk_handoff.runtime import build_runtime
from kiosk_handoff.server.app import create_app, handoff_error_handler, status_for
from kiosk_handoff.tokens.render import DATA_URL_PREFIX

WEDDING_MESSAGE = "I need an outfit for a summer wedding, budget around $200"


def _settings(tmp_path: Path, products: list[Product], **overrides: object) -> HandoffSettings:
    inventory = tmp_path / "inventory.json"
    inventory.write_text(json.dumps([p.to_wire() for p in products]), encoding="utf-8")
    values: dict[str, object] = {
        "signing_secret": "route-test-secret",
        "redis_url": None,
        "record_backend": "memory",
        "catalog_path": inventory,
    }
    values.update(overrides)
    return HandoffSettings(**values)


@pytest.fixture()
def client(tmp_path: Path, products: list[Product]) -> Iterator[TestClient]:
    runtime = build_runtime(_settings(tmp_path, products), kv=AsyncInMemoryStore())
    with TestClient(create_app(runtime=runtime)) as test_client:
        yield test_client


def _chat(client: TestClient, session_id: str = "s1") -> dict:
    response = client.post(
        "/api/chat/message",
        json={"sessionId": session_id, "userId": "u1", "message": WEDDING_MESSAGE},
    )
    assert response.status_code == 200
    return response.json()


# ---------------------------------------------------------------------------
# Status mapping
# ---------------------------------------------------------------------------


class TestStatusFor:
    @pytest.mark.parametrize(
        ("error", "status"),
        [
            (InvalidPayloadError("x"), 400),
            (TokenNotFoundError(), 400),
            (SessionNotFoundError("s"), 404),
            (ProductNotFoundError("p"), 404),
            (InvalidStatusTransition("expired", "transferred"), 409),
            (StoreUnavailableError("down"), 503),
            (ConfigurationError("no secret"), 503),
            (HandoffError("other"), 500),
        ],
    )
    def test_mapping(self, error: HandoffError, status: int) -> None:
        assert status_for(error) == status

    @pytest.mark.asyncio
    async def test_handler_builds_error_envelope(self) -> None:
        request = Request(
            {"type": "http", "method": "POST", "path": "/api/qr/generate", "headers": []}
        )
        response = await handoff_error_handler(request, ConfigurationError("no secret"))
        assert response.status_code == 503
        assert json.loads(response.body) == {"success": False, "error": "no secret"}


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class TestHealth:
    def test_healthy(self, client: TestClient) -> None:
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"success": True, "data": {"status": "healthy", "store": "up"}}

    def test_store_down(self, tmp_path: Path, products: list[Product], down_store) -> None:
        runtime = build_runtime(_settings(tmp_path, products), kv=down_store)
        with TestClient(create_app(runtime=runtime)) as test_client:
            body = test_client.get("/api/health").json()
        assert body["data"]["store"] == "down"


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class TestChat:
    def test_post_message(self, client: TestClient) -> None:
        body = _chat(client)
        assert body["success"] is True
        data = body["data"]
        assert data["sessionId"] == "s1"
        assert data["aiResponse"].startswith("Looking for wedding")
        assert data["parsedIntent"]["occasion"] == "wedding"
        assert data["tags"] == ["#Wedding", "#Casual", "#SummerWear"]
        assert [p["productId"] for p in data["recommendations"]] == [
            "p-linen-suit",
            "p-loafers",
            "p-wool-blazer",
        ]

    def test_missing_fields(self, client: TestClient) -> None:
        response = client.post("/api/chat/message", json={"sessionId": "s1"})
        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "sessionId, userId, and message are required",
        }

    def test_no_body(self, client: TestClient) -> None:
        response = client.post("/api/chat/message")
        assert response.status_code == 400

    def test_malformed_json(self, client: TestClient) -> None:
        response = client.post(
            "/api/chat/message",
            content="{not json",
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Invalid request body"}

    def test_get_session(self, client: TestClient) -> None:
        _chat(client)
        data = client.get("/api/chat/session/s1").json()["data"]
        assert data["sessionId"] == "s1"
        assert data["status"] == "active"
        assert [m["sender"] for m in data["conversationHistory"]] == ["user", "ai"]

    def test_get_missing_session(self, client: TestClient) -> None:
        response = client.get("/api/chat/session/ghost")
        assert response.status_code == 404
        assert response.json()["error"] == "Session not found"

    def test_delete_session(self, client: TestClient) -> None:
        _chat(client)
        response = client.delete("/api/chat/session/s1")
        assert response.json()["message"] == "Session deleted successfully"
        assert client.get("/api/chat/session/s1").status_code == 404
        assert client.delete("/api/chat/session/s1").status_code == 404


# ---------------------------------------------------------------------------
# Transfer tokens
# ---------------------------------------------------------------------------


class TestTokens:
    def test_generate_for_unknown_session(self, client: TestClient) -> None:
        response = client.post("/api/qr/generate", json={"sessionId": "ghost"})
        assert response.status_code == 404

    def test_generate_requires_session_id(self, client: TestClient) -> None:
        response = client.post("/api/qr/generate", json={})
        assert response.status_code == 400
        assert response.json()["error"] == "sessionId is required"

    def test_generate(self, client: TestClient) -> None:
        _chat(client)
        data = client.post("/api/qr/generate", json={"sessionId": "s1"}).json()["data"]
        assert set(data) == {"tokenId", "signature", "expiresAt", "qrImage"}
        assert data["qrImage"].startswith(DATA_URL_PREFIX)
        session = client.get("/api/chat/session/s1").json()["data"]
        assert session["qrCode"] == data["tokenId"]

    def test_validate_transfers_once(self, client: TestClient) -> None:
        _chat(client)
        token = client.post("/api/qr/generate", json={"sessionId": "s1"}).json()["data"]
        payload = {"tokenId": token["tokenId"], "signature": token["signature"], "kioskId": "k1"}

        first = client.post("/api/qr/validate", json=payload)
        assert first.status_code == 200
        data = first.json()["data"]
        assert data["sessionId"] == "s1"
        assert data["session"]["status"] == "transferred"
        assert data["session"]["kioskId"] == "k1"

        second = client.post("/api/qr/validate", json=payload)
        assert second.status_code == 400
        assert second.json()["error"] == "Invalid or expired QR code"

    def test_validate_tampered(self, client: TestClient) -> None:
        _chat(client)
        token = client.post("/api/qr/generate", json={"sessionId": "s1"}).json()["data"]
        response = client.post(
            "/api/qr/validate", json={"tokenId": token["tokenId"], "signature": "forged"}
        )
        assert response.status_code == 400
        status = client.get("/api/chat/session/s1").json()["data"]["status"]
        assert status == "active"

    def test_expire(self, client: TestClient) -> None:
        _chat(client)
        token = client.post("/api/qr/generate", json={"sessionId": "s1"}).json()["data"]
        body = client.delete(f"/api/qr/{token['tokenId']}").json()
        assert body["data"] == {"tokenId": token["tokenId"], "deleted": True}
        assert body["message"] == "QR code expired successfully"
        again = client.delete(f"/api/qr/{token['tokenId']}").json()
        assert again["data"]["deleted"] is False
        assert again["message"] == "QR code not found"

    def test_missing_secret_is_unavailable(
        self, tmp_path: Path, products: list[Product]
    ) -> None:
        settings = _settings(tmp_path, products, signing_secret=None)
        runtime = build_runtime(settings, kv=AsyncInMemoryStore())
        with TestClient(create_app(runtime=runtime)) as test_client:
            _chat(test_client)
            response = test_client.post("/api/qr/generate", json={"sessionId": "s1"})
        assert response.status_code == 503
        assert response.json()["error"] == "Signing secret is not configured"


# ---------------------------------------------------------------------------
# Kiosk
# ---------------------------------------------------------------------------


class TestAssociate:
    def test_associate(self, client: TestClient) -> None:
        _chat(client)
        response = client.post(
            "/api/kiosk/associate",
            json={"sessionId": "s1", "productId": "p-wool-blazer", "kioskId": "k1"},
        )
        assert response.status_code == 200
        assert response.json()["data"]["productName"] == "Wool Blazer"

    def test_unknown_product(self, client: TestClient) -> None:
        _chat(client)
        response = client.post(
            "/api/kiosk/associate", json={"sessionId": "s1", "productId": "ghost"}
        )
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Product not found"}

    def test_missing_fields(self, client: TestClient) -> None:
        response = client.post("/api/kiosk/associate", json={"sessionId": "s1"})
        assert response.status_code == 400
        assert response.json()["error"] == "sessionId and productId are required"
