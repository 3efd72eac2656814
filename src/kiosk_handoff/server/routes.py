"""Request API routes.

Every response uses the envelope ``{"success": true, "data": ...}``; errors
are rendered as ``{"success": false, "error": <message>}`` by the exception
handlers in :mod:`kiosk_handoff.server.app`.
"""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Request

from kiosk_handoff.handoff.coordinator import HandoffCoordinator
from kiosk_handoff.handoff.events import (
    AssociatePayload,
    GenerateQRPayload,
    MessagePayload,
    ScanPayload,
    parse_payload,
)

router = APIRouter(prefix="/api")


def ok(data: Any, message: str | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": True, "data": data}
    if message is not None:
        body["message"] = message
    return body


def _coordinator(request: Request) -> HandoffCoordinator:
    return request.app.state.runtime.coordinator


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health", tags=["health"])
async def health(request: Request) -> dict[str, Any]:
    store_up = await request.app.state.runtime.kv.ping()
    return ok({"status": "healthy", "store": "up" if store_up else "down"})


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


@router.post("/chat/message", tags=["chat"])
async def post_message(
    request: Request, body: dict[str, Any] | None = Body(default=None)
) -> dict[str, Any]:
    payload = parse_payload(MessagePayload, body or {})
    result = await _coordinator(request).submit_message(
        payload.session_id, payload.user_id, payload.message
    )
    return ok(result.to_response())


@router.get("/chat/session/{session_id}", tags=["chat"])
async def get_session(request: Request, session_id: str) -> dict[str, Any]:
    session = await _coordinator(request).get_session(session_id)
    return ok(session.to_wire())


@router.delete("/chat/session/{session_id}", tags=["chat"])
async def delete_session(request: Request, session_id: str) -> dict[str, Any]:
    await _coordinator(request).delete_session(session_id)
    return ok({"sessionId": session_id}, message="Session deleted successfully")


# ---------------------------------------------------------------------------
# Transfer tokens
# ---------------------------------------------------------------------------


@router.post("/qr/generate", tags=["qr"])
async def generate_token(
    request: Request, body: dict[str, Any] | None = Body(default=None)
) -> dict[str, Any]:
    payload = parse_payload(GenerateQRPayload, body or {})
    token = await _coordinator(request).request_transfer(payload.session_id)
    return ok(token.to_wire())


@router.post("/qr/validate", tags=["qr"])
async def validate_token(
    request: Request, body: dict[str, Any] | None = Body(default=None)
) -> dict[str, Any]:
    """Redeem a token exactly as a kiosk scan would, without a live kiosk connection."""
    payload = parse_payload(ScanPayload, body or {})
    snapshot = await _coordinator(request).complete_transfer(
        payload.token_id, payload.signature, payload.kiosk_id
    )
    return ok({"sessionId": snapshot.session_id, "session": snapshot.to_wire()})


@router.delete("/qr/{token_id}", tags=["qr"])
async def expire_token(request: Request, token_id: str) -> dict[str, Any]:
    deleted = await _coordinator(request).expire_token(token_id)
    message = "QR code expired successfully" if deleted else "QR code not found"
    return ok({"tokenId": token_id, "deleted": deleted}, message=message)


# ---------------------------------------------------------------------------
# Kiosk
# ---------------------------------------------------------------------------


@router.post("/kiosk/associate", tags=["kiosk"])
async def request_associate(
    request: Request, body: dict[str, Any] | None = Body(default=None)
) -> dict[str, Any]:
    payload = parse_payload(AssociatePayload, body or {})
    ack = await _coordinator(request).request_associate(
        payload.session_id, payload.product_id, payload.kiosk_id
    )
    return ok(ack.to_wire())


__all__ = ["ok", "router"]
