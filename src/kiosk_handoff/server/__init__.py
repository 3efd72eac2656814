"""HTTP and WebSocket server.

Public surface
--------------
- create_app        — FastAPI application factory
- WebSocketChannel  — channel transport over live WebSocket connections
"""
from __future__ import annotations

from kiosk_handoff.server.app import create_app
from kiosk_handoff.server.sockets import WebSocketChannel

__all__ = ["WebSocketChannel", "create_app"]
