"""Shopping session subpackage.

Public surface
--------------
- ShoppingSession, ChatMessage, ParsedIntent, SessionStatus, Sender
- SessionSerializer, SchemaVersionError
- SessionStore
"""
from __future__ import annotations

from kiosk_handoff.session.serializer import SchemaVersionError, SessionSerializer
from kiosk_handoff.session.state import (
    ChatMessage,
    ParsedIntent,
    Sender,
    SessionStatus,
    ShoppingSession,
    WireModel,
)
from kiosk_handoff.session.store import SessionStore

__all__ = [
    "ChatMessage",
    "ParsedIntent",
    "SchemaVersionError",
    "Sender",
    "SessionSerializer",
    "SessionStatus",
    "SessionStore",
    "ShoppingSession",
    "WireModel",
]
