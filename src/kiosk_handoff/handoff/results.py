"""Results returned by the handoff coordinator.

Each result knows how to render itself for the channel event and for the
request API, which use slightly different field names.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import Field

from kiosk_handoff.intent.extractor import ParsedMessage
from kiosk_handoff.intent.recommender import Recommendations
from kiosk_handoff.session.state import (
    ChatMessage,
    ParsedIntent,
    SessionStatus,
    ShoppingSession,
    WireModel,
)


@dataclass
class MessageResult:
    """Outcome of one shopper message.

    Parameters
    ----------
    session:
        The session after the user and assistant turns were appended.
    parsed:
        Extraction result for the message.
    recommendations:
        Products recommended for the updated intent.
    reply:
        Assistant reply text (also the last history entry).
    """

    session: ShoppingSession
    parsed: ParsedMessage
    recommendations: Recommendations = field(default_factory=Recommendations)
    reply: str = ""

    def to_event(self) -> dict[str, Any]:
        """Payload of ``mobile:aiResponse``."""
        return {
            "sessionId": self.session.session_id,
            "message": self.reply,
            "intent": self.parsed.intent.to_wire(),
            "tags": list(self.session.tags),
            "recommendations": self.recommendations.products_wire(),
            "confidence": self.parsed.confidence,
        }

    def to_response(self) -> dict[str, Any]:
        """``data`` of ``POST /api/chat/message``."""
        return {
            "sessionId": self.session.session_id,
            "aiResponse": self.reply,
            "parsedIntent": self.parsed.intent.to_wire(),
            "tags": list(self.session.tags),
            "recommendations": self.recommendations.products_wire(),
        }


class SessionSnapshot(WireModel):
    """What a kiosk receives when it takes over a session."""

    session_id: str
    user_id: str
    status: SessionStatus
    parsed_intent: ParsedIntent
    tags: list[str] = Field(default_factory=list)
    conversation_history: list[ChatMessage] = Field(default_factory=list)
    recommendations: list[dict[str, Any]] = Field(default_factory=list)
    explanations: list[str] = Field(default_factory=list)
    confidence: float = 0.0
    kiosk_id: str | None = None

    @classmethod
    def build(
        cls,
        session: ShoppingSession,
        recommendations: Recommendations,
        kiosk_id: str | None = None,
    ) -> "SessionSnapshot":
        return cls(
            session_id=session.session_id,
            user_id=session.user_id,
            status=session.status,
            parsed_intent=session.parsed_intent,
            tags=list(session.tags),
            conversation_history=list(session.conversation_history),
            recommendations=recommendations.products_wire(),
            explanations=list(recommendations.explanations),
            confidence=recommendations.confidence,
            kiosk_id=kiosk_id,
        )


@dataclass(frozen=True)
class AssociateAck:
    """Acknowledgement of a kiosk's request for a store associate."""

    session_id: str
    product_id: str
    product_name: str
    kiosk_id: str | None = None
    message: str = "Associate request received"

    def to_wire(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "sessionId": self.session_id,
            "productId": self.product_id,
            "productName": self.product_name,
            "kioskId": self.kiosk_id,
        }


__all__ = ["AssociateAck", "MessageResult", "SessionSnapshot"]
