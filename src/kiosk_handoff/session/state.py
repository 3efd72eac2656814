"""Shopping session domain models.

All types are Pydantic models so that records validate on load and
serialise to the camelCase wire shape used by the mobile and kiosk
clients (``sessionId``, ``conversationHistory`` ...).  Python code uses the
snake_case attribute names; both spellings are accepted on input.

Classes
-------
- SessionStatus  — lifecycle states with forward-only transitions
- Sender         — author of a conversation message
- ChatMessage    — one conversation turn
- ParsedIntent   — structured shopping preferences
- ShoppingSession — top-level session record
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Iterable, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from kiosk_handoff.errors import InvalidStatusTransition


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WireModel(BaseModel):
    """Base model that reads and writes camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Return a JSON-compatible dict using the camelCase aliases."""
        return self.model_dump(mode="json", by_alias=True)


class SessionStatus(str, Enum):
    """Lifecycle states of a shopping session.

    Status only ever moves forward: ``active`` to ``transferred`` when a
    kiosk redeems a token, or ``active`` to ``expired``.
    """

    ACTIVE = "active"
    TRANSFERRED = "transferred"
    EXPIRED = "expired"


_FORWARD_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.ACTIVE: frozenset({SessionStatus.TRANSFERRED, SessionStatus.EXPIRED}),
    SessionStatus.TRANSFERRED: frozenset(),
    SessionStatus.EXPIRED: frozenset(),
}


class Sender(str, Enum):
    """Author of a conversation message."""

    USER = "user"
    AI = "ai"


_LEGACY_SENDERS: dict[str, str] = {"assistant": "ai", "bot": "ai", "human": "user"}


class ChatMessage(WireModel):
    """A single conversation turn.

    Older clients sent ``{content, role}`` instead of ``{text, sender}``;
    such entries are rewritten to the canonical shape on input.

    Parameters
    ----------
    text:
        Message body.
    sender:
        ``user`` or ``ai``.
    timestamp:
        When the message was recorded (UTC).
    """

    text: str = Field(min_length=1)
    sender: Sender
    timestamp: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="before")
    @classmethod
    def _normalise_legacy_shape(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "text" not in data and "content" in data:
            data["text"] = data.pop("content")
        if "sender" not in data and "role" in data:
            data["sender"] = data.pop("role")
        sender = data.get("sender")
        if isinstance(sender, str):
            sender = sender.strip().lower()
            data["sender"] = _LEGACY_SENDERS.get(sender, sender)
        text = data.get("text")
        if isinstance(text, str):
            data["text"] = text.strip()
        return data


class ParsedIntent(WireModel):
    """Structured shopping preferences extracted from the conversation.

    Parameters
    ----------
    occasion:
        ``wedding``, ``work``, ``party``, ``date``, ``casual`` or ``other``.
    style:
        ``formal``, ``business``, ``trendy``, ``classic``, ``sporty`` or
        ``casual``.
    season:
        ``summer``, ``winter``, ``spring``, ``fall`` or ``all-season``.
    budget:
        Whole-currency amount, or ``"flexible"`` when none was given.
    urgency:
        ``today``, ``this-week`` or ``flexible``.
    preferences:
        Colors, materials and fits mentioned by the shopper.
    """

    occasion: str = "other"
    style: str = "casual"
    season: str = "all-season"
    budget: int | Literal["flexible"] = "flexible"
    urgency: str = "flexible"
    preferences: list[str] = Field(default_factory=list)


class ShoppingSession(WireModel):
    """Complete record of one shopper's conversation and handoff state.

    The handoff coordinator is the only writer of ``status``, ``qr_code``
    and ``qr_expiry``; the message path is the only writer of the
    conversation, intent and tags.

    Parameters
    ----------
    session_id:
        Unique session identifier chosen by the mobile client.
    user_id:
        Logical shopper identity.
    conversation_history:
        Ordered conversation turns.
    parsed_intent:
        Latest extracted intent.
    tags:
        Hashtags accumulated across the conversation; duplicates are
        dropped and order carries no meaning.
    status:
        Lifecycle state (see ``SessionStatus``).
    qr_code:
        Id of the most recently issued transfer token.  Display/debug only;
        token validity is decided by the token service.
    qr_expiry:
        Expiry of that token.
    """

    SCHEMA_VERSION: ClassVar[str] = "1.0"

    session_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    conversation_history: list[ChatMessage] = Field(default_factory=list)
    parsed_intent: ParsedIntent = Field(default_factory=ParsedIntent)
    tags: list[str] = Field(default_factory=list)
    status: SessionStatus = SessionStatus.ACTIVE
    qr_code: str | None = None
    qr_expiry: datetime | None = None
    schema_version: str = "1.0"
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    def add_message(self, text: str, sender: Sender) -> ChatMessage:
        """Append a conversation turn and return it."""
        message = ChatMessage(text=text, sender=sender)
        self.conversation_history.append(message)
        self.updated_at = _utcnow()
        return message

    def merge_tags(self, tags: Iterable[str]) -> list[str]:
        """Add ``tags`` not already present and return the ones that were new."""
        added = [tag for tag in dict.fromkeys(tags) if tag not in self.tags]
        self.tags.extend(added)
        return added

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def transition_to(self, status: SessionStatus) -> None:
        """Move to ``status``.

        Re-applying the current status is a no-op.

        Raises
        ------
        InvalidStatusTransition
            If ``status`` is not reachable from the current status.
        """
        if status == self.status:
            return
        if status not in _FORWARD_TRANSITIONS[self.status]:
            raise InvalidStatusTransition(self.status.value, status.value)
        self.status = status
        self.updated_at = _utcnow()

    def mark_transferred(self) -> None:
        """Record that a kiosk took over this session."""
        self.transition_to(SessionStatus.TRANSFERRED)

    def mark_expired(self) -> None:
        """Record that this session is no longer usable."""
        self.transition_to(SessionStatus.EXPIRED)

    def attach_token(self, token_id: str, expires_at: datetime) -> None:
        """Point ``qr_code``/``qr_expiry`` at the most recently issued token."""
        self.qr_code = token_id
        self.qr_expiry = expires_at
        self.updated_at = _utcnow()

    @model_validator(mode="after")
    def _ensure_schema_version(self) -> "ShoppingSession":
        if not self.schema_version:
            self.schema_version = self.SCHEMA_VERSION
        return self


__all__ = [
    "ChatMessage",
    "ParsedIntent",
    "Sender",
    "SessionStatus",
    "ShoppingSession",
    "WireModel",
]
