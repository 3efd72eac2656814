"""Channel event names and payload models.

Frames on both channels are JSON objects ``{"event": <name>, "data": {...}}``.
Inbound ``data`` is validated with the models below; a payload that does
not validate is reported back with the model's ``required_message``.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar, TypeVar

from pydantic import AliasChoices, ConfigDict, Field, ValidationError

from kiosk_handoff.errors import InvalidPayloadError
from kiosk_handoff.session.state import WireModel


class MobileEvent(str, Enum):
    MESSAGE = "mobile:message"
    GENERATE_QR = "mobile:generateQR"
    IDENTIFY = "mobile:identify"
    # outbound
    WELCOME = "mobile:welcome"
    AI_RESPONSE = "mobile:aiResponse"
    QR_GENERATED = "mobile:qrGenerated"
    IDENTIFIED = "mobile:identified"
    SESSION_TRANSFERRED = "mobile:sessionTransferred"
    ERROR = "mobile:error"


class KioskEvent(str, Enum):
    SCAN_QR = "kiosk:scanQR"
    REQUEST_ASSOCIATE = "kiosk:requestAssociate"
    IDENTIFY = "kiosk:identify"
    # outbound
    WELCOME = "kiosk:welcome"
    SESSION_DATA = "kiosk:sessionData"
    INVALID_QR = "kiosk:invalidQR"
    ASSOCIATE_REQUESTED = "kiosk:associateRequested"
    IDENTIFIED = "kiosk:identified"
    ERROR = "kiosk:error"


# ---------------------------------------------------------------------------
# Inbound payloads
# ---------------------------------------------------------------------------


class InboundPayload(WireModel):
    """Base for inbound event data; strings are stripped and blank means missing."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    required_message: ClassVar[str] = "Invalid payload"


class MessagePayload(InboundPayload):
    required_message: ClassVar[str] = "sessionId, userId, and message are required"

    session_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    message: str = Field(min_length=1)


class GenerateQRPayload(InboundPayload):
    required_message: ClassVar[str] = "sessionId is required"

    session_id: str = Field(min_length=1)


class MobileIdentifyPayload(InboundPayload):
    required_message: ClassVar[str] = "userId is required"

    user_id: str = Field(min_length=1)


class ScanPayload(InboundPayload):
    """A scanned QR payload; older kiosks send ``qrId`` instead of ``tokenId``."""

    required_message: ClassVar[str] = "tokenId and signature are required"

    token_id: str = Field(
        min_length=1, validation_alias=AliasChoices("tokenId", "qrId", "token_id")
    )
    signature: str = Field(min_length=1)
    kiosk_id: str | None = None


class AssociatePayload(InboundPayload):
    required_message: ClassVar[str] = "sessionId and productId are required"

    session_id: str = Field(min_length=1)
    product_id: str = Field(min_length=1)
    kiosk_id: str | None = None


class KioskIdentifyPayload(InboundPayload):
    required_message: ClassVar[str] = "kioskId is required"

    kiosk_id: str = Field(min_length=1)


PayloadT = TypeVar("PayloadT", bound=InboundPayload)


def parse_payload(model: type[PayloadT], data: Any) -> PayloadT:
    """Validate ``data`` against ``model``.

    Raises
    ------
    InvalidPayloadError
        With ``model.required_message`` when ``data`` is not a mapping or
        fails validation.
    """
    if not isinstance(data, dict):
        raise InvalidPayloadError(model.required_message)
    try:
        return model.model_validate(data)
    except ValidationError:
        raise InvalidPayloadError(model.required_message) from None


__all__ = [
    "AssociatePayload",
    "GenerateQRPayload",
    "InboundPayload",
    "KioskEvent",
    "KioskIdentifyPayload",
    "MessagePayload",
    "MobileEvent",
    "MobileIdentifyPayload",
    "ScanPayload",
    "parse_payload",
]
