"""Error taxonomy for the handoff core.

Every error carries a ``message`` that is safe to show to a client.  The
channel and request boundaries convert these into error payloads; nothing
here is meant to terminate a connection.

Classes
-------
- HandoffError             — base class for all domain errors
- InvalidPayloadError      — missing or malformed required fields
- NotFoundError            — base for absent tokens, sessions and products
- TokenNotFoundError       — token absent, expired, tampered or already used
- SessionNotFoundError     — no session record for the given id
- ProductNotFoundError     — no catalog entry for the given id
- ConfigurationError       — a required setting (signing secret) is missing
- StoreUnavailableError    — the shared key-value store cannot be reached
- InvalidStatusTransition  — a session status change would move backwards
"""
from __future__ import annotations


class HandoffError(Exception):
    """Base class for all handoff errors.

    Parameters
    ----------
    message:
        Human-readable description suitable for a client payload.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidPayloadError(HandoffError):
    """Raised when a request or event lacks a required field."""


class NotFoundError(HandoffError):
    """Raised when a referenced entity does not exist."""


class TokenNotFoundError(NotFoundError):
    """Raised when a transfer token cannot be redeemed.

    The message is identical for every cause (never issued, expired,
    tampered, already used) so that a scanning client learns nothing about
    which case occurred.
    """

    def __init__(self) -> None:
        super().__init__("Invalid or expired QR code")


class SessionNotFoundError(NotFoundError):
    """Raised when a requested session does not exist in the store."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__("Session not found")


class ProductNotFoundError(NotFoundError):
    """Raised when a requested product does not exist in the catalog."""

    def __init__(self, product_id: str) -> None:
        self.product_id = product_id
        super().__init__("Product not found")


class ConfigurationError(HandoffError):
    """Raised when an operation needs a setting that is not configured."""


class StoreUnavailableError(HandoffError):
    """Raised when the shared key-value store cannot serve a request."""


class InvalidStatusTransition(HandoffError, ValueError):
    """Raised when a session status change is not a forward move."""

    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot move session status from {current!r} to {requested!r}"
        )


__all__ = [
    "ConfigurationError",
    "HandoffError",
    "InvalidPayloadError",
    "InvalidStatusTransition",
    "NotFoundError",
    "ProductNotFoundError",
    "SessionNotFoundError",
    "StoreUnavailableError",
    "TokenNotFoundError",
]
