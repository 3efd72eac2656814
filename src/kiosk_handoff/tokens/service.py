"""Signed, single-use, time-bound transfer tokens.

A token is an opaque random id plus an HMAC-SHA256 signature.  The id and
signature are all a scanning device ever sees; the session id and issue
time stay server-side in the shared key-value store under ``qr:<tokenId>``
and are what the signature is computed over.

Every validation attempt that finds a stored entry deletes it, so each
token is consumed exactly once by whoever presents it first, whether the
signature matches or not.

Classes
-------
- IssuedToken   — result of ``TokenService.issue``
- TokenService  — issue, validate and expire tokens
"""
from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from kiosk_handoff.errors import ConfigurationError, InvalidPayloadError, TokenNotFoundError
from kiosk_handoff.kv.base import AsyncKeyValueStore
from kiosk_handoff.tokens.render import render_qr_data_url

logger = logging.getLogger(__name__)

TOKEN_KEY_PREFIX = "qr:"
DEFAULT_TOKEN_TTL_SECONDS = 300


def token_key(token_id: str) -> str:
    """Return the shared-store key for ``token_id``."""
    return f"{TOKEN_KEY_PREFIX}{token_id}"


def sign_token(secret: bytes, token_id: str, session_id: str, issued_at: int) -> str:
    """Return the hex HMAC-SHA256 signature of a token.

    The signed message is the compact, key-sorted JSON object
    ``{"issuedAt", "sessionId", "tokenId"}``.
    """
    message = json.dumps(
        {"issuedAt": issued_at, "sessionId": session_id, "tokenId": token_id},
        sort_keys=True,
        separators=(",", ":"),
    )
    return hmac.new(secret, message.encode("utf-8"), hashlib.sha256).hexdigest()


@dataclass(frozen=True)
class IssuedToken:
    """A freshly issued transfer token.

    Parameters
    ----------
    token_id:
        Opaque random identifier.
    signature:
        Hex HMAC-SHA256 signature.
    issued_at:
        Issue time in epoch milliseconds.
    expires_at:
        When the token stops being redeemable (UTC).
    image:
        PNG data URL of the QR code encoding ``qr_payload()``, or None when
        rendering is disabled.
    """

    token_id: str
    signature: str
    issued_at: int
    expires_at: datetime
    image: str | None = None

    def qr_payload(self) -> dict[str, str]:
        """Return the payload encoded in the QR image: id and signature only."""
        return {"tokenId": self.token_id, "signature": self.signature}

    def to_wire(self) -> dict[str, Any]:
        return {
            "tokenId": self.token_id,
            "signature": self.signature,
            "expiresAt": self.expires_at.isoformat(),
            "qrImage": self.image,
        }


class TokenService:
    """Issue and redeem transfer tokens.

    Parameters
    ----------
    store:
        Shared key-value store holding ``qr:<tokenId>`` entries.
    secret:
        HMAC signing secret.  When None, ``issue`` and ``validate`` raise
        ``ConfigurationError``.
    ttl_seconds:
        Token lifetime (default 300).
    clock:
        Returns the current time in epoch seconds; injectable for tests.
    renderer:
        Turns the QR payload text into an image data URL.  Pass None to
        skip rendering.
    """

    def __init__(
        self,
        store: AsyncKeyValueStore,
        secret: str | bytes | None,
        *,
        ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
        renderer: Callable[[str], str] | None = render_qr_data_url,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        if isinstance(secret, str):
            secret = secret.encode("utf-8")
        self._store = store
        self._secret = secret or None
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._renderer = renderer

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def _require_secret(self) -> bytes:
        if self._secret is None:
            logger.error("Token signing secret is not configured")
            raise ConfigurationError("Signing secret is not configured")
        return self._secret

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def issue(self, session_id: str) -> IssuedToken:
        """Create and store a token for ``session_id``.

        Raises
        ------
        InvalidPayloadError
            If ``session_id`` is empty.
        ConfigurationError
            If no signing secret is configured.
        StoreUnavailableError
            If the shared store cannot be written.
        """
        if not session_id:
            raise InvalidPayloadError("sessionId is required")
        secret = self._require_secret()

        token_id = str(uuid.uuid4())
        now = self._clock()
        issued_at = int(now * 1000)
        signature = sign_token(secret, token_id, session_id, issued_at)

        await self._store.set(
            token_key(token_id),
            json.dumps({"sessionId": session_id, "issuedAt": issued_at}),
            ttl_seconds=self._ttl_seconds,
        )

        expires_at = datetime.fromtimestamp(
            (issued_at / 1000) + self._ttl_seconds, tz=timezone.utc
        )
        token = IssuedToken(
            token_id=token_id,
            signature=signature,
            issued_at=issued_at,
            expires_at=expires_at,
        )
        if self._renderer is not None:
            image = self._renderer(json.dumps(token.qr_payload(), separators=(",", ":")))
            token = IssuedToken(token_id, signature, issued_at, expires_at, image)

        logger.info("Issued transfer token %s for session %s", token_id, session_id)
        return token

    async def validate(self, token_id: str, signature: str) -> str:
        """Redeem a token and return the session id it was issued for.

        The stored entry is claimed and deleted atomically whenever one is
        found, whatever the outcome, so a token redeems at most once.

        Raises
        ------
        TokenNotFoundError
            If the token was never issued, has expired, was already used,
            or the signature does not match.
        ConfigurationError
            If no signing secret is configured.
        StoreUnavailableError
            If the shared store cannot be reached.
        """
        if not token_id or not signature:
            raise TokenNotFoundError()
        secret = self._require_secret()

        key = token_key(token_id)
        raw = await self._store.pop(key)
        if raw is None:
            raise TokenNotFoundError()

        try:
            stored = json.loads(raw)
            session_id = str(stored["sessionId"])
            issued_at = int(stored["issuedAt"])
        except (ValueError, KeyError, TypeError):
            logger.warning("Discarding malformed token entry %s", token_id)
            raise TokenNotFoundError() from None

        if issued_at + self._ttl_seconds * 1000 <= int(self._clock() * 1000):
            logger.info("Rejected expired transfer token %s", token_id)
            raise TokenNotFoundError()

        expected = sign_token(secret, token_id, session_id, issued_at)
        if not hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8")):
            logger.warning("Invalid signature for transfer token %s", token_id)
            raise TokenNotFoundError()

        logger.info("Redeemed transfer token %s for session %s", token_id, session_id)
        return session_id

    async def expire(self, token_id: str) -> bool:
        """Delete a token; True if it existed."""
        if not token_id:
            return False
        removed = await self._store.delete(token_key(token_id))
        if removed:
            logger.info("Expired transfer token %s", token_id)
        return removed


__all__ = [
    "DEFAULT_TOKEN_TTL_SECONDS",
    "IssuedToken",
    "TOKEN_KEY_PREFIX",
    "TokenService",
    "sign_token",
    "token_key",
]
