"""Mobile-to-kiosk handoff coordination.

Design
------
:class:`HandoffCoordinator` ties the token service, the connection
registry, the session store and the intent/recommendation collaborators
together.  It is the only writer of a session's status and transfer token
fields; the message path is the only writer of its conversation, intent
and tags.

The coordinator holds no module-level state: the mobile and kiosk channel
transports are passed in at construction.  Operations raise the errors in
:mod:`kiosk_handoff.errors`; :meth:`HandoffCoordinator.dispatch` is the
channel boundary that turns every failure into an error event.

Usage
-----
::

    coordinator = HandoffCoordinator(
        sessions=SessionStore(AsyncInMemoryBackend("sessions")),
        tokens=TokenService(kv, secret),
        registry=ConnectionRegistry(kv),
        catalog=ProductCatalog(AsyncInMemoryBackend("products")),
        mobile=mobile_channel,
        kiosk=kiosk_channel,
    )
    await coordinator.submit_message("s1", "u1", "wedding in summer, budget $200")
    token = await coordinator.request_transfer("s1")
    snapshot = await coordinator.complete_transfer(token.token_id, token.signature, "k1")
"""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from kiosk_handoff.catalog.catalog import ProductCatalog
from kiosk_handoff.errors import (
    HandoffError,
    InvalidPayloadError,
    NotFoundError,
)
from kiosk_handoff.handoff.channels import ChannelTransport, NullChannel
from kiosk_handoff.handoff.events import (
    AssociatePayload,
    GenerateQRPayload,
    KioskEvent,
    KioskIdentifyPayload,
    MessagePayload,
    MobileEvent,
    MobileIdentifyPayload,
    ScanPayload,
    parse_payload,
)
from kiosk_handoff.handoff.results import AssociateAck, MessageResult, SessionSnapshot
from kiosk_handoff.intent.extractor import IntentExtractor
from kiosk_handoff.intent.recommender import Recommender
from kiosk_handoff.registry.connections import Channel, ConnectionRegistry
from kiosk_handoff.session.state import Sender, ShoppingSession
from kiosk_handoff.session.store import SessionStore
from kiosk_handoff.tokens.service import IssuedToken, TokenService

logger = logging.getLogger(__name__)

DEFAULT_REPLY = "Got it. I will keep this in mind."

_Handler = Callable[[str, Any], Awaitable[None]]

_ERROR_EVENTS: dict[Channel, str] = {
    Channel.MOBILE: MobileEvent.ERROR.value,
    Channel.KIOSK: KioskEvent.ERROR.value,
}

_GENERIC_ERRORS: dict[str, str] = {
    MobileEvent.MESSAGE.value: "Error processing message",
    MobileEvent.GENERATE_QR.value: "Error generating QR code",
    KioskEvent.SCAN_QR.value: "Error processing QR code",
    KioskEvent.REQUEST_ASSOCIATE.value: "Error processing associate request",
}


class HandoffCoordinator:
    """Coordinate chat, token issue and kiosk takeover for shopping sessions.

    Parameters
    ----------
    sessions:
        Session persistence.
    tokens:
        Transfer token service.
    registry:
        Live connection registry.
    catalog:
        Product catalog used for recommendations and associate requests.
    extractor:
        Intent extractor; a default ``IntentExtractor`` when omitted.
    recommender:
        Recommender; one over ``catalog`` when omitted.
    mobile, kiosk:
        Channel transports.  Default to a ``NullChannel`` that drops events.
    mobile_recommendation_limit:
        Products returned with each chat reply (default 3).
    kiosk_recommendation_limit:
        Products returned to a kiosk on takeover (default 5).
    """

    def __init__(
        self,
        *,
        sessions: SessionStore,
        tokens: TokenService,
        registry: ConnectionRegistry,
        catalog: ProductCatalog,
        extractor: IntentExtractor | None = None,
        recommender: Recommender | None = None,
        mobile: ChannelTransport | None = None,
        kiosk: ChannelTransport | None = None,
        mobile_recommendation_limit: int = 3,
        kiosk_recommendation_limit: int = 5,
    ) -> None:
        self.sessions = sessions
        self.tokens = tokens
        self.registry = registry
        self.catalog = catalog
        self.extractor = extractor or IntentExtractor()
        self.recommender = recommender or Recommender(catalog)
        self._channels: dict[Channel, ChannelTransport] = {
            Channel.MOBILE: mobile or NullChannel("mobile"),
            Channel.KIOSK: kiosk or NullChannel("kiosk"),
        }
        self._mobile_limit = mobile_recommendation_limit
        self._kiosk_limit = kiosk_recommendation_limit
        self._routes: dict[tuple[Channel, str], _Handler] = {
            (Channel.MOBILE, MobileEvent.MESSAGE.value): self._on_mobile_message,
            (Channel.MOBILE, MobileEvent.GENERATE_QR.value): self._on_generate_qr,
            (Channel.MOBILE, MobileEvent.IDENTIFY.value): self._on_mobile_identify,
            (Channel.KIOSK, KioskEvent.SCAN_QR.value): self._on_scan,
            (Channel.KIOSK, KioskEvent.REQUEST_ASSOCIATE.value): self._on_request_associate,
            (Channel.KIOSK, KioskEvent.IDENTIFY.value): self._on_kiosk_identify,
        }

    def channel(self, channel: Channel) -> ChannelTransport:
        return self._channels[Channel(channel)]

    def attach_channel(self, channel: Channel, transport: ChannelTransport) -> None:
        """Replace the transport used for ``channel``."""
        self._channels[Channel(channel)] = transport

    # ------------------------------------------------------------------
    # Mobile operations
    # ------------------------------------------------------------------

    async def submit_message(
        self,
        session_id: str,
        user_id: str,
        text: str,
        *,
        handle: str | None = None,
    ) -> MessageResult:
        """Record a shopper message and produce the assistant reply.

        The session is created on first use.  Intent is parsed against the
        history as it stood before this message.  The user and assistant
        turns, the intent and the merged tags are then applied to the record
        as currently stored, so a transfer completed meanwhile is kept.

        Parameters
        ----------
        session_id, user_id, text:
            Required and non-blank.
        handle:
            Mobile connection handle; when given, ``user_id`` is registered
            to it so transfer notifications can reach the shopper.

        Raises
        ------
        InvalidPayloadError
            If a required field is blank.
        """
        if not session_id or not user_id or not text or not text.strip():
            raise InvalidPayloadError(MessagePayload.required_message)
        text = text.strip()

        if handle:
            await self.registry.register(Channel.MOBILE, user_id, handle)

        current = await self.sessions.load_or_create(session_id, user_id)
        parsed = self.extractor.parse_message(text, current.conversation_history)
        recommendations = await self.recommender.recommend(parsed.intent, self._mobile_limit)
        reply = parsed.summary or DEFAULT_REPLY

        def _record_turn(session: ShoppingSession) -> None:
            session.add_message(text, Sender.USER)
            session.parsed_intent = parsed.intent
            session.merge_tags(parsed.tags)
            session.add_message(reply, Sender.AI)

        session = await self.sessions.update(session_id, _record_turn, user_id=user_id)

        return MessageResult(
            session=session, parsed=parsed, recommendations=recommendations, reply=reply
        )

    async def request_transfer(self, session_id: str) -> IssuedToken:
        """Issue a transfer token for an existing session.

        The session's ``qr_code``/``qr_expiry`` point at the new token; its
        status is unchanged.

        Raises
        ------
        InvalidPayloadError
            If ``session_id`` is blank.
        SessionNotFoundError
            If the session does not exist.
        ConfigurationError
            If no signing secret is configured.
        """
        if not session_id:
            raise InvalidPayloadError(GenerateQRPayload.required_message)
        await self.sessions.load(session_id)
        token = await self.tokens.issue(session_id)
        await self.sessions.update(
            session_id, lambda session: session.attach_token(token.token_id, token.expires_at)
        )
        return token

    # ------------------------------------------------------------------
    # Kiosk operations
    # ------------------------------------------------------------------

    async def complete_transfer(
        self,
        token_id: str,
        signature: str,
        kiosk_id: str | None = None,
        *,
        handle: str | None = None,
    ) -> SessionSnapshot:
        """Redeem a scanned token and hand the session to the kiosk.

        The token is consumed even when the session it points to no longer
        exists.  The shopper's mobile connection, if registered, is told
        about the transfer on a best-effort basis.

        Parameters
        ----------
        token_id, signature:
            The scanned QR payload.
        kiosk_id:
            Scanning kiosk; registered to ``handle`` when both are given.
        handle:
            Kiosk connection handle; when given, the snapshot is pushed to
            it as ``kiosk:sessionData``.

        Raises
        ------
        InvalidPayloadError
            If ``token_id`` or ``signature`` is blank.
        TokenNotFoundError
            If the token cannot be redeemed.
        SessionNotFoundError
            If the session was deleted after the token was issued.
        """
        if not token_id or not signature:
            raise InvalidPayloadError(ScanPayload.required_message)
        if kiosk_id and handle:
            await self.registry.register(Channel.KIOSK, kiosk_id, handle)

        session_id = await self.tokens.validate(token_id, signature)
        session = await self.sessions.update(
            session_id, lambda session: session.mark_transferred()
        )

        recommendations = await self.recommender.recommend(
            session.parsed_intent, self._kiosk_limit
        )
        snapshot = SessionSnapshot.build(session, recommendations, kiosk_id)
        if handle:
            await self.channel(Channel.KIOSK).send(
                handle, KioskEvent.SESSION_DATA.value, snapshot.to_wire()
            )
        await self._notify_transferred(session, kiosk_id)

        logger.info(
            "Session %s transferred to kiosk %s", session.session_id, kiosk_id or "unknown"
        )
        return snapshot

    async def request_associate(
        self,
        session_id: str,
        product_id: str,
        kiosk_id: str | None = None,
    ) -> AssociateAck:
        """Acknowledge a kiosk's request for a store associate.

        Nothing is mutated; the request is logged for staff.

        Raises
        ------
        InvalidPayloadError
            If ``session_id`` or ``product_id`` is blank.
        SessionNotFoundError, ProductNotFoundError
            If either does not exist.
        """
        if not session_id or not product_id:
            raise InvalidPayloadError(AssociatePayload.required_message)
        session = await self.sessions.load(session_id)
        product = await self.catalog.get(product_id)
        if kiosk_id:
            await self.registry.touch(Channel.KIOSK, kiosk_id)

        logger.info(
            "Associate requested at kiosk %s: session=%s user=%s product=%s (%s)",
            kiosk_id or "unknown",
            session.session_id,
            session.user_id,
            product.name,
            product.product_id,
        )
        return AssociateAck(
            session_id=session.session_id,
            product_id=product.product_id,
            product_name=product.name,
            kiosk_id=kiosk_id,
        )

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    async def on_connect(self, channel: Channel, handle: str) -> None:
        """Greet a new connection with ``<channel>:welcome``."""
        channel = Channel(channel)
        logger.info("%s client connected: %s", channel.value.capitalize(), handle)
        event = MobileEvent.WELCOME if channel is Channel.MOBILE else KioskEvent.WELCOME
        await self.channel(channel).send(
            handle,
            event.value,
            {"message": f"Connected to {channel.value} namespace", "socketId": handle},
        )

    async def identify(self, channel: Channel, identity: str, handle: str) -> dict[str, Any]:
        """Register ``identity`` to ``handle`` and return the acknowledgement."""
        channel = Channel(channel)
        if not identity:
            model = MobileIdentifyPayload if channel is Channel.MOBILE else KioskIdentifyPayload
            raise InvalidPayloadError(model.required_message)
        await self.registry.register(channel, identity, handle)
        key = "userId" if channel is Channel.MOBILE else "kioskId"
        return {key: identity, "socketId": handle}

    async def disconnect(self, channel: Channel, handle: str) -> str | None:
        """Drop the registration pointing at ``handle``; returns its identity."""
        channel = Channel(channel)
        logger.info("%s client disconnected: %s", channel.value.capitalize(), handle)
        return await self.registry.unregister_by_handle(channel, handle)

    # ------------------------------------------------------------------
    # Request API helpers
    # ------------------------------------------------------------------

    async def get_session(self, session_id: str) -> ShoppingSession:
        return await self.sessions.load(session_id)

    async def delete_session(self, session_id: str) -> None:
        await self.sessions.delete(session_id)
        logger.info("Deleted session %s", session_id)

    async def expire_token(self, token_id: str) -> bool:
        if not token_id:
            raise InvalidPayloadError("tokenId is required")
        return await self.tokens.expire(token_id)

    # ------------------------------------------------------------------
    # Channel boundary
    # ------------------------------------------------------------------

    async def dispatch(self, channel: Channel, handle: str, event: str, data: Any) -> None:
        """Route an inbound event and send its reply.

        No exception escapes: domain errors become ``<channel>:error`` (or
        ``kiosk:invalidQR`` for a scan that cannot be honoured) carrying
        the error message, and unexpected failures are logged and reported
        with a generic message.
        """
        channel = Channel(channel)
        try:
            handler = self._routes.get((channel, event))
            if handler is None:
                raise InvalidPayloadError(f"Unknown event {event!r}")
            await handler(handle, data)
        except (InvalidPayloadError, NotFoundError) as exc:
            if event == KioskEvent.SCAN_QR.value:
                await self._reply(channel, handle, KioskEvent.INVALID_QR.value, exc.message)
            else:
                await self._reply(channel, handle, _ERROR_EVENTS[channel], exc.message)
        except HandoffError as exc:
            logger.warning("%s failed for %s: %s", event, handle, exc.message)
            await self._reply(channel, handle, _ERROR_EVENTS[channel], exc.message)
        except Exception:  # noqa: BLE001
            logger.exception("Error handling %s from %s", event, handle)
            await self._reply(
                channel,
                handle,
                _ERROR_EVENTS[channel],
                _GENERIC_ERRORS.get(event, "Error processing event"),
            )

    async def _reply(self, channel: Channel, handle: str, event: str, message: str) -> None:
        await self.channel(channel).send(handle, event, {"message": message})

    async def _notify_transferred(self, session: ShoppingSession, kiosk_id: str | None) -> None:
        mobile_handle = await self.registry.lookup(Channel.MOBILE, session.user_id)
        if mobile_handle is None:
            return
        try:
            await self.channel(Channel.MOBILE).send(
                mobile_handle,
                MobileEvent.SESSION_TRANSFERRED.value,
                {
                    "sessionId": session.session_id,
                    "message": "Your session has been transferred to the kiosk",
                    "kioskId": kiosk_id or "unknown",
                },
            )
        except Exception:  # noqa: BLE001
            logger.warning("Could not notify mobile client of user %s", session.user_id, exc_info=True)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    async def _on_mobile_message(self, handle: str, data: Any) -> None:
        payload = parse_payload(MessagePayload, data)
        result = await self.submit_message(
            payload.session_id, payload.user_id, payload.message, handle=handle
        )
        await self.channel(Channel.MOBILE).send(
            handle, MobileEvent.AI_RESPONSE.value, result.to_event()
        )

    async def _on_generate_qr(self, handle: str, data: Any) -> None:
        payload = parse_payload(GenerateQRPayload, data)
        token = await self.request_transfer(payload.session_id)
        await self.channel(Channel.MOBILE).send(
            handle, MobileEvent.QR_GENERATED.value, token.to_wire()
        )

    async def _on_mobile_identify(self, handle: str, data: Any) -> None:
        payload = parse_payload(MobileIdentifyPayload, data)
        ack = await self.identify(Channel.MOBILE, payload.user_id, handle)
        await self.channel(Channel.MOBILE).send(handle, MobileEvent.IDENTIFIED.value, ack)

    async def _on_scan(self, handle: str, data: Any) -> None:
        payload = parse_payload(ScanPayload, data)
        await self.complete_transfer(
            payload.token_id, payload.signature, payload.kiosk_id, handle=handle
        )

    async def _on_request_associate(self, handle: str, data: Any) -> None:
        payload = parse_payload(AssociatePayload, data)
        ack = await self.request_associate(
            payload.session_id, payload.product_id, payload.kiosk_id
        )
        await self.channel(Channel.KIOSK).send(
            handle, KioskEvent.ASSOCIATE_REQUESTED.value, ack.to_wire()
        )

    async def _on_kiosk_identify(self, handle: str, data: Any) -> None:
        payload = parse_payload(KioskIdentifyPayload, data)
        ack = await self.identify(Channel.KIOSK, payload.kiosk_id, handle)
        await self.channel(Channel.KIOSK).send(handle, KioskEvent.IDENTIFIED.value, ack)


__all__ = ["DEFAULT_REPLY", "HandoffCoordinator"]
