"""Handoff coordination subpackage.

Public surface
--------------
- HandoffCoordinator — chat, token issue and kiosk takeover
- ChannelTransport, NullChannel — outbound event delivery
- MobileEvent, KioskEvent — channel event names
- MessageResult, SessionSnapshot, AssociateAck — operation results
"""
from __future__ import annotations

from kiosk_handoff.handoff.channels import ChannelTransport, NullChannel
from kiosk_handoff.handoff.coordinator import HandoffCoordinator
from kiosk_handoff.handoff.events import KioskEvent, MobileEvent
from kiosk_handoff.handoff.results import AssociateAck, MessageResult, SessionSnapshot

__all__ = [
    "AssociateAck",
    "ChannelTransport",
    "HandoffCoordinator",
    "KioskEvent",
    "MessageResult",
    "MobileEvent",
    "NullChannel",
    "SessionSnapshot",
]
