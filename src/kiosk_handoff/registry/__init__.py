"""Connection registry subpackage."""
from __future__ import annotations

from kiosk_handoff.registry.connections import Channel, ConnectionRegistry, registry_key

__all__ = ["Channel", "ConnectionRegistry", "registry_key"]
