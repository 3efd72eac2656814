#!/usr/bin/env python3
"""Example: Quickstart — kiosk-handoff

Minimal in-process handoff: a shopper chats on their phone, asks for a
transfer code, and a kiosk redeems it.  Uses the in-memory stores, so no
Redis is needed.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install kiosk-handoff
"""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Mapping

import kiosk_handoff
from kiosk_handoff import Channel, HandoffSettings, build_runtime

INVENTORY = Path(__file__).with_name("inventory.json")


class PrintingChannel:
    """Transport that prints every event instead of sending it."""

    def __init__(self, name: str) -> None:
        self.name = name

    async def send(self, handle: str, event: str, data: Mapping[str, Any]) -> bool:
        print(f"  [{self.name} -> {handle}] {event}")
        return True


async def main() -> None:
    print(f"kiosk-handoff version: {kiosk_handoff.__version__}")

    settings = HandoffSettings(signing_secret="quickstart-secret", catalog_path=INVENTORY)
    runtime = build_runtime(
        settings, mobile=PrintingChannel("mobile"), kiosk=PrintingChannel("kiosk")
    )
    coordinator = runtime.coordinator
    print(f"Catalog seeded with {await runtime.seed_catalog()} products")

    # Step 1: the shopper describes what they need
    await coordinator.identify(Channel.MOBILE, "shopper-1", "phone-1")
    result = await coordinator.submit_message(
        "session-001",
        "shopper-1",
        "I need an outfit for a summer wedding, budget around $200",
    )
    print(f"\nAssistant: {result.reply}")
    print(f"Tags: {', '.join(result.session.tags)}")
    for item in result.recommendations.products:
        print(f"  - {item.product.name} (${item.product.price:.0f}, score {item.score})")

    # Step 2: the phone asks for a transfer code
    token = await coordinator.request_transfer("session-001")
    print(f"\nTransfer token {token.token_id} expires at {token.expires_at.isoformat()}")

    # Step 3: a kiosk scans it; the phone is told about the transfer
    snapshot = await coordinator.complete_transfer(
        token.token_id, token.signature, "kiosk-7", handle="kiosk-conn-1"
    )
    print(f"Session status on kiosk: {snapshot.status.value}")

    # Step 4: a second scan of the same code is refused
    try:
        await coordinator.complete_transfer(token.token_id, token.signature, "kiosk-7")
    except kiosk_handoff.TokenNotFoundError as exc:
        print(f"Second scan rejected: {exc.message}")

    await runtime.close()


if __name__ == "__main__":
    asyncio.run(main())
