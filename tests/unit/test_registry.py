"""Unit tests for kiosk_handoff.registry.connections.ConnectionRegistry."""
from __future__ import annotations

import logging

import pytest

from kiosk_handoff.kv.memory import AsyncInMemoryStore
from kiosk_handoff.registry.connections import Channel, ConnectionRegistry, registry_key


class TestRegistryKey:
    def test_key_layout(self) -> None:
        assert registry_key(Channel.MOBILE, "u1") == "socket:mobile:u1"
        assert registry_key(Channel.KIOSK, "k1") == "socket:kiosk:k1"


class TestConnectionRegistry:
    @pytest.mark.asyncio
    async def test_register_and_lookup(self, registry: ConnectionRegistry) -> None:
        assert await registry.register(Channel.MOBILE, "u1", "h1") is True
        assert await registry.lookup(Channel.MOBILE, "u1") == "h1"

    @pytest.mark.asyncio
    async def test_last_registration_wins(self, registry: ConnectionRegistry) -> None:
        await registry.register(Channel.MOBILE, "u1", "h1")
        await registry.register(Channel.MOBILE, "u1", "h2")
        assert await registry.lookup(Channel.MOBILE, "u1") == "h2"

    @pytest.mark.asyncio
    async def test_channels_are_separate(self, registry: ConnectionRegistry) -> None:
        await registry.register(Channel.MOBILE, "same", "mobile-handle")
        await registry.register(Channel.KIOSK, "same", "kiosk-handle")
        assert await registry.lookup(Channel.MOBILE, "same") == "mobile-handle"
        assert await registry.lookup(Channel.KIOSK, "same") == "kiosk-handle"

    @pytest.mark.asyncio
    async def test_blank_identity_or_handle_ignored(self, registry: ConnectionRegistry) -> None:
        assert await registry.register(Channel.MOBILE, "", "h1") is False
        assert await registry.register(Channel.MOBILE, "u1", "") is False
        assert await registry.lookup(Channel.MOBILE, "") is None

    @pytest.mark.asyncio
    async def test_unknown_identity(self, registry: ConnectionRegistry) -> None:
        assert await registry.lookup(Channel.KIOSK, "nobody") is None

    @pytest.mark.asyncio
    async def test_unregister_by_handle(self, registry: ConnectionRegistry) -> None:
        await registry.register(Channel.KIOSK, "k1", "h1")
        await registry.register(Channel.KIOSK, "k2", "h2")
        assert await registry.unregister_by_handle(Channel.KIOSK, "h2") == "k2"
        assert await registry.lookup(Channel.KIOSK, "k2") is None
        assert await registry.lookup(Channel.KIOSK, "k1") == "h1"

    @pytest.mark.asyncio
    async def test_unregister_stale_handle_is_noop(self, registry: ConnectionRegistry) -> None:
        await registry.register(Channel.MOBILE, "u1", "old")
        await registry.register(Channel.MOBILE, "u1", "new")
        assert await registry.unregister_by_handle(Channel.MOBILE, "old") is None
        assert await registry.lookup(Channel.MOBILE, "u1") == "new"

    @pytest.mark.asyncio
    async def test_unregister_only_scans_its_channel(self, registry: ConnectionRegistry) -> None:
        await registry.register(Channel.MOBILE, "u1", "h1")
        assert await registry.unregister_by_handle(Channel.KIOSK, "h1") is None
        assert await registry.lookup(Channel.MOBILE, "u1") == "h1"


class TestRegistryTTL:
    @pytest.mark.asyncio
    async def test_register_sets_ttl(
        self, registry: ConnectionRegistry, kv: AsyncInMemoryStore
    ) -> None:
        await registry.register(Channel.MOBILE, "u1", "h1")
        assert await kv.ttl("socket:mobile:u1") == 1800

    @pytest.mark.asyncio
    async def test_touch_refreshes_ttl(
        self, registry: ConnectionRegistry, kv: AsyncInMemoryStore, clock
    ) -> None:
        await registry.register(Channel.KIOSK, "k1", "h1")
        clock.advance(1000)
        await registry.touch(Channel.KIOSK, "k1")
        assert await kv.ttl("socket:kiosk:k1") == 1800

    @pytest.mark.asyncio
    async def test_registration_lapses(self, registry: ConnectionRegistry, clock) -> None:
        await registry.register(Channel.MOBILE, "u1", "h1")
        clock.advance(1800)
        assert await registry.lookup(Channel.MOBILE, "u1") is None

    @pytest.mark.asyncio
    async def test_no_ttl(self, kv: AsyncInMemoryStore, clock) -> None:
        registry = ConnectionRegistry(kv, ttl_seconds=None)
        await registry.register(Channel.MOBILE, "u1", "h1")
        await registry.touch(Channel.MOBILE, "u1")
        clock.advance(86_400)
        assert await registry.lookup(Channel.MOBILE, "u1") == "h1"


class TestRegistryOutage:
    @pytest.mark.asyncio
    async def test_degrades_without_raising(self, down_store, caplog) -> None:
        registry = ConnectionRegistry(down_store)
        with caplog.at_level(logging.WARNING, logger="kiosk_handoff.registry.connections"):
            assert await registry.register(Channel.MOBILE, "u1", "h1") is False
            assert await registry.lookup(Channel.MOBILE, "u1") is None
            await registry.touch(Channel.MOBILE, "u1")
            assert await registry.unregister_by_handle(Channel.MOBILE, "h1") is None
        assert "Could not register mobile u1" in caplog.text
