"""Assembly of stores, services and the coordinator from settings.

Classes
-------
- HandoffRuntime  — the wired-up object graph, with ``close``

Functions
---------
- build_runtime   — construct a ``HandoffRuntime`` from ``HandoffSettings``
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from kiosk_handoff.catalog.catalog import ProductCatalog
from kiosk_handoff.config import HandoffSettings
from kiosk_handoff.errors import ConfigurationError
from kiosk_handoff.handoff.channels import ChannelTransport
from kiosk_handoff.handoff.coordinator import HandoffCoordinator
from kiosk_handoff.kv.base import AsyncKeyValueStore
from kiosk_handoff.kv.memory import AsyncInMemoryStore
from kiosk_handoff.kv.redis import AsyncRedisStore, make_redis_client
from kiosk_handoff.registry.connections import ConnectionRegistry
from kiosk_handoff.session.store import SessionStore
from kiosk_handoff.storage.async_base import AsyncRecordBackend
from kiosk_handoff.storage.async_memory import AsyncInMemoryBackend
from kiosk_handoff.storage.async_redis import AsyncRedisBackend
from kiosk_handoff.storage.async_sqlite import AsyncSQLiteBackend
from kiosk_handoff.sweeper import ExpirySweeper
from kiosk_handoff.tokens.service import TokenService

logger = logging.getLogger(__name__)


@dataclass
class HandoffRuntime:
    """Everything a server or CLI process needs, built once per process."""

    settings: HandoffSettings
    kv: AsyncKeyValueStore
    sessions: SessionStore
    catalog: ProductCatalog
    tokens: TokenService
    registry: ConnectionRegistry
    sweeper: ExpirySweeper
    coordinator: HandoffCoordinator
    _closers: list[Callable[[], Awaitable[None]]] = field(default_factory=list, repr=False)

    async def seed_catalog(self) -> int:
        """Load ``settings.catalog_path`` into the catalog, if configured."""
        if self.settings.catalog_path is None:
            return 0
        return await self.catalog.load_file(self.settings.catalog_path)

    async def close(self) -> None:
        """Stop the sweeper and release store connections."""
        await self.sweeper.stop()
        for closer in self._closers:
            await closer()
        self._closers.clear()


def _record_backends(
    settings: HandoffSettings, redis_client: Any | None
) -> tuple[AsyncRecordBackend, AsyncRecordBackend]:
    if settings.record_backend == "sqlite":
        return (
            AsyncSQLiteBackend(settings.sqlite_path, namespace="sessions"),
            AsyncSQLiteBackend(settings.sqlite_path, namespace="products"),
        )
    if settings.record_backend == "redis":
        if redis_client is None:
            raise ConfigurationError("record_backend 'redis' requires a Redis URL")
        return (
            AsyncRedisBackend(client=redis_client, key_prefix="session:"),
            AsyncRedisBackend(client=redis_client, key_prefix="product:"),
        )
    return AsyncInMemoryBackend("sessions"), AsyncInMemoryBackend("products")


def build_runtime(
    settings: HandoffSettings | None = None,
    *,
    kv: AsyncKeyValueStore | None = None,
    mobile: ChannelTransport | None = None,
    kiosk: ChannelTransport | None = None,
    clock: Callable[[], float] = time.time,
) -> HandoffRuntime:
    """Wire up a runtime.

    Parameters
    ----------
    settings:
        Configuration; loaded from the environment when omitted.
    kv:
        Shared key-value store to use instead of the configured one.
    mobile, kiosk:
        Channel transports for the coordinator.
    clock:
        Time source for token expiry.

    Raises
    ------
    ConfigurationError
        If the Redis record backend is selected without a Redis URL.
    """
    settings = settings or HandoffSettings()
    closers: list[Callable[[], Awaitable[None]]] = []

    redis_client = None
    if settings.redis_url:
        redis_client = make_redis_client(settings.redis_url)
        closers.append(redis_client.aclose)

    if kv is None:
        if redis_client is not None:
            kv = AsyncRedisStore(client=redis_client)
        else:
            logger.warning(
                "No Redis URL configured; using an in-process store. "
                "Tokens and registrations will not be shared between processes."
            )
            kv = AsyncInMemoryStore(clock=clock)

    if settings.signing_secret is None:
        logger.warning("No signing secret configured; transfer tokens are disabled")

    session_backend, product_backend = _record_backends(settings, redis_client)
    sessions = SessionStore(session_backend)
    catalog = ProductCatalog(product_backend)
    tokens = TokenService(
        kv,
        settings.secret_bytes(),
        ttl_seconds=settings.token_ttl_seconds,
        clock=clock,
    )
    registry = ConnectionRegistry(kv, ttl_seconds=settings.registry_ttl_seconds)
    sweeper = ExpirySweeper(kv, interval=settings.sweep_interval_seconds)
    coordinator = HandoffCoordinator(
        sessions=sessions,
        tokens=tokens,
        registry=registry,
        catalog=catalog,
        mobile=mobile,
        kiosk=kiosk,
        mobile_recommendation_limit=settings.mobile_recommendation_limit,
        kiosk_recommendation_limit=settings.kiosk_recommendation_limit,
    )
    return HandoffRuntime(
        settings=settings,
        kv=kv,
        sessions=sessions,
        catalog=catalog,
        tokens=tokens,
        registry=registry,
        sweeper=sweeper,
        coordinator=coordinator,
        _closers=closers,
    )


__all__ = ["HandoffRuntime", "build_runtime"]
