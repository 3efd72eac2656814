"""Shared fixtures for the kiosk-handoff test suite.

Everything here runs in-process: the shared store is an
``AsyncInMemoryStore`` driven by a fake clock, records live in
``AsyncInMemoryBackend`` instances and channel transports record what they
were asked to send.
"""
from __future__ import annotations

from typing import Any, Mapping

import pytest

from kiosk_handoff.catalog.catalog import ProductCatalog
from kiosk_handoff.catalog.product import Product
from kiosk_handoff.errors import StoreUnavailableError
from kiosk_handoff.handoff.coordinator import HandoffCoordinator
from kiosk_handoff.kv.base import AsyncKeyValueStore
from kiosk_handoff.kv.memory import AsyncInMemoryStore
from kiosk_handoff.registry.connections import ConnectionRegistry
from kiosk_handoff.session.store import SessionStore
from kiosk_handoff.storage.async_memory import AsyncInMemoryBackend
from kiosk_handoff.tokens.service import TokenService

TEST_SECRET = "test-signing-secret"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingChannel:
    """Channel transport that records every event it is asked to send."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, dict[str, Any]]] = []

    async def send(self, handle: str, event: str, data: Mapping[str, Any]) -> bool:
        self.sent.append((handle, event, dict(data)))
        return True

    def events(self, handle: str | None = None) -> list[str]:
        return [event for h, event, _ in self.sent if handle is None or h == handle]

    def last(self, event: str) -> dict[str, Any]:
        for _, sent_event, data in reversed(self.sent):
            if sent_event == event:
                return data
        raise AssertionError(f"{event} was never sent; got {self.events()}")


class DownStore(AsyncKeyValueStore):
    """Shared store whose every operation fails as if the server were gone."""

    def _fail(self) -> None:
        raise StoreUnavailableError("Shared store is unavailable; handoff features are degraded")

    async def get(self, key: str) -> str | None:
        self._fail()
        return None

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        self._fail()

    async def delete(self, key: str) -> bool:
        self._fail()
        return False

    async def pop(self, key: str) -> str | None:
        self._fail()
        return None

    async def ttl(self, key: str) -> int:
        self._fail()
        return 0

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        self._fail()
        return False

    async def keys(self, pattern: str) -> list[str]:
        self._fail()
        return []

    async def ping(self) -> bool:
        return False


def make_products() -> list[Product]:
    return [
        Product(
            product_id="p-linen-suit",
            name="Linen Suit",
            category="Suits",
            price=180,
            tags=["Wedding", "SummerWear"],
            stock_count=10,
            aisle="A3",
        ),
        Product(
            product_id="p-wool-blazer",
            name="Wool Blazer",
            category="Suits",
            price=215,
            tags=["Wedding"],
            stock_count=4,
        ),
        Product(
            product_id="p-loafers",
            name="Suede Loafers",
            category="Shoes",
            price=50,
            tags=["Casual"],
            stock_count=2,
        ),
        Product(
            product_id="p-tuxedo",
            name="Designer Tuxedo",
            category="Suits",
            price=500,
            tags=[],
            stock_count=1,
        ),
        Product(
            product_id="p-sold-out",
            name="Silk Tie",
            category="Accessories",
            price=40,
            tags=["Wedding", "SummerWear"],
            in_stock=False,
            stock_count=0,
        ),
    ]


def product_records(products: list[Product]) -> dict[str, str]:
    return {product.product_id: product.model_dump_json(by_alias=True) for product in products}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def kv(clock: FakeClock) -> AsyncInMemoryStore:
    return AsyncInMemoryStore(clock=clock)


@pytest.fixture()
def down_store() -> DownStore:
    return DownStore()


@pytest.fixture()
def sessions() -> SessionStore:
    return SessionStore(AsyncInMemoryBackend("sessions"))


@pytest.fixture()
def products() -> list[Product]:
    return make_products()


@pytest.fixture()
def catalog(products: list[Product]) -> ProductCatalog:
    return ProductCatalog(AsyncInMemoryBackend("products", product_records(products)))


@pytest.fixture()
def tokens(kv: AsyncInMemoryStore, clock: FakeClock) -> TokenService:
    return TokenService(kv, TEST_SECRET, clock=clock, renderer=None)


@pytest.fixture()
def registry(kv: AsyncInMemoryStore) -> ConnectionRegistry:
    return ConnectionRegistry(kv)


@pytest.fixture()
def mobile() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture()
def kiosk() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture()
def coordinator(
    sessions: SessionStore,
    tokens: TokenService,
    registry: ConnectionRegistry,
    catalog: ProductCatalog,
    mobile: RecordingChannel,
    kiosk: RecordingChannel,
) -> HandoffCoordinator:
    return HandoffCoordinator(
        sessions=sessions,
        tokens=tokens,
        registry=registry,
        catalog=catalog,
        mobile=mobile,
        kiosk=kiosk,
    )
