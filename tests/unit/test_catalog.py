"""Unit tests for kiosk_handoff.catalog."""
from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from kiosk_handoff.catalog.catalog import ProductCatalog
from kiosk_handoff.catalog.product import Product
from kiosk_handoff.errors import InvalidPayloadError, ProductNotFoundError
from kiosk_handoff.storage.async_memory import AsyncInMemoryBackend


# ---------------------------------------------------------------------------
# Product
# ---------------------------------------------------------------------------


class TestProduct:
    def test_wire_shape(self) -> None:
        product = Product(
            product_id="p1", name="Shirt", category="Tops", price=25, stock_count=3
        )
        wire = product.to_wire()
        assert wire["productId"] == "p1"
        assert wire["stockCount"] == 3
        assert wire["inStock"] is True

    def test_negative_price_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Product(product_id="p1", name="Shirt", category="Tops", price=-1)

    @pytest.mark.parametrize(
        ("in_stock", "stock_count", "expected"),
        [(True, 3, True), (True, 0, False), (False, 5, False)],
    )
    def test_available(self, in_stock: bool, stock_count: int, expected: bool) -> None:
        product = Product(
            product_id="p1",
            name="Shirt",
            category="Tops",
            price=25,
            in_stock=in_stock,
            stock_count=stock_count,
        )
        assert product.available is expected


# ---------------------------------------------------------------------------
# ProductCatalog
# ---------------------------------------------------------------------------


class TestProductCatalog:
    @pytest.mark.asyncio
    async def test_get(self, catalog: ProductCatalog) -> None:
        product = await catalog.get("p-linen-suit")
        assert product.name == "Linen Suit"
        assert product.aisle == "A3"

    @pytest.mark.asyncio
    async def test_get_missing_raises(self, catalog: ProductCatalog) -> None:
        with pytest.raises(ProductNotFoundError) as excinfo:
            await catalog.get("ghost")
        assert excinfo.value.product_id == "ghost"
        assert await catalog.find("ghost") is None

    @pytest.mark.asyncio
    async def test_list_products_sorted(self, catalog: ProductCatalog) -> None:
        ids = [product.product_id for product in await catalog.list_products()]
        assert ids == sorted(ids)
        assert len(ids) == 5

    @pytest.mark.asyncio
    async def test_list_in_stock_excludes_sold_out(self, catalog: ProductCatalog) -> None:
        ids = {product.product_id for product in await catalog.list_in_stock()}
        assert "p-sold-out" not in ids
        assert "p-linen-suit" in ids

    @pytest.mark.asyncio
    async def test_invalid_records_are_skipped(self) -> None:
        backend = AsyncInMemoryBackend("products", {"bad": '{"productId": "bad"}'})
        catalog = ProductCatalog(backend)
        await catalog.upsert(Product(product_id="ok", name="Ok", category="C", price=1))
        assert [p.product_id for p in await catalog.list_products()] == ["ok"]

    @pytest.mark.asyncio
    async def test_upsert_delete_clear(self, catalog: ProductCatalog) -> None:
        await catalog.upsert(Product(product_id="new", name="New", category="C", price=5))
        assert (await catalog.get("new")).price == 5
        assert await catalog.delete("new") is True
        assert await catalog.delete("new") is False
        assert await catalog.clear() == 5
        assert await catalog.list_products() == []


class TestLoadFile:
    def _write_json(self, path: Path, items: object) -> Path:
        path.write_text(json.dumps(items), encoding="utf-8")
        return path

    @pytest.mark.asyncio
    async def test_load_json_replaces(self, catalog: ProductCatalog, tmp_path: Path) -> None:
        path = self._write_json(
            tmp_path / "inventory.json",
            [
                {
                    "productId": "j1",
                    "name": "Chinos",
                    "category": "Pants",
                    "price": 60,
                    "tags": ["Casual"],
                    "stockCount": 7,
                }
            ],
        )
        assert await catalog.load_file(path) == 1
        assert [p.product_id for p in await catalog.list_products()] == ["j1"]

    @pytest.mark.asyncio
    async def test_load_keep_existing(self, catalog: ProductCatalog, tmp_path: Path) -> None:
        path = self._write_json(
            tmp_path / "inventory.json",
            [{"productId": "j1", "name": "Chinos", "category": "Pants", "price": 60}],
        )
        await catalog.load_file(path, replace=False)
        assert len(await catalog.list_products()) == 6

    @pytest.mark.asyncio
    async def test_load_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "inventory.yaml"
        path.write_text(
            "- productId: y1\n"
            "  name: Rain Jacket\n"
            "  category: Outerwear\n"
            "  price: 120\n"
            "  stockCount: 4\n"
            "  tags: [WinterWear]\n",
            encoding="utf-8",
        )
        catalog = ProductCatalog(AsyncInMemoryBackend("products"))
        assert await catalog.load_file(path) == 1
        assert (await catalog.get("y1")).tags == ["WinterWear"]

    @pytest.mark.asyncio
    async def test_empty_file_rejected(self, catalog: ProductCatalog, tmp_path: Path) -> None:
        path = self._write_json(tmp_path / "inventory.json", [])
        with pytest.raises(InvalidPayloadError):
            await catalog.load_file(path)
        assert len(await catalog.list_products()) == 5

    @pytest.mark.asyncio
    async def test_invalid_product_rejected_before_clearing(
        self, catalog: ProductCatalog, tmp_path: Path
    ) -> None:
        path = self._write_json(tmp_path / "inventory.json", [{"productId": "x"}])
        with pytest.raises(InvalidPayloadError, match="Invalid product"):
            await catalog.load_file(path)
        assert len(await catalog.list_products()) == 5
