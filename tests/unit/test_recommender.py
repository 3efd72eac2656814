"""Unit tests for kiosk_handoff.intent.recommender."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from kiosk_handoff.catalog.catalog import ProductCatalog
from kiosk_handoff.catalog.product import Product
from kiosk_handoff.intent.recommender import (
    Recommender,
    explain,
    price_score,
    score_product,
    stock_score,
)
from kiosk_handoff.session.state import ParsedIntent
from kiosk_handoff.storage.async_memory import AsyncInMemoryBackend

WEDDING = ParsedIntent(occasion="wedding", season="summer", budget=200)


def _catalog_of(*products: Product) -> ProductCatalog:
    return ProductCatalog(
        AsyncInMemoryBackend(
            "products", {p.product_id: p.model_dump_json(by_alias=True) for p in products}
        )
    )


# ---------------------------------------------------------------------------
# Scoring functions
# ---------------------------------------------------------------------------


class TestScoring:
    @pytest.mark.parametrize(
        ("price", "budget", "expected"),
        [
            (100, 100, 30),
            (109, 100, 20),
            (115, 100, 10),
            (130, 100, 0),
            (999, "flexible", 15),
        ],
    )
    def test_price_score(self, price: float, budget: int | str, expected: int) -> None:
        assert price_score(price, budget) == expected

    @pytest.mark.parametrize(("count", "expected"), [(10, 20), (5, 15), (3, 15), (2, 10), (0, 0)])
    def test_stock_score(self, count: int, expected: int) -> None:
        assert stock_score(count) == expected

    def test_tag_points_are_capped(self) -> None:
        product = Product(
            product_id="p",
            name="Everything",
            category="C",
            price=1000,
            tags=["#Party", "Trendy", "Urgent", "Premium", "extra"],
            stock_count=0,
        )
        intent = ParsedIntent(occasion="party", style="trendy", budget=400, urgency="today")
        tags = ["Party", "Trendy", "Urgent", "Premium", "Extra"]
        assert score_product(product, intent, tags) == 40

    def test_explain(self, products: list[Product]) -> None:
        sentence = explain(products[0], WEDDING)
        assert sentence.startswith("This Linen Suit matches your casual style")
        assert "within your $200 budget" in sentence
        assert "in stock and ready" in sentence


# ---------------------------------------------------------------------------
# Recommender
# ---------------------------------------------------------------------------


class TestRecommender:
    @pytest.mark.asyncio
    async def test_ranking_with_diversity(self, catalog: ProductCatalog) -> None:
        result = await Recommender(catalog).recommend(WEDDING, limit=5)
        ranked = [(item.product.product_id, item.score) for item in result.products]
        assert ranked == [
            ("p-linen-suit", 80),
            ("p-loafers", 60),
            ("p-wool-blazer", 45),
        ]
        assert len(result.explanations) == 3
        assert result.confidence == pytest.approx(185 / 3 / 100)

    @pytest.mark.asyncio
    async def test_limit(self, catalog: ProductCatalog) -> None:
        result = await Recommender(catalog).recommend(WEDDING, limit=2)
        assert [item.product.product_id for item in result.products] == [
            "p-linen-suit",
            "p-loafers",
        ]

    @pytest.mark.asyncio
    async def test_out_of_stock_never_recommended(self, catalog: ProductCatalog) -> None:
        result = await Recommender(catalog).recommend(WEDDING, limit=10)
        assert "p-sold-out" not in {item.product.product_id for item in result.products}

    @pytest.mark.asyncio
    async def test_broadens_by_ignoring_budget(self) -> None:
        catalog = _catalog_of(
            Product(
                product_id="only",
                name="Cotton Shirt",
                category="Tops",
                price=40,
                tags=["Wedding"],
                stock_count=10,
            )
        )
        intent = ParsedIntent(occasion="wedding", budget=50)
        result = await Recommender(catalog).recommend(intent)
        # tag 10 + stock 20 + diversity 10, price not counted
        assert [item.score for item in result.products] == [40]

    @pytest.mark.asyncio
    async def test_wire_shape_includes_score(self, catalog: ProductCatalog) -> None:
        result = await Recommender(catalog).recommend(WEDDING, limit=1)
        wire = result.products_wire()
        assert wire[0]["productId"] == "p-linen-suit"
        assert wire[0]["score"] == 80

    @pytest.mark.asyncio
    async def test_no_intent_or_zero_limit(self, catalog: ProductCatalog) -> None:
        recommender = Recommender(catalog)
        assert (await recommender.recommend(None)).products == []
        assert (await recommender.recommend(WEDDING, limit=0)).products == []

    @pytest.mark.asyncio
    async def test_empty_catalog(self) -> None:
        result = await Recommender(_catalog_of()).recommend(WEDDING)
        assert result.products == []
        assert result.confidence == 0.0

    @pytest.mark.asyncio
    async def test_catalog_failure_returns_empty(self) -> None:
        catalog = MagicMock(spec=ProductCatalog)
        catalog.list_in_stock = AsyncMock(side_effect=RuntimeError("disk on fire"))
        result = await Recommender(catalog).recommend(WEDDING)
        assert result.products == []
