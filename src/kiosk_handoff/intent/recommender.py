"""Score-based product recommendations.

Every in-stock product is scored against the shopper's intent:

- tag overlap        — 10 points per shared tag, at most 40
- price fit          — 30 within budget, 20 up to 10% over, 10 up to 20%
  over, 15 for a flexible budget
- stock level        — 20 for more than five units, 15 for three to five,
  10 for one or two
- category diversity — 10 bonus for the first product of each category
  among the top results

Products scoring below 20 are dropped.  When fewer than three remain and
the shopper gave a budget, scoring is repeated without the price term.

Classes
-------
- ScoredProduct    — a product with its score
- Recommendations  — ranked products, explanations and overall confidence
- Recommender      — compute recommendations from a ``ProductCatalog``
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from kiosk_handoff.catalog.catalog import ProductCatalog
from kiosk_handoff.catalog.product import Product
from kiosk_handoff.intent.extractor import tags_for_intent
from kiosk_handoff.session.state import ParsedIntent

logger = logging.getLogger(__name__)

_MIN_SCORE = 20
_BROADEN_BELOW = 3
_TAG_POINTS = 10
_TAG_CAP = 40
_DIVERSITY_BONUS = 10


# ---------------------------------------------------------------------------
# Result models
# ---------------------------------------------------------------------------


@dataclass
class ScoredProduct:
    product: Product
    score: int

    def to_wire(self) -> dict[str, Any]:
        data = self.product.to_wire()
        data["score"] = self.score
        return data


@dataclass
class Recommendations:
    """Ranked recommendation result.

    Parameters
    ----------
    products:
        Top products, best first.
    explanations:
        One sentence per product, same order.
    confidence:
        Mean score of ``products`` scaled to [0, 1].
    """

    products: list[ScoredProduct] = field(default_factory=list)
    explanations: list[str] = field(default_factory=list)
    confidence: float = 0.0

    def products_wire(self) -> list[dict[str, Any]]:
        return [item.to_wire() for item in self.products]


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def price_score(price: float, budget: int | str) -> int:
    """Return the 0-30 price-fit score of ``price`` against ``budget``."""
    if isinstance(budget, int) and budget > 0:
        over = price - budget
        if over <= 0:
            return 30
        percent_over = over / budget * 100
        if percent_over <= 10:
            return 20
        if percent_over <= 20:
            return 10
        return 0
    if budget == "flexible":
        return 15
    return 0


def stock_score(stock_count: int) -> int:
    if stock_count > 5:
        return 20
    if stock_count >= 3:
        return 15
    if stock_count >= 1:
        return 10
    return 0


def score_product(
    product: Product,
    intent: ParsedIntent,
    intent_tags: Iterable[str],
    *,
    ignore_budget: bool = False,
) -> int:
    """Return the tag, price and stock score of ``product`` (0-90)."""
    product_tags = {tag.lstrip("#").lower() for tag in product.tags}
    matches = sum(1 for tag in intent_tags if tag.lower() in product_tags)
    score = min(_TAG_CAP, matches * _TAG_POINTS)
    if not ignore_budget:
        score += price_score(product.price, intent.budget)
    score += stock_score(product.stock_count)
    return score


def _rank(items: list[ScoredProduct]) -> list[ScoredProduct]:
    return sorted(items, key=lambda item: (-item.score, -item.product.stock_count))


def explain(product: Product, intent: ParsedIntent) -> str:
    """Return a one-sentence reason for recommending ``product``."""
    reasons: list[str] = []
    if intent.style:
        reasons.append(f"{intent.style} style")
    if intent.occasion and intent.occasion != "other":
        reasons.append(f"suitable for {intent.occasion} occasions")
    if intent.season and intent.season != "all-season":
        reasons.append(f"perfect for {intent.season}")
    if isinstance(intent.budget, int):
        over = product.price - intent.budget
        if over <= 0:
            reasons.append(f"within your ${intent.budget} budget")
        elif over <= intent.budget * 0.1:
            reasons.append("slightly over budget but great value")
    if product.stock_count > 5:
        reasons.append("in stock and ready")

    if not reasons:
        return f"This {product.name} is a great option for you."
    if len(reasons) == 1:
        return f"This {product.name} matches your {reasons[0]}."
    return f"This {product.name} matches your {reasons[0]} and is {', '.join(reasons[1:])}."


# ---------------------------------------------------------------------------
# Recommender
# ---------------------------------------------------------------------------


class Recommender:
    """Recommend in-stock products for a shopper's intent.

    ``recommend`` never raises: a catalog failure is logged and an empty
    result is returned so that the chat and transfer paths keep working.

    Parameters
    ----------
    catalog:
        Source of products.
    """

    def __init__(self, catalog: ProductCatalog) -> None:
        self._catalog = catalog

    async def recommend(self, intent: ParsedIntent | None, limit: int = 5) -> Recommendations:
        """Return up to ``limit`` products ranked for ``intent``."""
        if intent is None or limit <= 0:
            return Recommendations()
        try:
            products = await self._catalog.list_in_stock()
        except Exception:  # noqa: BLE001
            logger.exception("Could not load products for recommendations")
            return Recommendations()
        if not products:
            return Recommendations()

        intent_tags = tags_for_intent(intent, prefix="")
        ranked = self._score_all(products, intent, intent_tags, ignore_budget=False)
        if len(ranked) < _BROADEN_BELOW and isinstance(intent.budget, int):
            logger.debug("Only %d matches within budget; ignoring budget", len(ranked))
            ranked = self._score_all(products, intent, intent_tags, ignore_budget=True)

        top = self._apply_diversity(ranked, limit)
        explanations = [explain(item.product, intent) for item in top]
        confidence = 0.0
        if top:
            confidence = min(1.0, sum(item.score for item in top) / len(top) / 100)
        return Recommendations(products=top, explanations=explanations, confidence=confidence)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _score_all(
        products: list[Product],
        intent: ParsedIntent,
        intent_tags: list[str],
        *,
        ignore_budget: bool,
    ) -> list[ScoredProduct]:
        scored = [
            ScoredProduct(product, score_product(product, intent, intent_tags, ignore_budget=ignore_budget))
            for product in products
        ]
        return _rank([item for item in scored if item.score >= _MIN_SCORE])

    @staticmethod
    def _apply_diversity(ranked: list[ScoredProduct], limit: int) -> list[ScoredProduct]:
        """Give the first product of each category within the top ``limit`` a bonus."""
        seen_categories: set[str] = set()
        for index, item in enumerate(ranked):
            if index >= limit:
                break
            category = item.product.category or "Unknown"
            if category not in seen_categories:
                item.score += _DIVERSITY_BONUS
                seen_categories.add(category)
        return _rank(ranked)[:limit]


__all__ = [
    "Recommendations",
    "Recommender",
    "ScoredProduct",
    "explain",
    "price_score",
    "score_product",
    "stock_score",
]
