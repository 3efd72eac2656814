"""Product records served to the recommender and the kiosk."""
from __future__ import annotations

from pydantic import Field

from kiosk_handoff.session.state import WireModel


class Product(WireModel):
    """A single catalog entry.

    Parameters
    ----------
    product_id:
        Unique product identifier (``productId`` on the wire).
    name:
        Display name.
    category:
        Coarse grouping used for recommendation diversity.
    price:
        Unit price in whole currency, never negative.
    tags:
        Descriptive tags matched against the shopper's intent
        (``Wedding``, ``SummerWear`` ...).
    in_stock:
        Whether the product can currently be recommended.
    stock_count:
        Units on hand.
    aisle:
        Store location shown on the kiosk.
    image_url:
        Product image for the kiosk and mobile cards.
    sizes:
        Available sizes.
    """

    product_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    category: str = Field(min_length=1)
    price: float = Field(ge=0)
    tags: list[str] = Field(default_factory=list)
    in_stock: bool = True
    stock_count: int = Field(default=0, ge=0)
    aisle: str | None = None
    image_url: str | None = None
    sizes: list[str] = Field(default_factory=list)

    @property
    def available(self) -> bool:
        """True when the product is flagged in stock and has units left."""
        return self.in_stock and self.stock_count > 0


__all__ = ["Product"]
