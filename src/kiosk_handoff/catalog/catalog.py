"""Product catalog over a record backend.

Classes
-------
- ProductCatalog  — read/write access to ``Product`` records
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable

import yaml
from pydantic import ValidationError

from kiosk_handoff.catalog.product import Product
from kiosk_handoff.errors import InvalidPayloadError, ProductNotFoundError
from kiosk_handoff.storage.async_base import AsyncRecordBackend

logger = logging.getLogger(__name__)


class ProductCatalog:
    """Store and query ``Product`` records.

    Products are kept as JSON documents keyed by ``product_id``.  Listing
    loads every record, which is fine for a single store's inventory.

    Parameters
    ----------
    backend:
        Record backend holding the product documents.
    """

    def __init__(self, backend: AsyncRecordBackend) -> None:
        self._backend = backend

    @property
    def backend(self) -> AsyncRecordBackend:
        return self._backend

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, product_id: str) -> Product:
        """Return the product.

        Raises
        ------
        ProductNotFoundError
            If ``product_id`` is not in the catalog.
        """
        try:
            raw = await self._backend.load(product_id)
        except KeyError:
            raise ProductNotFoundError(product_id) from None
        return Product.model_validate_json(raw)

    async def find(self, product_id: str) -> Product | None:
        """Return the product, or None when it is not in the catalog."""
        try:
            return await self.get(product_id)
        except ProductNotFoundError:
            return None

    async def list_products(self) -> list[Product]:
        """Return every product, sorted by ``product_id``."""
        products: list[Product] = []
        for key in sorted(await self._backend.list_keys()):
            try:
                products.append(await self.get(key))
            except ProductNotFoundError:
                continue
            except ValidationError as exc:
                logger.warning("Skipping invalid product record %s: %s", key, exc)
        return products

    async def list_in_stock(self) -> list[Product]:
        """Return the products that are in stock with at least one unit."""
        return [product for product in await self.list_products() if product.available]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def upsert(self, product: Product) -> None:
        await self._backend.save(product.product_id, product.model_dump_json(by_alias=True))

    async def upsert_many(self, products: Iterable[Product]) -> int:
        count = 0
        for product in products:
            await self.upsert(product)
            count += 1
        return count

    async def delete(self, product_id: str) -> bool:
        return await self._backend.delete(product_id)

    async def clear(self) -> int:
        """Remove every product and return how many were removed."""
        removed = 0
        for key in list(await self._backend.list_keys()):
            if await self._backend.delete(key):
                removed += 1
        return removed

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    async def load_file(self, path: str | Path, *, replace: bool = True) -> int:
        """Seed the catalog from a JSON or YAML list of products.

        Parameters
        ----------
        path:
            File holding a list of product objects.  ``.yaml``/``.yml``
            files are read as YAML, anything else as JSON.
        replace:
            Clear the existing catalog first (default True).

        Returns
        -------
        int
            Number of products written.

        Raises
        ------
        InvalidPayloadError
            If the file is empty, is not a list, or holds an invalid product.
        """
        path = Path(path)
        text = path.read_text(encoding="utf-8")
        items: Any
        if path.suffix.lower() in {".yaml", ".yml"}:
            items = yaml.safe_load(text)
        else:
            items = json.loads(text)

        if not isinstance(items, list) or not items:
            raise InvalidPayloadError(f"Inventory file {path} is empty or not a list")

        try:
            products = [Product.model_validate(item) for item in items]
        except ValidationError as exc:
            raise InvalidPayloadError(f"Invalid product in {path}: {exc}") from exc

        if replace:
            removed = await self.clear()
            logger.info("Cleared %d existing products", removed)
        count = await self.upsert_many(products)
        logger.info("Imported %d products from %s", count, path)
        return count


__all__ = ["ProductCatalog"]
