"""Product catalog subpackage.

Public surface
--------------
- Product         — catalog entry model
- ProductCatalog  — async catalog over a record backend
"""
from __future__ import annotations

from kiosk_handoff.catalog.catalog import ProductCatalog
from kiosk_handoff.catalog.product import Product

__all__ = ["Product", "ProductCatalog"]
