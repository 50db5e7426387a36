"""
Catalog — depot-scoped products and variants, read through the cache.

    from depotcart import catalog as K

    view = K.CatalogView(client, cache)
    variants = await view.get_variants(depot_id)
"""

from __future__ import annotations

from depotcart._types import TransportError
from depotcart.catalog._types import (
    Product,
    Variant,
    ProductCatalogClient,
)
from depotcart.catalog._view import (
    CatalogView,
    variants_key,
    products_key,
)

__all__ = (
    "Product",
    "Variant",
    "ProductCatalogClient",
    "TransportError",
    "CatalogView",
    "variants_key",
    "products_key",
)
