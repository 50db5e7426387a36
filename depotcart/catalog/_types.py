"""
Catalog types — depot-scoped products and variants.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from depotcart._types import DepotId, ProductId, VariantId

# ═══════════════════════════════════════════════════════════════════════════════
# Product
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Product:
    """
    Catalog product.

    The same physical product may carry a different id in another depot's
    catalog, or be missing there entirely.
    """

    id: ProductId
    name: str
    is_dairy: bool = False
    category_id: int | None = None
    description: str | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Variant — Depot-Scoped SKU
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Variant:
    """
    Sellable SKU of a product in exactly one depot.

    The "same" SKU in another depot is a different row with its own id,
    related only by product and normalized name.

    product_name: owning product's name, joined in by the catalog client.
    closing_qty: remaining stock; None means untracked.
    """

    id: VariantId
    product_id: ProductId
    depot_id: DepotId
    name: str
    mrp: float
    buy_once_price: float | None = None
    closing_qty: int | None = None
    not_in_stock: bool = False
    is_hidden: bool = False
    product_name: str | None = None

    @property
    def price(self) -> float:
        """Buy-once price when set and non-zero, otherwise MRP."""
        return self.buy_once_price or self.mrp or 0.0

    def is_sellable(self, quantity: int = 1) -> bool:
        if self.not_in_stock or self.is_hidden:
            return False
        return self.closing_qty is None or self.closing_qty >= quantity


# ═══════════════════════════════════════════════════════════════════════════════
# Collaborator Protocol — Users Implement This
# ═══════════════════════════════════════════════════════════════════════════════


class ProductCatalogClient(Protocol):
    """
    Depot-scoped catalog source (usually an HTTP API client).

    Returns already-parsed records. Network failures raise; "no data" is an
    empty sequence. Retries and backoff belong to the implementation.

    Example:
        class HttpCatalog:
            async def get_products(self, depot_id: int) -> list[Product]:
                resp = await self.http.get(f"/api/products", params={"depotId": depot_id})
                return [Product(**p) for p in resp.json()]

            async def get_depot_variants(self, depot_id: int) -> list[Variant]:
                ...
    """

    async def get_products(self, depot_id: DepotId) -> Sequence[Product]:
        ...

    async def get_depot_variants(self, depot_id: DepotId) -> Sequence[Variant]:
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "Product",
    "Variant",
    "ProductCatalogClient",
)
