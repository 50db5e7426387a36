"""
Per-item reconciliation — pure functions over one depot's catalog.

Nothing here does I/O; CartReconciler fetches the catalog once and maps
these over the cart.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, replace

from depotcart._types import DepotId, ProductId, VariantId
from depotcart.cart._normalize import normalize_product_name, normalize_variant_name
from depotcart.cart._types import CartLineItem, UnavailableKind
from depotcart.catalog import Variant

# ═══════════════════════════════════════════════════════════════════════════════
# Catalog Index
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CatalogIndex:
    """Lookup tables over one depot's variants, in catalog order."""

    by_id: dict[VariantId, Variant]
    by_product: dict[ProductId, tuple[Variant, ...]]
    by_product_name: dict[str, tuple[Variant, ...]]

    @classmethod
    def build(cls, variants: Iterable[Variant]) -> CatalogIndex:
        by_id: dict[VariantId, Variant] = {}
        by_product: defaultdict[ProductId, list[Variant]] = defaultdict(list)
        by_name: defaultdict[str, list[Variant]] = defaultdict(list)

        for variant in variants:
            # First occurrence wins on duplicate ids
            by_id.setdefault(variant.id, variant)
            by_product[variant.product_id].append(variant)
            if variant.product_name:
                by_name[normalize_product_name(variant.product_name)].append(variant)

        return cls(
            by_id=by_id,
            by_product={k: tuple(v) for k, v in by_product.items()},
            by_product_name={k: tuple(v) for k, v in by_name.items()},
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Matching
# ═══════════════════════════════════════════════════════════════════════════════


def candidates(item: CartLineItem, index: CatalogIndex) -> tuple[Variant, ...]:
    """Same product id in the target depot, else same normalized product name."""
    found = index.by_product.get(item.product_id)
    if found:
        return found
    return index.by_product_name.get(normalize_product_name(item.name), ())


def hot_swap(item: CartLineItem, index: CatalogIndex) -> Variant | None:
    """
    Equivalent variant in the target depot by normalized variant name.

    Several matches: first one sellable for the requested quantity, else
    the first match (it will be flagged with a stock reason).
    """
    wanted = normalize_variant_name(item.variant_name)
    matches = [v for v in candidates(item, index) if normalize_variant_name(v.name) == wanted]
    if not matches:
        return None
    return next((v for v in matches if v.is_sellable(item.quantity)), matches[0])


def locate(item: CartLineItem, index: CatalogIndex, target: DepotId) -> Variant | None:
    """Restoration → exact id → hot-swap."""
    if item.original_depot_id == target and item.original_variant_id is not None:
        restored = index.by_id.get(item.original_variant_id)
        if restored is not None:
            return restored

    exact = index.by_id.get(item.variant_id)
    if exact is not None:
        return exact

    return hot_swap(item, index)


def assess(variant: Variant, quantity: int) -> tuple[UnavailableKind, int | None] | None:
    """Why a variant cannot be delivered for a quantity, or None if it can."""
    if variant.not_in_stock:
        return UnavailableKind.OUT_OF_STOCK, None
    if variant.is_hidden:
        return UnavailableKind.HIDDEN, None
    if variant.closing_qty is not None and variant.closing_qty < quantity:
        if variant.closing_qty <= 0:
            return UnavailableKind.OUT_OF_STOCK, None
        return UnavailableKind.LOW_STOCK, variant.closing_qty
    return None


# ═══════════════════════════════════════════════════════════════════════════════
# Item Outcomes
# ═══════════════════════════════════════════════════════════════════════════════


def retarget(item: CartLineItem, target: DepotId) -> CartLineItem:
    """Point an item at the target depot, pinning its originals on first use."""
    return replace(
        item,
        depot_id=target,
        original_depot_id=item.original_depot_id if item.original_depot_id is not None else item.depot_id,
        original_variant_id=(
            item.original_variant_id if item.original_variant_id is not None else item.variant_id
        ),
    )


def reconcile_item(item: CartLineItem, index: CatalogIndex, target: DepotId) -> CartLineItem:
    based = retarget(item, target)
    variant = locate(based, index, target)
    if variant is None:
        return based.unavailable(UnavailableKind.NOT_IN_AREA)

    swapped = replace(
        based,
        product_id=variant.product_id,
        variant_id=variant.id,
        variant_name=variant.name,
        price=variant.price,
    )
    match assess(variant, item.quantity):
        case None:
            return swapped.available()
        case (kind, remaining):
            return swapped.unavailable(kind, remaining)


def degrade_item(item: CartLineItem, target: DepotId) -> CartLineItem:
    """
    Best guess without a catalog.

    Lines already on the target depot, with no depot, or first added there
    stay available; the rest are not available in this area.
    """
    keep = item.depot_id is None or item.depot_id == target or item.original_depot_id == target
    based = retarget(item, target)
    return based.available() if keep else based.unavailable(UnavailableKind.NOT_IN_AREA)


def unverified_item(item: CartLineItem, target: DepotId) -> CartLineItem:
    return retarget(item, target).unavailable(UnavailableKind.UNVERIFIED)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "CatalogIndex",
    "candidates",
    "hot_swap",
    "locate",
    "assess",
    "retarget",
    "reconcile_item",
    "degrade_item",
    "unverified_item",
)
