"""
Cart — immutable shopper cart.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace

from depotcart._types import VariantId
from depotcart.cart._types import (
    MAX_QUANTITY,
    MIN_QUANTITY,
    CartLineItem,
    ReconcileResult,
    clamp_quantity,
)
from depotcart.catalog import Product, Variant


@dataclass(frozen=True, slots=True)
class Cart:
    """
    Ordered cart lines, one per variant id.

    Every operation returns a new Cart. Quantities stay within 1..99.

    Example:
        cart = Cart().add_variant(milk, milk_1l, quantity=2)
        cart = cart.increment(milk_1l.id)
        cart = cart.apply(await reconciler.reconcile(cart.items, depot.id))
    """

    items: tuple[CartLineItem, ...] = ()

    def _map(self, variant_id: VariantId, fn: Callable[[CartLineItem], CartLineItem]) -> Cart:
        return Cart(tuple(fn(item) if item.variant_id == variant_id else item for item in self.items))

    def get(self, variant_id: VariantId) -> CartLineItem | None:
        return next((item for item in self.items if item.variant_id == variant_id), None)

    def add(self, item: CartLineItem) -> Cart:
        """
        Add a line, merging with an existing line for the same variant.

        A merge sums quantities, takes the new depot and availability, and
        keeps the existing line's originals.
        """
        existing = self.get(item.variant_id)
        if existing is None:
            return Cart((*self.items, replace(item, quantity=clamp_quantity(item.quantity))))

        def merge(line: CartLineItem) -> CartLineItem:
            return replace(
                line,
                quantity=clamp_quantity(line.quantity + item.quantity),
                depot_id=item.depot_id,
                original_depot_id=(
                    line.original_depot_id if line.original_depot_id is not None else item.original_depot_id
                ),
                original_variant_id=(
                    line.original_variant_id if line.original_variant_id is not None else item.original_variant_id
                ),
                is_available=item.is_available,
                unavailable_reason=item.unavailable_reason,
                unavailable_kind=item.unavailable_kind,
            )

        return self._map(item.variant_id, merge)

    def add_variant(self, product: Product, variant: Variant, quantity: int = 1) -> Cart:
        return self.add(CartLineItem.from_variant(product, variant, quantity))

    def remove(self, variant_id: VariantId) -> Cart:
        return Cart(tuple(item for item in self.items if item.variant_id != variant_id))

    def increment(self, variant_id: VariantId) -> Cart:
        return self._map(variant_id, lambda item: replace(item, quantity=min(MAX_QUANTITY, item.quantity + 1)))

    def decrement(self, variant_id: VariantId) -> Cart:
        return self._map(variant_id, lambda item: replace(item, quantity=max(MIN_QUANTITY, item.quantity - 1)))

    def clear(self) -> Cart:
        return Cart()

    def apply(self, result: ReconcileResult) -> Cart:
        """Adopt the reconciled lines."""
        return Cart(result.validated_items)

    # ───────────────────────────────────────────────────────────────────────────
    # Totals
    # ───────────────────────────────────────────────────────────────────────────

    @property
    def subtotal(self) -> float:
        return sum(item.line_total for item in self.items)

    @property
    def available_subtotal(self) -> float:
        return sum(item.line_total for item in self.items if not item.is_unavailable)

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    def available_items(self) -> tuple[CartLineItem, ...]:
        return tuple(item for item in self.items if not item.is_unavailable)

    def unavailable_items(self) -> tuple[CartLineItem, ...]:
        return tuple(item for item in self.items if item.is_unavailable)

    def __len__(self) -> int:
        return len(self.items)


__all__ = ("Cart",)
