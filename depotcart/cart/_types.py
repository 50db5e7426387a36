"""
Cart types — line items and reconciliation results.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from depotcart._types import DepotId, ProductId, VariantId
from depotcart.catalog import Product, Variant

# ═══════════════════════════════════════════════════════════════════════════════
# Unavailability — Why a Line Cannot Be Delivered
# ═══════════════════════════════════════════════════════════════════════════════


class UnavailableKind(Enum):
    """
    Reason a line item is unavailable; the value is the shopper-facing text.

    LOW_STOCK is a template filled with the remaining quantity.
    """

    NOT_IN_AREA = "Not available in this area"
    OUT_OF_STOCK = "Out of stock"
    HIDDEN = "Currently unavailable"
    LOW_STOCK = "Only {remaining} available"
    UNVERIFIED = "Unable to verify availability"

    def reason(self, remaining: int | None = None) -> str:
        if self is UnavailableKind.LOW_STOCK:
            return self.value.format(remaining=remaining)
        return self.value


# ═══════════════════════════════════════════════════════════════════════════════
# Cart Line Item
# ═══════════════════════════════════════════════════════════════════════════════

MIN_QUANTITY = 1
MAX_QUANTITY = 99


def clamp_quantity(quantity: int) -> int:
    return max(MIN_QUANTITY, min(MAX_QUANTITY, quantity))


@dataclass(frozen=True, slots=True)
class CartLineItem:
    """
    One cart line.

    depot_id: depot the line currently resolves against.
    original_depot_id / original_variant_id: where the shopper first added
        it. Kept across hot-swaps so returning to that depot restores the
        original variant.
    is_available: None when unknown (e.g. restored from storage).
    """

    product_id: ProductId
    variant_id: VariantId
    name: str
    variant_name: str
    price: float
    quantity: int
    depot_id: DepotId | None = None
    original_depot_id: DepotId | None = None
    original_variant_id: VariantId | None = None
    is_available: bool | None = None
    unavailable_reason: str | None = None
    unavailable_kind: UnavailableKind | None = None
    image_url: str | None = None

    @classmethod
    def from_variant(
        cls,
        product: Product,
        variant: Variant,
        quantity: int = 1,
        *,
        image_url: str | None = None,
    ) -> CartLineItem:
        """New line, assumed available; its depot/variant become the originals."""
        return cls(
            product_id=product.id,
            variant_id=variant.id,
            name=product.name,
            variant_name=variant.name,
            price=variant.price,
            quantity=clamp_quantity(quantity),
            depot_id=variant.depot_id,
            original_depot_id=variant.depot_id,
            original_variant_id=variant.id,
            is_available=True,
            image_url=image_url,
        )

    @property
    def line_total(self) -> float:
        return self.price * self.quantity

    @property
    def is_unavailable(self) -> bool:
        return self.is_available is False

    def available(self) -> CartLineItem:
        return replace(self, is_available=True, unavailable_reason=None, unavailable_kind=None)

    def unavailable(self, kind: UnavailableKind, remaining: int | None = None) -> CartLineItem:
        return replace(
            self,
            is_available=False,
            unavailable_reason=kind.reason(remaining),
            unavailable_kind=kind,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Results
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ValidationSummary:
    total: int
    available: int
    unavailable: int
    message: str


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    """
    Outcome of reconciling a cart against one depot.

    validated_items: one output per input, same order.
    degraded: the target catalog could not be read; items were judged
        heuristically or marked unverified.
    """

    target_depot_id: DepotId
    validated_items: tuple[CartLineItem, ...]
    is_valid: bool
    degraded: bool = False

    @property
    def available_items(self) -> tuple[CartLineItem, ...]:
        return tuple(item for item in self.validated_items if not item.is_unavailable)

    @property
    def unavailable_items(self) -> tuple[CartLineItem, ...]:
        return tuple(item for item in self.validated_items if item.is_unavailable)

    def summary(self) -> ValidationSummary:
        total = len(self.validated_items)
        unavailable = len(self.unavailable_items)
        available = total - unavailable

        if unavailable == 0:
            message = "All items are available for delivery"
        elif available == 0:
            message = "No items are available in this location"
        else:
            message = f"{unavailable} item{'s' if unavailable > 1 else ''} not available in this location"

        return ValidationSummary(total, available, unavailable, message)


@dataclass(frozen=True, slots=True)
class VariantAvailability:
    """Availability of a single variant in a depot for a quantity."""
    is_available: bool
    reason: str | None = None
    max_quantity: int | None = None
    current_price: float | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "UnavailableKind",
    "MIN_QUANTITY",
    "MAX_QUANTITY",
    "clamp_quantity",
    "CartLineItem",
    "ValidationSummary",
    "ReconcileResult",
    "VariantAvailability",
)
