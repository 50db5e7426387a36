"""
Cart — line items, reconciliation against a depot, cart state.

    from depotcart import cart as R

    reconciler = R.CartReconciler(view, R.ReconcilePolicy().with_fetch_timeout(seconds=3))
    result = await reconciler.reconcile(cart.items, depot.id)
    cart = cart.apply(result)
"""

from __future__ import annotations

from depotcart.cart._types import (
    UnavailableKind,
    CartLineItem,
    ReconcileResult,
    ValidationSummary,
    VariantAvailability,
    MIN_QUANTITY,
    MAX_QUANTITY,
)
from depotcart.cart._normalize import normalize_variant_name, normalize_product_name
from depotcart.cart._match import CatalogIndex, reconcile_item
from depotcart.cart._reconciler import CartReconciler, ReconcilePolicy
from depotcart.cart._cart import Cart

__all__ = (
    "UnavailableKind",
    "CartLineItem",
    "ReconcileResult",
    "ValidationSummary",
    "VariantAvailability",
    "MIN_QUANTITY",
    "MAX_QUANTITY",
    "normalize_variant_name",
    "normalize_product_name",
    "CatalogIndex",
    "reconcile_item",
    "CartReconciler",
    "ReconcilePolicy",
    "Cart",
)
