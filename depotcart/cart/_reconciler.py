"""
CartReconciler — re-evaluate a cart against a target depot.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import timedelta

import structlog
from combinators import TimeoutError as FetchTimeout
from combinators import flow, lift as L
from kungfu import Error, LazyCoroResult, Ok

from depotcart._types import DepotId, TransportError, VariantId, check_depot_id
from depotcart.cart._match import (
    CatalogIndex,
    assess,
    degrade_item,
    reconcile_item,
    unverified_item,
)
from depotcart.cart._types import (
    CartLineItem,
    ReconcileResult,
    UnavailableKind,
    VariantAvailability,
)
from depotcart.catalog import CatalogView, Variant

logger = structlog.get_logger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Policy
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ReconcilePolicy:
    """
    Reconciliation configuration.

    fetch_timeout: upper bound on the single catalog fetch per call. On
        timeout the degraded heuristic is used instead of waiting.

    Example:
        policy = ReconcilePolicy().with_fetch_timeout(seconds=3)
    """

    fetch_timeout: timedelta = timedelta(seconds=10)

    def with_fetch_timeout(
        self,
        *,
        seconds: float | None = None,
        delta: timedelta | None = None,
    ) -> ReconcilePolicy:
        timeout = delta if delta is not None else timedelta(seconds=seconds or 10)
        if timeout <= timedelta(0):
            raise ValueError(f"fetch_timeout must be positive, got {timeout}")
        return replace(self, fetch_timeout=timeout)


# ═══════════════════════════════════════════════════════════════════════════════
# CartReconciler
# ═══════════════════════════════════════════════════════════════════════════════


class CartReconciler:
    """
    Decides which cart lines survive a depot change.

    Per line, in order: restore the original variant when back on the
    original depot, keep an id that exists verbatim, hot-swap by normalized
    name, then check stock. One catalog fetch per call, bounded by
    `policy.fetch_timeout`.

    Output is a pure function of (cart, target catalog): running it twice
    with nothing changed gives equal results.

    Example:
        reconciler = CartReconciler(view)
        result = await reconciler.reconcile(cart.items, depot.id)

        for item in result.unavailable_items:
            print(item.name, item.unavailable_reason)
    """

    def __init__(self, catalog: CatalogView, policy: ReconcilePolicy | None = None) -> None:
        self._catalog = catalog
        self._policy = policy or ReconcilePolicy()

    @property
    def policy(self) -> ReconcilePolicy:
        return self._policy

    def _fetch(self, depot_id: DepotId) -> LazyCoroResult[tuple[Variant, ...], TransportError | FetchTimeout]:
        def as_transport(e: Exception) -> TransportError:
            if isinstance(e, TransportError):
                return e
            return TransportError("get_depot_variants", e, depot_id=depot_id)

        return (
            flow(L.catching_async(lambda: self._catalog.get_variants(depot_id), on_error=as_transport))
            .timeout(seconds=self._policy.fetch_timeout.total_seconds())
            .compile()
        )

    async def reconcile(self, cart_items: Iterable[CartLineItem], target_depot_id: DepotId) -> ReconcileResult:
        """
        Reconcile every line against the target depot.

        Never raises for catalog trouble: a timeout takes the degraded
        heuristic, a transport failure marks every line unverified. Raises
        TypeError / ValueError for a bad depot id.
        """
        target = check_depot_id(target_depot_id)
        items = tuple(cart_items)
        if not items:
            return ReconcileResult(target_depot_id=target, validated_items=(), is_valid=True)

        match await self._fetch(target):
            case Ok(variants):
                index = CatalogIndex.build(variants)
                validated = tuple(reconcile_item(item, index, target) for item in items)
                degraded = False
            case Error(FetchTimeout() as e):
                logger.warning("reconcile.degraded", depot_id=target, reason="timeout", seconds=e.seconds)
                validated = tuple(degrade_item(item, target) for item in items)
                degraded = True
            case Error(e):
                logger.warning("reconcile.unverified", depot_id=target, error=str(e))
                return ReconcileResult(
                    target_depot_id=target,
                    validated_items=tuple(unverified_item(item, target) for item in items),
                    is_valid=False,
                    degraded=True,
                )

        result = ReconcileResult(
            target_depot_id=target,
            validated_items=validated,
            is_valid=not any(item.is_unavailable for item in validated),
            degraded=degraded,
        )
        logger.debug(
            "reconcile.done",
            depot_id=target,
            items=len(validated),
            unavailable=len(result.unavailable_items),
            degraded=degraded,
        )
        return result

    async def check_variant(
        self,
        variant_id: VariantId,
        depot_id: DepotId,
        quantity: int = 1,
    ) -> VariantAvailability:
        """Whether one variant can be delivered from a depot in a quantity."""
        check_depot_id(depot_id)
        match await self._fetch(depot_id):
            case Error(e):
                logger.warning("reconcile.check_failed", depot_id=depot_id, variant_id=variant_id, error=str(e))
                return VariantAvailability(False, UnavailableKind.UNVERIFIED.reason())
            case Ok(variants):
                pass

        variant = CatalogIndex.build(variants).by_id.get(variant_id)
        if variant is None:
            return VariantAvailability(False, UnavailableKind.NOT_IN_AREA.reason())

        match assess(variant, quantity):
            case None:
                return VariantAvailability(
                    True,
                    max_quantity=variant.closing_qty,
                    current_price=variant.price,
                )
            case (kind, remaining):
                return VariantAvailability(False, kind.reason(remaining), max_quantity=remaining)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = ("ReconcilePolicy", "CartReconciler")
