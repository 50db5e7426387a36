"""
Session — one cache, resolver, catalog view and reconciler with a lifecycle.

Create at session start, pass around by reference, close at session end.

    async with Session.create(client, directory) as session:
        match await session.relocate(cart, "411001"):
            case Ok(moved):
                cart = moved.cart
            case Error(e):
                print(e.message)
"""

from __future__ import annotations

import time
from dataclasses import dataclass

import structlog
from kungfu import Error, Ok, Result

from depotcart._types import Clock
from depotcart.cache import CachePolicy, Storage, TieredCache, tiered
from depotcart.cart import Cart, CartReconciler, ReconcilePolicy, ReconcileResult
from depotcart.catalog import CatalogView, ProductCatalogClient
from depotcart.depot import Depot, DepotDirectory, DepotResolver

logger = structlog.get_logger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Relocation Outcome
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class NoDepotAvailable:
    """Neither the pincode nor the online fallback yielded a depot."""
    pincode: str | None
    message: str = "No depot available for this location"


@dataclass(frozen=True, slots=True)
class Relocation:
    depot: Depot
    cart: Cart
    result: ReconcileResult


# ═══════════════════════════════════════════════════════════════════════════════
# Session
# ═══════════════════════════════════════════════════════════════════════════════


class Session:
    """
    Owns the services a shopper session needs.

    Note: replaces module-level singletons. Everything shares one
    TieredCache, and `aclose()` cancels its refresh timers.
    """

    def __init__(
        self,
        cache: TieredCache,
        resolver: DepotResolver,
        catalog: CatalogView,
        reconciler: CartReconciler,
    ) -> None:
        self.cache = cache
        self.resolver = resolver
        self.catalog = catalog
        self.reconciler = reconciler

    @classmethod
    def create(
        cls,
        catalog_client: ProductCatalogClient,
        directory: DepotDirectory,
        storage: Storage | None = None,
        *,
        cache_policy: CachePolicy | None = None,
        reconcile_policy: ReconcilePolicy | None = None,
        clock: Clock = time.time,
    ) -> Session:
        """
        Wire a session.

        storage: persistent tier backend; in-memory when omitted.
        """
        cache = tiered(storage, policy=cache_policy, clock=clock)
        catalog = CatalogView(catalog_client, cache)
        catalog.bind_refresh()
        return cls(
            cache=cache,
            resolver=DepotResolver(directory, cache),
            catalog=catalog,
            reconciler=CartReconciler(catalog, reconcile_policy),
        )

    async def relocate(self, cart: Cart, pincode: str | None = None) -> Result[Relocation, NoDepotAvailable]:
        """
        Resolve the depot for a pincode and reconcile the cart against it.

        Example:
            match await session.relocate(cart, "411001"):
                case Ok(Relocation(depot=depot, result=result)):
                    print(depot.name, result.summary().message)
                case Error(NoDepotAvailable()):
                    ...
        """
        depot = await self.resolver.resolve(pincode)
        if depot is None:
            logger.warning("session.no_depot", pincode=pincode)
            return Error(NoDepotAvailable(pincode))

        result = await self.reconciler.reconcile(cart.items, depot.id)
        logger.info(
            "session.relocated",
            pincode=pincode,
            depot_id=depot.id,
            unavailable=len(result.unavailable_items),
            degraded=result.degraded,
        )
        return Ok(Relocation(depot=depot, cart=cart.apply(result), result=result))

    async def aclose(self) -> None:
        await self.cache.aclose()

    async def __aenter__(self) -> Session:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = ("Session", "Relocation", "NoDepotAvailable")
