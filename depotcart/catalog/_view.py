"""
CatalogView — read-through cache of depot catalogs.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog
from kungfu import Option, Some, Nothing

from depotcart._types import DepotId, TransportError, VariantId, check_depot_id
from depotcart.cache import TieredCache
from depotcart.catalog._types import (
    Product,
    ProductCatalogClient,
    Variant,
)

logger = structlog.get_logger(__name__)

VARIANTS_PREFIX = "variants_"
PRODUCTS_PREFIX = "products_"


def variants_key(depot_id: DepotId) -> str:
    return f"{VARIANTS_PREFIX}{depot_id}"


def products_key(depot_id: DepotId) -> str:
    return f"{PRODUCTS_PREFIX}{depot_id}"


# ═══════════════════════════════════════════════════════════════════════════════
# CatalogView
# ═══════════════════════════════════════════════════════════════════════════════


class CatalogView:
    """
    Depot catalogs read through a TieredCache.

    Each depot has its own keys, so several depots stay warm at once and a
    depot switch invalidates nothing. Concurrent reads of one key share a
    single in-flight fetch.

    Example:
        view = CatalogView(client, cache)
        view.bind_refresh()

        variants = await view.get_variants(7)
        match await view.find_variant(7, 205):
            case Some(v):
                print(v.price)
            case Nothing():
                print("not sold here")
    """

    def __init__(self, client: ProductCatalogClient, cache: TieredCache) -> None:
        self._client = client
        self._cache = cache
        self._inflight: dict[str, asyncio.Task[tuple]] = {}

    @property
    def cache(self) -> TieredCache:
        return self._cache

    # ───────────────────────────────────────────────────────────────────────────
    # Collaborator Calls
    # ───────────────────────────────────────────────────────────────────────────

    async def _fetch_variants(self, depot_id: DepotId) -> tuple[Variant, ...]:
        try:
            rows = await self._client.get_depot_variants(depot_id)
        except Exception as e:
            raise TransportError("get_depot_variants", e, depot_id=depot_id) from e
        logger.debug("catalog.variants_fetched", depot_id=depot_id, count=len(rows))
        return tuple(rows)

    async def _fetch_products(self, depot_id: DepotId) -> tuple[Product, ...]:
        try:
            rows = await self._client.get_products(depot_id)
        except Exception as e:
            raise TransportError("get_products", e, depot_id=depot_id) from e
        logger.debug("catalog.products_fetched", depot_id=depot_id, count=len(rows))
        return tuple(rows)

    # ───────────────────────────────────────────────────────────────────────────
    # Single Flight
    # ───────────────────────────────────────────────────────────────────────────

    def _forget(self, key: str, task: asyncio.Task[tuple]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Waiters may all have been cancelled; retrieve the failure here
        if not task.cancelled() and (e := task.exception()) is not None:
            logger.warning("catalog.fetch_failed", key=key, error=repr(e))

    async def _read_through[T: tuple](self, key: str, fetch: Callable[[], Awaitable[T]]) -> T:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.get_running_loop().create_task(self._cache.get_or_set(key, fetch))
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._forget(key, t))
        # Shield: one cancelled caller must not cancel the shared fetch
        return await asyncio.shield(task)

    # ───────────────────────────────────────────────────────────────────────────
    # Reads
    # ───────────────────────────────────────────────────────────────────────────

    async def get_variants(self, depot_id: DepotId) -> tuple[Variant, ...]:
        """Variants sold by a depot. Raises TransportError on client failure."""
        check_depot_id(depot_id)
        return await self._read_through(variants_key(depot_id), lambda: self._fetch_variants(depot_id))

    async def get_products(self, depot_id: DepotId) -> tuple[Product, ...]:
        """Products listed by a depot. Raises TransportError on client failure."""
        check_depot_id(depot_id)
        return await self._read_through(products_key(depot_id), lambda: self._fetch_products(depot_id))

    async def find_variant(self, depot_id: DepotId, variant_id: VariantId) -> Option[Variant]:
        for variant in await self.get_variants(depot_id):
            if variant.id == variant_id:
                return Some(variant)
        return Nothing()

    # ───────────────────────────────────────────────────────────────────────────
    # Warmup & Refresh
    # ───────────────────────────────────────────────────────────────────────────

    def warm(self, depot_id: DepotId) -> tuple[asyncio.Task[None], asyncio.Task[None]]:
        """
        Prefetch a depot's variants and products in the background.

        Failures are logged by the cache and never raised.
        """
        check_depot_id(depot_id)
        return (
            self._cache.prefetch(variants_key(depot_id), lambda: self._fetch_variants(depot_id)),
            self._cache.prefetch(products_key(depot_id), lambda: self._fetch_products(depot_id)),
        )

    def bind_refresh(self) -> None:
        """Let background refresh refetch catalog keys from the client."""

        async def refresh_variants(key: str) -> tuple[Variant, ...]:
            return await self._fetch_variants(int(key.removeprefix(VARIANTS_PREFIX)))

        async def refresh_products(key: str) -> tuple[Product, ...]:
            return await self._fetch_products(int(key.removeprefix(PRODUCTS_PREFIX)))

        self._cache.on_refresh(VARIANTS_PREFIX, refresh_variants)
        self._cache.on_refresh(PRODUCTS_PREFIX, refresh_products)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "CatalogView",
    "variants_key",
    "products_key",
    "VARIANTS_PREFIX",
    "PRODUCTS_PREFIX",
)
