"""
Cache — two-tier TTL cache with quota recovery and background refresh.

    from depotcart import cache as C

    cache = C.tiered(C.MemoryStorage(quota_bytes=64 * 1024))
    variants = await cache.get_or_set("variants_7", lambda: client.get_depot_variants(7))
"""

from __future__ import annotations

from depotcart.cache._types import (
    CacheEntry,
    Tier,
    QuotaExceeded,
    CacheError,
    CacheErrorKind,
    EntryStat,
    CacheStats,
)
from depotcart.cache._policy import (
    CachePolicy,
    PRODUCTS_TTL,
    VARIANTS_TTL,
    DEPOT_MAPPING_TTL,
)
from depotcart.cache._storage import Storage, MemoryStorage
from depotcart.cache._sqlalchemy import SQLAlchemyStorage, create_storage_schema
from depotcart.cache._tiers import MemoryTier, StorageTier
from depotcart.cache._tiered import TieredCache, RefreshHandler, tiered
from depotcart.cache._ops import evict, purge, store

__all__ = (
    "CacheEntry",
    "Tier",
    "QuotaExceeded",
    "CacheError",
    "CacheErrorKind",
    "EntryStat",
    "CacheStats",
    "CachePolicy",
    "PRODUCTS_TTL",
    "VARIANTS_TTL",
    "DEPOT_MAPPING_TTL",
    "Storage",
    "MemoryStorage",
    "SQLAlchemyStorage",
    "create_storage_schema",
    "MemoryTier",
    "StorageTier",
    "TieredCache",
    "RefreshHandler",
    "tiered",
    "evict",
    "purge",
    "store",
)
