"""
Tier operations — standalone utilities returning Results.
"""

from __future__ import annotations

import pickle
from typing import Any

from kungfu import LazyCoroResult
from combinators import lift as L

from depotcart.cache._types import CacheEntry, Tier, CacheError, CacheErrorKind, QuotaExceeded


def _to_cache_error(e: Exception) -> CacheError:
    match e:
        case QuotaExceeded():
            return CacheError(CacheErrorKind.QUOTA, str(e))
        case pickle.PicklingError() | TypeError() | AttributeError():
            return CacheError(CacheErrorKind.SERIALIZATION, str(e))
        case _:
            return CacheError(CacheErrorKind.CONNECTION, str(e))


# ═══════════════════════════════════════════════════════════════════════════════
# evict() — Single Key in Tier
# ═══════════════════════════════════════════════════════════════════════════════


def evict(t: Tier, key: str) -> LazyCoroResult[bool, CacheError]:
    """
    Remove one key from a tier.

    Example:
        result = await C.evict(memory_tier, "variants_7")
    """

    async def do_evict() -> bool:
        return await t.delete(key)

    return L.catching_async(do_evict, on_error=_to_cache_error)


# ═══════════════════════════════════════════════════════════════════════════════
# purge() — Regex Match in Tier
# ═══════════════════════════════════════════════════════════════════════════════


def purge(t: Tier, pattern: str) -> LazyCoroResult[int, CacheError]:
    """
    Remove every key in a tier matching a regex (`re.search` semantics).

    Example:
        count = await C.purge(persistent_tier, r"^variants_")

    Returns:
        Number of keys removed
    """

    async def do_purge() -> int:
        return await t.delete_pattern(pattern)

    return L.catching_async(do_purge, on_error=_to_cache_error)


# ═══════════════════════════════════════════════════════════════════════════════
# store() — Write Entry to Tier
# ═══════════════════════════════════════════════════════════════════════════════


def store(t: Tier, key: str, entry: CacheEntry[Any]) -> LazyCoroResult[None, CacheError]:
    """
    Write an entry. QuotaExceeded maps to QUOTA, pickling failures to
    SERIALIZATION.
    """

    async def do_store() -> None:
        await t.set(key, entry)

    return L.catching_async(do_store, on_error=_to_cache_error)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = ("evict", "purge", "store")
