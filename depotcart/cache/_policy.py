"""
Cache policy — TTL classes, memory bound, eviction and refresh tuning.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import timedelta


# ═══════════════════════════════════════════════════════════════════════════════
# TTL Classes
# ═══════════════════════════════════════════════════════════════════════════════

PRODUCTS_TTL = timedelta(minutes=30)
VARIANTS_TTL = timedelta(minutes=15)
DEPOT_MAPPING_TTL = timedelta(minutes=60)

DEFAULT_NAMESPACES: tuple[tuple[str, timedelta], ...] = (
    ("products_", PRODUCTS_TTL),
    ("variants_", VARIANTS_TTL),
    ("depot_mapping_", DEPOT_MAPPING_TTL),
)


def _to_delta(
    seconds: float | None,
    minutes: float | None,
    delta: timedelta | None,
) -> timedelta:
    if delta is not None:
        ttl = delta
    else:
        ttl = timedelta(seconds=(seconds or 0) + (minutes or 0) * 60)
    if ttl <= timedelta(0):
        raise ValueError(f"ttl must be positive, got {ttl}")
    return ttl


def _fraction(name: str, value: float) -> float:
    if not 0 < value <= 1:
        raise ValueError(f"{name} must be in (0, 1], got {value}")
    return value


# ═══════════════════════════════════════════════════════════════════════════════
# Policy
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CachePolicy:
    """
    TieredCache configuration.

    Fluent builder — each method returns a new policy.

    Example:
        policy = (
            CachePolicy()
            .with_namespace_ttl("variants_", minutes=5)
            .with_max_memory_entries(500)
        )

    namespaces: key prefix → TTL, first matching prefix wins.
    default_ttl: TTL for keys outside every namespace.
    max_memory_entries: memory tier bound, enforced after each write.
    eviction_fraction: share of memory entries dropped (oldest first) when
        the bound is exceeded.
    recovery_fraction: share of persistent entries dropped (oldest first)
        when the storage quota is hit.
    refresh_fraction: refresh fires at this share of an entry's TTL.
    storage_prefix: key prefix inside the persistent storage.
    """

    namespaces: tuple[tuple[str, timedelta], ...] = DEFAULT_NAMESPACES
    default_ttl: timedelta = PRODUCTS_TTL
    max_memory_entries: int = 100
    eviction_fraction: float = 0.2
    recovery_fraction: float = 0.5
    refresh_fraction: float = 0.8
    storage_prefix: str = "cache_"

    def ttl_for(self, key: str) -> timedelta:
        """TTL class for a key, from its namespace prefix."""
        for prefix, ttl in self.namespaces:
            if key.startswith(prefix):
                return ttl
        return self.default_ttl

    def with_namespace_ttl(
        self,
        prefix: str,
        *,
        seconds: float | None = None,
        minutes: float | None = None,
        delta: timedelta | None = None,
    ) -> CachePolicy:
        """
        Set (or add) the TTL class for a key prefix.

        Example:
            .with_namespace_ttl("variants_", minutes=5)
        """
        ttl = _to_delta(seconds, minutes, delta)
        rest = tuple((p, t) for p, t in self.namespaces if p != prefix)
        return replace(self, namespaces=((prefix, ttl), *rest))

    def with_default_ttl(
        self,
        *,
        seconds: float | None = None,
        minutes: float | None = None,
        delta: timedelta | None = None,
    ) -> CachePolicy:
        return replace(self, default_ttl=_to_delta(seconds, minutes, delta))

    def with_max_memory_entries(self, count: int) -> CachePolicy:
        if count < 1:
            raise ValueError(f"max_memory_entries must be >= 1, got {count}")
        return replace(self, max_memory_entries=count)

    def with_eviction_fraction(self, fraction: float) -> CachePolicy:
        return replace(self, eviction_fraction=_fraction("eviction_fraction", fraction))

    def with_recovery_fraction(self, fraction: float) -> CachePolicy:
        return replace(self, recovery_fraction=_fraction("recovery_fraction", fraction))

    def with_refresh_fraction(self, fraction: float) -> CachePolicy:
        """
        When to fire background refresh, as a share of TTL.

        Example:
            .with_refresh_fraction(0.5)  # refresh at half-life
        """
        return replace(self, refresh_fraction=_fraction("refresh_fraction", fraction))

    def with_storage_prefix(self, prefix: str) -> CachePolicy:
        return replace(self, storage_prefix=prefix)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "PRODUCTS_TTL",
    "VARIANTS_TTL",
    "DEPOT_MAPPING_TTL",
    "DEFAULT_NAMESPACES",
    "CachePolicy",
)
