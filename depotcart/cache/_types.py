"""
Cache types.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Protocol

# ═══════════════════════════════════════════════════════════════════════════════
# Cache Entry
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CacheEntry[T]:
    """
    Stored value with its write time and lifetime (both in seconds).

    Valid iff `now - timestamp < ttl`. Expiry is checked lazily by readers.
    """

    data: T
    timestamp: float
    ttl: float

    def is_valid(self, now: float) -> bool:
        return now - self.timestamp < self.ttl


# ═══════════════════════════════════════════════════════════════════════════════
# Tier Protocol — Users Implement This
# ═══════════════════════════════════════════════════════════════════════════════


class Tier(Protocol):
    """
    Cache tier protocol.

    A tier stores whole `CacheEntry` records and knows nothing about TTLs,
    eviction or refresh; `TieredCache` owns those. Implement this to back
    the cache with another store.

    Example:
        class RedisTier:
            def __init__(self, client: Redis) -> None:
                self.client = client

            @property
            def name(self) -> str:
                return "redis"

            async def get(self, key: str) -> CacheEntry[Any] | None:
                raw = await self.client.get(key)
                return pickle.loads(raw) if raw else None

            async def set(self, key: str, entry: CacheEntry[Any]) -> None:
                await self.client.set(key, pickle.dumps(entry))

            ...
    """

    @property
    def name(self) -> str:
        """Tier name for logs and stats."""
        ...

    async def get(self, key: str) -> CacheEntry[Any] | None:
        """Get entry (expired or not). Returns None on miss."""
        ...

    async def set(self, key: str, entry: CacheEntry[Any]) -> None:
        """Store entry. May raise QuotaExceeded."""
        ...

    async def delete(self, key: str) -> bool:
        """Delete key. Returns True if existed."""
        ...

    async def delete_pattern(self, pattern: str) -> int:
        """Delete keys matching regex pattern. Returns count."""
        ...

    async def entries(self) -> list[tuple[str, CacheEntry[Any]]]:
        """All stored (key, entry) pairs."""
        ...

    async def clear(self) -> None:
        """Drop everything this tier owns."""
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


class QuotaExceeded(Exception):
    """Persistent store refused a write because it is full."""

    def __init__(self, key: str, needed: int, quota: int) -> None:
        self.key = key
        self.needed = needed
        self.quota = quota
        super().__init__(f"quota exceeded writing {key!r}: {needed} bytes over {quota}")


class CacheErrorKind(Enum):
    """Cache error kinds."""
    CONNECTION = auto()
    SERIALIZATION = auto()
    QUOTA = auto()


@dataclass(frozen=True, slots=True)
class CacheError:
    """Cache operation error."""
    kind: CacheErrorKind
    message: str


# ═══════════════════════════════════════════════════════════════════════════════
# Stats
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class EntryStat:
    key: str
    tier: str
    size: int
    ttl: float


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Snapshot of both tiers plus read counters."""
    memory_size: int
    persistent_size: int
    hits: int
    misses: int
    entries: tuple[EntryStat, ...]

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "CacheEntry",
    "Tier",
    "QuotaExceeded",
    "CacheErrorKind",
    "CacheError",
    "EntryStat",
    "CacheStats",
)
