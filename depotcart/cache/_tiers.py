"""
Shipped tiers — volatile memory and persistent storage.
"""

from __future__ import annotations

import pickle
import re
from typing import Any

import structlog

from depotcart.cache._storage import Storage
from depotcart.cache._types import CacheEntry

logger = structlog.get_logger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Memory Tier — Volatile, Dict-Backed
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryTier:
    """
    In-memory tier.

    Unbounded on its own; TieredCache enforces the entry bound by timestamp.

    Example:
        tier = MemoryTier()
    """

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry[Any]] = {}

    @property
    def name(self) -> str:
        return "memory"

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> CacheEntry[Any] | None:
        return self._entries.get(key)

    async def set(self, key: str, entry: CacheEntry[Any]) -> None:
        # Re-insert so iteration order follows write order
        self._entries.pop(key, None)
        self._entries[key] = entry

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def delete_pattern(self, pattern: str) -> int:
        regex = re.compile(pattern)
        doomed = [k for k in self._entries if regex.search(k)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    async def entries(self) -> list[tuple[str, CacheEntry[Any]]]:
        return list(self._entries.items())

    async def clear(self) -> None:
        self._entries.clear()


# ═══════════════════════════════════════════════════════════════════════════════
# Storage Tier — Persistent, Pickled Entries
# ═══════════════════════════════════════════════════════════════════════════════


class StorageTier:
    """
    Persistent tier over a byte-string Storage.

    Keys are stored as `{prefix}{key}`; storage keys without the prefix
    belong to someone else and are never touched. Entries that fail to
    unpickle are removed on sight.

    Example:
        tier = StorageTier(MemoryStorage(quota_bytes=64 * 1024))
    """

    def __init__(self, storage: Storage, prefix: str = "cache_") -> None:
        self._storage = storage
        self._prefix = prefix

    @property
    def name(self) -> str:
        return "persistent"

    @property
    def storage(self) -> Storage:
        return self._storage

    def _decode(self, raw: bytes) -> CacheEntry[Any] | None:
        try:
            entry = pickle.loads(raw)
        except Exception:
            return None
        return entry if isinstance(entry, CacheEntry) else None

    async def _own_keys(self) -> list[str]:
        return [k[len(self._prefix):] for k in await self._storage.keys() if k.startswith(self._prefix)]

    async def get(self, key: str) -> CacheEntry[Any] | None:
        raw = await self._storage.get(self._prefix + key)
        if raw is None:
            return None
        entry = self._decode(raw)
        if entry is None:
            logger.warning("cache.entry_corrupt", key=key, tier=self.name)
            await self._storage.remove(self._prefix + key)
        return entry

    async def set(self, key: str, entry: CacheEntry[Any]) -> None:
        await self._storage.set(self._prefix + key, pickle.dumps(entry))

    async def delete(self, key: str) -> bool:
        return await self._storage.remove(self._prefix + key)

    async def delete_pattern(self, pattern: str) -> int:
        regex = re.compile(pattern)
        count = 0
        for key in await self._own_keys():
            if regex.search(key) and await self._storage.remove(self._prefix + key):
                count += 1
        return count

    async def entries(self) -> list[tuple[str, CacheEntry[Any]]]:
        found: list[tuple[str, CacheEntry[Any]]] = []
        for key in await self._own_keys():
            entry = await self.get(key)
            if entry is not None:
                found.append((key, entry))
        return found

    async def size_of(self, key: str) -> int:
        raw = await self._storage.get(self._prefix + key)
        return len(raw) if raw is not None else 0

    async def clear(self) -> None:
        for key in await self._own_keys():
            await self._storage.remove(self._prefix + key)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = ("MemoryTier", "StorageTier")
