"""
Persistent storage protocol — opaque byte-string key/value store.

Storage[bytes] backs `StorageTier`. It knows nothing about entries or TTLs;
it only stores bytes and enforces its own quota.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

from depotcart.cache._types import QuotaExceeded

# ═══════════════════════════════════════════════════════════════════════════════
# Storage Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class Storage(Protocol):
    """
    Byte-string key/value store with a quota ceiling.

    `set` raises QuotaExceeded when the write would not fit.
    """

    async def get(self, key: str) -> bytes | None:
        ...

    async def set(self, key: str, value: bytes) -> None:
        ...

    async def remove(self, key: str) -> bool:
        ...

    async def keys(self) -> list[str]:
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Memory Storage — For Testing / Single Process
# ═══════════════════════════════════════════════════════════════════════════════

DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024


class MemoryStorage:
    """
    In-memory storage with a byte quota (key + value lengths).

    Note: data does not survive a restart; use SQLAlchemyStorage for that.
    """

    def __init__(self, quota_bytes: int = DEFAULT_QUOTA_BYTES) -> None:
        if quota_bytes <= 0:
            raise ValueError("quota_bytes must be positive")
        self._quota = quota_bytes
        self._items: dict[str, bytes] = {}
        self._used = 0
        self._lock = asyncio.Lock()

    @property
    def used_bytes(self) -> int:
        return self._used

    async def get(self, key: str) -> bytes | None:
        return self._items.get(key)

    async def set(self, key: str, value: bytes) -> None:
        async with self._lock:
            size = len(key) + len(value)
            existing = self._items.get(key)
            freed = len(key) + len(existing) if existing is not None else 0

            if self._used - freed + size > self._quota:
                raise QuotaExceeded(key, size, self._quota)

            self._items[key] = value
            self._used += size - freed

    async def remove(self, key: str) -> bool:
        async with self._lock:
            value = self._items.pop(key, None)
            if value is None:
                return False
            self._used -= len(key) + len(value)
            return True

    async def keys(self) -> list[str]:
        return list(self._items)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "Storage",
    "MemoryStorage",
    "DEFAULT_QUOTA_BYTES",
)
