"""
TieredCache — memory tier in front of a persistent tier.

Composition of two independent Tier backends behind one interface: TTL
bookkeeping, eviction, quota recovery and refresh scheduling live here, so
either tier can be swapped without touching them.
"""

from __future__ import annotations

import asyncio
import math
import pickle
import re
import time
from collections.abc import Awaitable, Callable, Coroutine
from datetime import timedelta
from typing import Any

import structlog
from kungfu import Ok, Error

from depotcart._types import Clock, Fetch
from depotcart.cache import _ops as O
from depotcart.cache._policy import CachePolicy
from depotcart.cache._storage import MemoryStorage, Storage
from depotcart.cache._tiers import MemoryTier, StorageTier
from depotcart.cache._types import (
    CacheEntry,
    CacheError,
    CacheErrorKind,
    CacheStats,
    EntryStat,
    Tier,
)

logger = structlog.get_logger(__name__)

type RefreshHandler = Callable[[str], Awaitable[Any]]
"""Refetches the value for a key; its result is fed back through `set`."""


# ═══════════════════════════════════════════════════════════════════════════════
# Eviction Arithmetic
# ═══════════════════════════════════════════════════════════════════════════════


def eviction_count(size: int, bound: int, fraction: float) -> int:
    """
    How many memory entries to drop after a write.

    Zero while within the bound. Otherwise the configured fraction, but never
    fewer than needed to get back under the bound.
    """
    if size <= bound:
        return 0
    return max(math.floor(size * fraction), size - bound)


def recovery_count(size: int, fraction: float) -> int:
    """How many persistent entries to drop when the storage quota is hit."""
    if size == 0:
        return 0
    return max(1, math.floor(size * fraction))


def oldest_first(entries: list[tuple[str, CacheEntry[Any]]]) -> list[str]:
    """Keys ordered by write time; ties keep tier order."""
    return [key for key, _ in sorted(entries, key=lambda item: item[1].timestamp)]


def _entry_size(entry: CacheEntry[Any]) -> int:
    try:
        return len(pickle.dumps(entry))
    except (pickle.PicklingError, TypeError, AttributeError):
        return 0


# ═══════════════════════════════════════════════════════════════════════════════
# TieredCache
# ═══════════════════════════════════════════════════════════════════════════════


class TieredCache:
    """
    Two-tier TTL cache.

    Reads go memory → persistent; a valid persistent hit is promoted back
    into memory. Writes go to both tiers. Tier failures are logged and
    treated as misses; the memory tier stays authoritative for the process
    when persistence is unavailable.

    Example:
        cache = TieredCache(policy=CachePolicy().with_max_memory_entries(500))

        await cache.set("variants_7", variants)
        cached = await cache.get("variants_7")

        variants = await cache.get_or_set(
            "variants_7",
            lambda: client.get_depot_variants(7),
        )
    """

    def __init__(
        self,
        memory: Tier | None = None,
        persistent: Tier | None = None,
        *,
        policy: CachePolicy | None = None,
        clock: Clock = time.time,
    ) -> None:
        self._policy = policy or CachePolicy()
        self._memory: Tier = memory if memory is not None else MemoryTier()
        self._persistent: Tier = (
            persistent
            if persistent is not None
            else StorageTier(MemoryStorage(), prefix=self._policy.storage_prefix)
        )
        self._clock = clock
        self._hits = 0
        self._misses = 0
        self._handlers: list[tuple[str, RefreshHandler]] = []
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._tasks: set[asyncio.Task[Any]] = set()
        self._closed = False

    @property
    def policy(self) -> CachePolicy:
        return self._policy

    @property
    def memory(self) -> Tier:
        return self._memory

    @property
    def persistent(self) -> Tier:
        return self._persistent

    @property
    def scheduled_refreshes(self) -> frozenset[str]:
        """Keys with a pending refresh timer."""
        return frozenset(self._timers)

    # ───────────────────────────────────────────────────────────────────────────
    # Reads
    # ───────────────────────────────────────────────────────────────────────────

    async def _read(self, tier: Tier, key: str) -> CacheEntry[Any] | None:
        try:
            return await tier.get(key)
        except Exception as e:
            logger.warning("cache.tier_read_failed", tier=tier.name, key=key, error=str(e))
            return None

    async def _drop(self, tier: Tier, key: str) -> None:
        match await O.evict(tier, key):
            case Error(e):
                logger.warning("cache.tier_delete_failed", tier=tier.name, key=key, error=e.message)
            case _:
                pass

    async def _lookup(self, key: str) -> CacheEntry[Any] | None:
        now = self._clock()

        entry = await self._read(self._memory, key)
        if entry is not None:
            if entry.is_valid(now):
                return entry
            await self._drop(self._memory, key)

        entry = await self._read(self._persistent, key)
        if entry is not None:
            if entry.is_valid(now):
                await self._write_memory(key, entry)
                await self._enforce_memory_bound(keep=key)
                return entry
            await self._drop(self._persistent, key)

        return None

    async def get(self, key: str) -> Any | None:
        """Valid value for key, or None. Expired entries are deleted on sight."""
        entry = await self._lookup(key)
        if entry is None:
            self._misses += 1
            return None
        self._hits += 1
        return entry.data

    async def has(self, key: str) -> bool:
        """True iff a valid entry exists. Does not touch hit/miss counters."""
        return await self._lookup(key) is not None

    # ───────────────────────────────────────────────────────────────────────────
    # Writes
    # ───────────────────────────────────────────────────────────────────────────

    async def _write_memory(self, key: str, entry: CacheEntry[Any]) -> None:
        match await O.store(self._memory, key, entry):
            case Error(e):
                logger.warning("cache.tier_write_failed", tier=self._memory.name, key=key, error=e.message)
            case _:
                pass

    async def _write_persistent(self, key: str, entry: CacheEntry[Any]) -> None:
        match await O.store(self._persistent, key, entry):
            case Ok(_):
                return
            case Error(CacheError(kind=CacheErrorKind.QUOTA)):
                removed = await self._recover_quota()
                logger.warning("cache.quota_recovered", key=key, removed=removed)
                match await O.store(self._persistent, key, entry):
                    case Error(e):
                        # Memory tier remains authoritative for this key
                        logger.warning("cache.persist_skipped", key=key, error=e.message)
                    case _:
                        pass
            case Error(e):
                logger.warning(
                    "cache.tier_write_failed", tier=self._persistent.name, key=key, error=e.message
                )

    async def _recover_quota(self) -> int:
        try:
            entries = await self._persistent.entries()
        except Exception as e:
            logger.warning("cache.tier_read_failed", tier=self._persistent.name, error=str(e))
            return 0

        doomed = oldest_first(entries)[: recovery_count(len(entries), self._policy.recovery_fraction)]
        for key in doomed:
            await self._drop(self._persistent, key)
        return len(doomed)

    async def _enforce_memory_bound(self, keep: str | None = None) -> None:
        """Evict the oldest memory entries past the bound, never `keep`."""
        try:
            entries = await self._memory.entries()
        except Exception as e:
            logger.warning("cache.tier_read_failed", tier=self._memory.name, error=str(e))
            return

        count = eviction_count(
            len(entries),
            self._policy.max_memory_entries,
            self._policy.eviction_fraction,
        )
        if count == 0:
            return

        # A promoted entry carries its original timestamp and would go first
        for key in [k for k in oldest_first(entries) if k != keep][:count]:
            await self._drop(self._memory, key)
        logger.debug("cache.evicted", count=count, remaining=len(entries) - count)

    async def set(self, key: str, data: Any, ttl: timedelta | None = None) -> None:
        """
        Write to both tiers.

        ttl defaults to the key's namespace TTL class. Enforces the memory
        bound, then schedules a background refresh.
        """
        lifetime = ttl if ttl is not None else self._policy.ttl_for(key)
        seconds = lifetime.total_seconds()
        if seconds <= 0:
            raise ValueError(f"ttl must be positive, got {lifetime}")

        entry = CacheEntry(data=data, timestamp=self._clock(), ttl=seconds)
        await self._write_memory(key, entry)
        await self._write_persistent(key, entry)
        await self._enforce_memory_bound()
        self._schedule_refresh(key, seconds * self._policy.refresh_fraction)

    # ───────────────────────────────────────────────────────────────────────────
    # Invalidation
    # ───────────────────────────────────────────────────────────────────────────

    async def _keys(self, tier: Tier) -> set[str]:
        try:
            return {key for key, _ in await tier.entries()}
        except Exception as e:
            logger.warning("cache.tier_read_failed", tier=tier.name, error=str(e))
            return set()

    async def invalidate(self, pattern: str) -> int:
        """
        Remove every key matching a regex (`re.search`) from both tiers.

        Returns the number of distinct keys removed.
        """
        regex = re.compile(pattern)
        matched = {
            key
            for key in (await self._keys(self._memory)) | (await self._keys(self._persistent))
            if regex.search(key)
        }

        for tier in (self._memory, self._persistent):
            match await O.purge(tier, pattern):
                case Error(e):
                    logger.warning("cache.invalidate_failed", tier=tier.name, pattern=pattern, error=e.message)
                case _:
                    pass

        for key in [k for k in self._timers if regex.search(k)]:
            self._timers.pop(key).cancel()

        logger.debug("cache.invalidated", pattern=pattern, count=len(matched))
        return len(matched)

    async def clear(self) -> None:
        """Drop everything from both tiers and cancel pending refreshes."""
        for tier in (self._memory, self._persistent):
            try:
                await tier.clear()
            except Exception as e:
                logger.warning("cache.clear_failed", tier=tier.name, error=str(e))
        self._cancel_timers()

    # ───────────────────────────────────────────────────────────────────────────
    # Read-Through Helpers
    # ───────────────────────────────────────────────────────────────────────────

    async def get_or_set[T](self, key: str, fetch: Fetch[T], ttl: timedelta | None = None) -> T:
        """
        Cached value, or fetch + store it. Fetch errors propagate.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached
        data = await fetch()
        await self.set(key, data, ttl)
        return data

    def prefetch[T](self, key: str, fetch: Fetch[T], ttl: timedelta | None = None) -> asyncio.Task[None]:
        """
        Populate key in the background unless already cached.

        Fire-and-forget: fetch errors are logged, never raised. The task is
        returned for callers that want to await it.
        """

        async def run() -> None:
            if await self.has(key):
                return
            try:
                data = await fetch()
            except Exception as e:
                logger.warning("cache.prefetch_failed", key=key, error=repr(e))
                return
            await self.set(key, data, ttl)

        return self._spawn(run())

    # ───────────────────────────────────────────────────────────────────────────
    # Background Refresh
    # ───────────────────────────────────────────────────────────────────────────

    def on_refresh(self, prefix: str, handler: RefreshHandler) -> None:
        """
        Bind a refetch handler for keys starting with prefix.

        Later bindings for the same prefix replace earlier ones.

        Example:
            cache.on_refresh("variants_", lambda key: client.get_depot_variants(int(key[9:])))
        """
        self._handlers = [(p, h) for p, h in self._handlers if p != prefix]
        self._handlers.append((prefix, handler))

    def _handler_for(self, key: str) -> RefreshHandler | None:
        for prefix, handler in self._handlers:
            if key.startswith(prefix):
                return handler
        return None

    def _schedule_refresh(self, key: str, delay: float) -> None:
        if self._closed:
            return
        previous = self._timers.pop(key, None)
        if previous is not None:
            previous.cancel()
        loop = asyncio.get_running_loop()
        self._timers[key] = loop.call_later(delay, self._fire_refresh, key)

    def _fire_refresh(self, key: str) -> None:
        self._timers.pop(key, None)
        if self._handler_for(key) is None:
            logger.debug("cache.refresh_unbound", key=key)
            return
        self._spawn(self.refresh(key))

    async def refresh(self, key: str) -> bool:
        """
        Run the bound handler for key now and store its result.

        Returns False when no handler is bound or the handler fails; the
        current entry stays in place either way. The refreshed entry keeps
        the current entry's TTL.
        """
        handler = self._handler_for(key)
        if handler is None:
            logger.debug("cache.refresh_unbound", key=key)
            return False
        try:
            data = await handler(key)
        except Exception as e:
            logger.warning("cache.refresh_failed", key=key, error=repr(e))
            return False

        current = await self._read(self._memory, key) or await self._read(self._persistent, key)
        ttl = timedelta(seconds=current.ttl) if current is not None else None
        await self.set(key, data, ttl)
        logger.debug("cache.refreshed", key=key)
        return True

    # ───────────────────────────────────────────────────────────────────────────
    # Stats & Lifecycle
    # ───────────────────────────────────────────────────────────────────────────

    async def stats(self) -> CacheStats:
        """Snapshot of tier sizes, hit/miss counters and per-entry details."""
        found: list[EntryStat] = []
        sizes: dict[str, int] = {}
        for tier in (self._memory, self._persistent):
            try:
                entries = await tier.entries()
            except Exception as e:
                logger.warning("cache.tier_read_failed", tier=tier.name, error=str(e))
                entries = []
            sizes[tier.name] = len(entries)
            for key, entry in entries:
                # Stored byte size where the tier has one
                size = await tier.size_of(key) if isinstance(tier, StorageTier) else _entry_size(entry)
                found.append(EntryStat(key=key, tier=tier.name, size=size, ttl=entry.ttl))

        return CacheStats(
            memory_size=sizes[self._memory.name],
            persistent_size=sizes[self._persistent.name],
            hits=self._hits,
            misses=self._misses,
            entries=tuple(found),
        )

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _cancel_timers(self) -> None:
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()

    async def aclose(self) -> None:
        """Cancel pending refresh timers and background tasks."""
        self._closed = True
        self._cancel_timers()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def __aenter__(self) -> TieredCache:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()


# ═══════════════════════════════════════════════════════════════════════════════
# tiered() — Entry Point
# ═══════════════════════════════════════════════════════════════════════════════


def tiered(
    storage: Storage | None = None,
    *,
    policy: CachePolicy | None = None,
    clock: Clock = time.time,
) -> TieredCache:
    """
    Build a TieredCache over a storage backend.

    Example:
        from depotcart import cache as C

        cache = C.tiered(C.MemoryStorage(quota_bytes=64 * 1024))
    """
    policy = policy or CachePolicy()
    return TieredCache(
        MemoryTier(),
        StorageTier(storage or MemoryStorage(), prefix=policy.storage_prefix),
        policy=policy,
        clock=clock,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "RefreshHandler",
    "TieredCache",
    "tiered",
    "eviction_count",
    "recovery_count",
    "oldest_first",
)
