"""
Cache — two tiers, namespace TTLs, background refresh.

Key concepts:
- Memory tier answers first, persistent tier survives restarts
- TTL comes from the key's namespace (products_ / variants_ / depot_mapping_)
- A refresh fires at 80% of the TTL when a handler is bound

Run: python -m examples.cache_example
"""

import asyncio
from datetime import timedelta

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from depotcart import cache as C
from depotcart.log import configure_logging
from examples._infra import banner, run


async def main() -> None:
    configure_logging("INFO")
    banner("Cache: Tiers, TTLs, Refresh")

    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    await C.create_storage_schema(engine)
    storage = C.SQLAlchemyStorage(async_sessionmaker(engine, expire_on_commit=False))

    policy = (
        C.CachePolicy()
        .with_namespace_ttl("prices_", seconds=1)
        .with_max_memory_entries(50)
    )

    print("\n1. Write-through and namespace TTLs:")
    async with C.tiered(storage, policy=policy) as cache:
        await cache.set("products_1", ["Cow Milk", "Curd"])
        await cache.set("prices_1", {100: 30.0})
        for key in ("products_1", "prices_1"):
            print(f"   {key}: ttl={policy.ttl_for(key)}")

    print("\n2. New cache instance, same database (memory tier is cold):")
    async with C.tiered(storage, policy=policy) as cache:
        print(f"   products_1 → {await cache.get('products_1')}")
        stats = await cache.stats()
        print(f"   memory={stats.memory_size} persistent={stats.persistent_size}")

        print("\n3. Background refresh at 80% of a 1s TTL:")
        refreshed = asyncio.Event()

        async def reprice(key: str) -> dict[int, float]:
            refreshed.set()
            return {100: 29.0}

        cache.on_refresh("prices_", reprice)
        await cache.set("prices_1", {100: 30.0}, timedelta(seconds=1))
        await asyncio.wait_for(refreshed.wait(), timeout=2)
        await asyncio.sleep(0.05)
        print(f"   prices_1 → {await cache.get('prices_1')}")

        print("\n4. Invalidate by pattern:")
        print(f"   removed {await cache.invalidate(r'^prices_')} key(s)")

    await engine.dispose()
    print("\nDone!")


if __name__ == "__main__":
    run(main)
