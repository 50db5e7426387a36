"""SQLAlchemyStorage on aiosqlite, alone and as a TieredCache backend."""

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from depotcart.cache import (
    QuotaExceeded,
    SQLAlchemyStorage,
    create_storage_schema,
    tiered,
)


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cache.db'}")
    await create_storage_schema(engine)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


class TestSQLAlchemyStorage:
    async def test_set_get_remove(self, session_factory):
        storage = SQLAlchemyStorage(session_factory)

        await storage.set("cache_a", b"alpha")
        await storage.set("cache_b", b"beta")

        assert await storage.get("cache_a") == b"alpha"
        assert await storage.keys() == ["cache_a", "cache_b"]
        assert await storage.remove("cache_a") is True
        assert await storage.remove("cache_a") is False
        assert await storage.get("cache_a") is None

    async def test_overwrite_replaces_value(self, session_factory):
        storage = SQLAlchemyStorage(session_factory)
        await storage.set("cache_a", b"one")
        await storage.set("cache_a", b"two")
        assert await storage.get("cache_a") == b"two"
        assert await storage.keys() == ["cache_a"]

    async def test_quota_enforced(self, session_factory):
        storage = SQLAlchemyStorage(session_factory, quota_bytes=30)
        await storage.set("k1", b"x" * 20)

        with pytest.raises(QuotaExceeded) as exc:
            await storage.set("k2", b"x" * 20)
        assert exc.value.quota == 30

        # Rewriting an existing key does not count its own old size
        await storage.set("k1", b"y" * 25)
        assert await storage.get("k1") == b"y" * 25

    async def test_quota_must_be_positive(self, session_factory):
        with pytest.raises(ValueError):
            SQLAlchemyStorage(session_factory, quota_bytes=0)


class TestTieredOverDatabase:
    async def test_value_survives_cache_restart(self, session_factory, clock):
        storage = SQLAlchemyStorage(session_factory)

        async with tiered(storage, clock=clock) as first:
            await first.set("products_1", ("milk", "curd"))

        async with tiered(storage, clock=clock) as second:
            assert await second.get("products_1") == ("milk", "curd")
            assert await second.invalidate(r"^products_") == 1
            assert await storage.keys() == []
