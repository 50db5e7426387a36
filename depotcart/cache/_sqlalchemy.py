"""
SQLAlchemy integration — persistent cache storage in any async database.

Usage:
    engine = create_async_engine("sqlite+aiosqlite:///cache.db")
    await create_storage_schema(engine)

    storage = SQLAlchemyStorage(
        async_sessionmaker(engine, expire_on_commit=False),
        quota_bytes=10 * 1024 * 1024,
    )
    cache = C.tiered(storage=storage)
"""

from __future__ import annotations

from sqlalchemy import Integer, LargeBinary, String, func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from depotcart.cache._storage import DEFAULT_QUOTA_BYTES
from depotcart.cache._types import QuotaExceeded


# ═══════════════════════════════════════════════════════════════════════════════
# Table
# ═══════════════════════════════════════════════════════════════════════════════


class StorageBase(DeclarativeBase):
    pass


class CacheRow(StorageBase):
    """
    One persisted cache value.

    size: len(key) + len(value), summed to enforce the quota.
    """

    __tablename__ = "depotcart_cache"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)


async def create_storage_schema(engine: AsyncEngine) -> None:
    """Create the cache table if missing."""
    async with engine.begin() as conn:
        await conn.run_sync(StorageBase.metadata.create_all)


# ═══════════════════════════════════════════════════════════════════════════════
# SQLAlchemy Storage
# ═══════════════════════════════════════════════════════════════════════════════


class SQLAlchemyStorage:
    """
    Storage backed by the `depotcart_cache` table.

    Database errors propagate; the tier above logs them and degrades to the
    memory tier.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        quota_bytes: int = DEFAULT_QUOTA_BYTES,
    ) -> None:
        if quota_bytes <= 0:
            raise ValueError("quota_bytes must be positive")
        self._session_factory = session_factory
        self._quota = quota_bytes

    async def get(self, key: str) -> bytes | None:
        async with self._session_factory() as session:
            row = await session.get(CacheRow, key)
            return row.value if row is not None else None

    async def set(self, key: str, value: bytes) -> None:
        size = len(key) + len(value)
        async with self._session_factory() as session:
            used = await session.scalar(
                select(func.coalesce(func.sum(CacheRow.size), 0)).where(
                    CacheRow.key != key
                )
            )
            if (used or 0) + size > self._quota:
                raise QuotaExceeded(key, size, self._quota)

            row = await session.get(CacheRow, key)
            if row is None:
                session.add(CacheRow(key=key, value=value, size=size))
            else:
                row.value = value
                row.size = size
            await session.commit()

    async def remove(self, key: str) -> bool:
        async with self._session_factory() as session:
            row = await session.get(CacheRow, key)
            if row is None:
                return False
            await session.delete(row)
            await session.commit()
            return True

    async def keys(self) -> list[str]:
        async with self._session_factory() as session:
            result = await session.scalars(select(CacheRow.key).order_by(CacheRow.key))
            return list(result)


__all__ = (
    "StorageBase",
    "CacheRow",
    "create_storage_schema",
    "SQLAlchemyStorage",
)
