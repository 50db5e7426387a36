"""Shared infrastructure for examples."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field

from depotcart.catalog import Product, Variant
from depotcart.depot import Depot


# Depots
NORTH = Depot(id=1, name="North Kitchen", address="12 Ring Road", service_radius=8.0)
SOUTH = Depot(id=2, name="South Kitchen", address="4 Lake View", service_radius=6.5)
ONLINE = Depot(id=9, name="Online Store", is_online=True)


# Catalog
MILK = Product(10, "Cow Milk", is_dairy=True)
CURD = Product(11, "Curd", is_dairy=True)
PANEER = Product(12, "Paneer", is_dairy=True)


def _variants() -> dict[int, list[Variant]]:
    return {
        NORTH.id: [
            Variant(100, MILK.id, NORTH.id, "500 ML", mrp=32.0, buy_once_price=30.0, closing_qty=40),
            Variant(101, MILK.id, NORTH.id, "1 Ltr", mrp=60.0, closing_qty=25),
            Variant(110, CURD.id, NORTH.id, "400 Grams", mrp=45.0, closing_qty=10),
            Variant(120, PANEER.id, NORTH.id, "200 g", mrp=90.0, closing_qty=6),
        ],
        SOUTH.id: [
            Variant(205, MILK.id, SOUTH.id, "500ml", mrp=32.0, closing_qty=12),
            Variant(206, MILK.id, SOUTH.id, "1 litre", mrp=58.0, closing_qty=1),
            Variant(215, CURD.id, SOUTH.id, "400 gms", mrp=45.0, not_in_stock=True),
        ],
    }


# Fake remote services
@dataclass(slots=True)
class FakeCatalog:
    latency: float = 0.02
    variants: dict[int, list[Variant]] = field(default_factory=_variants)
    products: dict[int, list[Product]] = field(default_factory=lambda: {
        NORTH.id: [MILK, CURD, PANEER],
        SOUTH.id: [MILK, CURD],
    })
    down: bool = False

    async def _call[T](self, rows: list[T]) -> list[T]:
        await asyncio.sleep(self.latency)
        if self.down:
            raise ConnectionError("catalog API unreachable")
        return list(rows)

    async def get_products(self, depot_id: int) -> list[Product]:
        print(f"  [ORIGIN] products for depot {depot_id}")
        return await self._call(self.products.get(depot_id, []))

    async def get_depot_variants(self, depot_id: int) -> list[Variant]:
        print(f"  [ORIGIN] variants for depot {depot_id}")
        return await self._call(self.variants.get(depot_id, []))


@dataclass(slots=True)
class FakeDirectory:
    pincodes: dict[str, list[Depot]] = field(default_factory=lambda: {
        "411001": [NORTH],
        "411002": [NORTH, SOUTH],
        "560001": [SOUTH],
    })

    async def get_depots_for_pincode(self, pincode: str) -> list[Depot]:
        await asyncio.sleep(0.01)
        return list(self.pincodes.get(pincode, []))

    async def get_online_depot(self) -> Depot | None:
        return ONLINE


# Helpers
def banner(title: str) -> None:
    print(f"\n{'─' * 50}\n{title}\n{'─' * 50}")


def run(main: Callable[[], Coroutine[object, object, None]]) -> None:
    asyncio.run(main())
