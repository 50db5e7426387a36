"""
Depot switch — what happens to a cart when the shopper moves.

Key concepts:
- Session = one cache + resolver + catalog view + reconciler
- relocate(cart, pincode) = resolve depot → reconcile → new cart
- Lines keep their originals, so moving back restores them

Run: python -m examples.depot_switch_example
"""

import asyncio

from kungfu import Error, Ok

from depotcart import Session
from depotcart.cart import Cart
from depotcart.log import configure_logging
from examples._infra import CURD, MILK, NORTH, PANEER, FakeCatalog, FakeDirectory, banner, run


def show(cart: Cart) -> None:
    for item in cart.items:
        status = "ok" if not item.is_unavailable else item.unavailable_reason
        print(f"   {item.name:<9} {item.variant_name:<10} x{item.quantity:<3} "
              f"depot={item.depot_id} variant={item.variant_id:<4} → {status}")
    print(f"   payable: {cart.available_subtotal:.2f}")


async def main() -> None:
    configure_logging("WARNING")
    banner("Depot Switch: Hot-Swap, Stock, Restoration")

    client = FakeCatalog()
    north = {v.id: v for v in client.variants[NORTH.id]}

    cart = (
        Cart()
        .add_variant(MILK, north[100], 2)
        .add_variant(MILK, north[101], 2)
        .add_variant(CURD, north[110])
        .add_variant(PANEER, north[120])
    )

    async with Session.create(client, FakeDirectory()) as session:
        await asyncio.gather(*session.catalog.warm(NORTH.id))

        print("\n1. Cart built in the north:")
        show(cart)

        print("\n2. Move to 560001 (south kitchen):")
        match await session.relocate(cart, "560001"):
            case Ok(moved):
                print(f"   depot: {moved.depot.name} | {moved.result.summary().message}")
                show(moved.cart)
                cart = moved.cart
            case Error(e):
                print(f"   {e.message}")

        print("\n3. Move back to 411001 (originals restored, catalog served from cache):")
        match await session.relocate(cart, "411001"):
            case Ok(moved):
                print(f"   depot: {moved.depot.name} | {moved.result.summary().message}")
                show(moved.cart)
                cart = moved.cart
            case Error(e):
                print(f"   {e.message}")

        print("\n4. Catalog down, uncached depot:")
        client.down = True
        result = await session.reconciler.reconcile(cart.items, 3)
        print(f"   degraded={result.degraded} | {result.summary().message}")

        stats = await session.cache.stats()
        print(f"\n   cache: memory={stats.memory_size} hits={stats.hits} misses={stats.misses}")

    print("\nDone!")


if __name__ == "__main__":
    run(main)
