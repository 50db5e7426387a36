"""Session wiring and relocation."""

from kungfu import Error, Ok

from depotcart import NoDepotAvailable, Relocation, Session
from depotcart.cart import Cart
from depotcart.catalog import Product
from depotcart.depot import Depot

from fakes import FakeCatalog, FakeDirectory, variant

MILK = Product(10, "Cow Milk")
NORTH = Depot(id=1, name="North")
SOUTH = Depot(id=2, name="South")


def make_session(client=None, directory=None):
    client = client or FakeCatalog(
        variants={
            1: [variant(100, 10, 1, "500 ML")],
            2: [variant(205, 10, 2, "500ml", closing_qty=5)],
        },
    )
    directory = directory or FakeDirectory(by_pincode={"411001": [NORTH], "560001": [SOUTH]})
    return Session.create(client, directory)


class TestRelocate:
    async def test_moves_cart_to_new_depot(self):
        cart = Cart().add_variant(MILK, variant(100, 10, 1, "500 ML"), 2)

        async with make_session() as session:
            match await session.relocate(cart, "560001"):
                case Ok(Relocation(depot=depot, cart=moved, result=result)):
                    pass
                case other:
                    raise AssertionError(f"unexpected {other!r}")

        assert depot == SOUTH
        assert result.is_valid is True
        [item] = moved.items
        assert (item.variant_id, item.depot_id, item.quantity) == (205, 2, 2)
        assert (item.original_depot_id, item.original_variant_id) == (1, 100)

    async def test_round_trip_restores_original(self):
        cart = Cart().add_variant(MILK, variant(100, 10, 1, "500 ML"))

        async with make_session() as session:
            away = (await session.relocate(cart, "560001")).unwrap()
            home = (await session.relocate(away.cart, "411001")).unwrap()

        assert home.cart.items[0].variant_id == 100
        assert home.depot == NORTH

    async def test_no_depot(self):
        async with make_session(directory=FakeDirectory()) as session:
            match await session.relocate(Cart(), "999999"):
                case Error(NoDepotAvailable(pincode=pincode, message=message)):
                    assert pincode == "999999"
                    assert message == "No depot available for this location"
                case other:
                    raise AssertionError(f"unexpected {other!r}")


class TestLifecycle:
    async def test_close_cancels_refresh_timers(self):
        session = make_session()
        async with session:
            await session.catalog.get_variants(1)
            assert session.cache.scheduled_refreshes

        assert session.cache.scheduled_refreshes == frozenset()

    async def test_components_share_one_cache(self):
        async with make_session() as session:
            await session.resolver.resolve("411001")
            await session.catalog.get_variants(1)

            stats = await session.cache.stats()
            assert stats.memory_size == 2
