import pytest

from depotcart.cache import CachePolicy, MemoryStorage, tiered
from depotcart.cart import CartReconciler, ReconcilePolicy
from depotcart.catalog import CatalogView
from depotcart.depot import Depot, DepotResolver

from fakes import FakeCatalog, FakeDirectory, ManualClock


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
async def cache(clock, storage):
    c = tiered(storage, policy=CachePolicy(), clock=clock)
    yield c
    await c.aclose()


@pytest.fixture
def client():
    return FakeCatalog()


@pytest.fixture
def view(client, cache):
    return CatalogView(client, cache)


@pytest.fixture
def reconciler(view):
    return CartReconciler(view, ReconcilePolicy().with_fetch_timeout(seconds=1))


@pytest.fixture
def online_depot():
    return Depot(id=99, name="Online Store", is_online=True)


@pytest.fixture
def directory(online_depot):
    return FakeDirectory(online=online_depot)


@pytest.fixture
def resolver(directory, cache):
    return DepotResolver(directory, cache)
