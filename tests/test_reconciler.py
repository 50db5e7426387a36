"""CartReconciler: restoration, hot-swap, stock assessment, degraded paths."""

import asyncio
import gc
import random

import pytest
from structlog.testing import capture_logs

from depotcart.cart import (
    CartLineItem,
    CartReconciler,
    CatalogIndex,
    ReconcilePolicy,
    UnavailableKind,
    reconcile_item,
)
from depotcart.catalog import Product, Variant

from fakes import line, variant


def unavailable_reasons(result):
    return [item.unavailable_reason for item in result.validated_items]


class TestScenarios:
    async def test_hot_swap_by_normalized_variant_name(self, client, reconciler):
        client.variants[2] = [variant(205, 10, 2, "500ml", closing_qty=5)]
        item = line(10, 100, "500 ML", quantity=2, depot_id=1)

        result = await reconciler.reconcile([item], 2)

        [swapped] = result.available_items
        assert swapped.variant_id == 205
        assert swapped.depot_id == 2
        assert swapped.original_depot_id == 1
        assert swapped.original_variant_id == 100
        assert swapped.variant_name == "500ml"
        assert result.is_valid is True
        assert result.degraded is False

    async def test_low_stock_reports_remaining(self, client, reconciler):
        client.variants[2] = [variant(205, 10, 2, "500ml", closing_qty=1)]
        item = line(10, 100, "500 ML", quantity=2, depot_id=1)

        result = await reconciler.reconcile([item], 2)

        [flagged] = result.unavailable_items
        assert flagged.unavailable_reason == "Only 1 available"
        assert flagged.unavailable_kind is UnavailableKind.LOW_STOCK
        assert flagged.variant_id == 205
        assert result.is_valid is False

    async def test_catalog_failure_marks_everything_unverified(self, client, reconciler):
        client.fail_with = ConnectionError("catalog down after retries")
        items = [line(10, 100, "500 ML", depot_id=1), line(11, 110, "1 Ltr", depot_id=2)]

        result = await reconciler.reconcile(items, 2)

        assert result.is_valid is False
        assert result.degraded is True
        assert result.available_items == ()
        assert unavailable_reasons(result) == ["Unable to verify availability"] * 2
        assert all(item.depot_id == 2 for item in result.validated_items)

    async def test_restoration_after_round_trip(self, client, reconciler):
        milk = Product(10, "Cow Milk")
        original = variant(42, 10, 5, "1 Ltr")
        client.variants[5] = [original]
        client.variants[7] = [variant(77, 10, 7, "1 litre")]

        cart = [CartLineItem.from_variant(milk, original)]

        away = await reconciler.reconcile(cart, 7)
        assert away.validated_items[0].variant_id == 77

        home = await reconciler.reconcile(away.validated_items, 5)
        [restored] = home.validated_items
        assert restored.variant_id == 42
        assert restored.depot_id == 5
        assert (restored.original_depot_id, restored.original_variant_id) == (5, 42)

    async def test_restoration_wins_over_current_variant(self, client, reconciler):
        client.variants[5] = [variant(42, 10, 5, "1 Ltr"), variant(77, 10, 5, "1 Ltr")]
        item = line(10, 77, "1 Ltr", depot_id=7, original_depot_id=5, original_variant_id=42)

        result = await reconciler.reconcile([item], 5)
        assert result.validated_items[0].variant_id == 42


class TestMatching:
    async def test_exact_id_kept(self, client, reconciler):
        client.variants[1] = [variant(100, 10, 1, "Half Litre", buy_once_price=28.0, mrp=30.0)]
        result = await reconciler.reconcile([line(10, 100, "500 ML", depot_id=1)], 1)

        [item] = result.available_items
        assert item.variant_id == 100
        assert item.price == 28.0

    async def test_falls_back_to_product_name(self, client, reconciler):
        client.variants[2] = [variant(300, 11, 2, "500ml", product_name="Cow Milk")]
        item = line(10, 100, "500 ML", depot_id=1, name="cow  milk")

        [swapped] = (await reconciler.reconcile([item], 2)).available_items
        assert (swapped.product_id, swapped.variant_id) == (11, 300)

    async def test_prefers_sellable_candidate(self, client, reconciler):
        client.variants[2] = [
            variant(201, 10, 2, "1 Ltr", not_in_stock=True),
            variant(202, 10, 2, "1ltr", closing_qty=3),
        ]
        [item] = (await reconciler.reconcile([line(10, 100, "1 Litre", quantity=2, depot_id=1)], 2)).validated_items
        assert item.variant_id == 202
        assert item.is_available is True

    async def test_no_sellable_candidate_keeps_first_match_with_reason(self, client, reconciler):
        client.variants[2] = [
            variant(201, 10, 2, "1 Ltr", not_in_stock=True),
            variant(203, 10, 2, "1 Ltr", is_hidden=True),
        ]
        [item] = (await reconciler.reconcile([line(10, 100, "1 LTRS", depot_id=1)], 2)).validated_items
        assert item.variant_id == 201
        assert item.unavailable_reason == "Out of stock"

    async def test_no_match_not_available_in_area(self, client, reconciler):
        client.variants[2] = [variant(205, 10, 2, "1 Ltr")]
        item = line(10, 100, "500 ML", depot_id=1)

        [flagged] = (await reconciler.reconcile([item], 2)).unavailable_items
        assert flagged.unavailable_reason == "Not available in this area"
        assert flagged.variant_id == 100
        assert flagged.depot_id == 2

    @pytest.mark.parametrize(
        ("overrides", "reason"),
        [
            ({"not_in_stock": True}, "Out of stock"),
            ({"is_hidden": True}, "Currently unavailable"),
            ({"closing_qty": 0}, "Out of stock"),
            ({"closing_qty": 2}, "Only 2 available"),
        ],
    )
    async def test_stock_reasons(self, client, reconciler, overrides, reason):
        client.variants[1] = [variant(100, 10, 1, "500 ML", **overrides)]
        [item] = (await reconciler.reconcile([line(10, 100, "500 ML", quantity=3, depot_id=1)], 1)).validated_items
        assert item.is_available is False
        assert item.unavailable_reason == reason

    async def test_available_again_clears_reason(self, client, reconciler):
        client.variants[1] = [variant(100, 10, 1, "500 ML")]
        stale = line(10, 100, "500 ML", depot_id=1).unavailable(UnavailableKind.OUT_OF_STOCK)

        [item] = (await reconciler.reconcile([stale], 1)).validated_items
        assert item.is_available is True
        assert item.unavailable_reason is None
        assert item.unavailable_kind is None


class TestDegraded:
    async def test_timeout_uses_heuristic(self, client, view):
        client.delay = 0.5
        reconciler = CartReconciler(view, ReconcilePolicy().with_fetch_timeout(seconds=0.05))
        items = [
            line(1, 1, "1 Ltr", depot_id=2),
            line(2, 2, "1 Ltr", depot_id=None),
            line(3, 3, "1 Ltr", depot_id=1),
            line(4, 4, "1 Ltr", depot_id=1, original_depot_id=2, original_variant_id=40),
        ]

        result = await reconciler.reconcile(items, 2)

        assert result.degraded is True
        assert [item.is_available for item in result.validated_items] == [True, True, False, True]
        assert result.validated_items[2].unavailable_reason == "Not available in this area"
        assert all(item.depot_id == 2 for item in result.validated_items)
        assert result.is_valid is False

    async def test_fetch_failing_after_timeout_is_collected(self, client, view):
        client.delay = 0.1
        client.fail_with = ConnectionError("down")
        reconciler = CartReconciler(view, ReconcilePolicy().with_fetch_timeout(seconds=0.02))

        loop = asyncio.get_running_loop()
        unhandled = []
        previous = loop.get_exception_handler()
        loop.set_exception_handler(lambda _, context: unhandled.append(context))
        try:
            with capture_logs() as logs:
                result = await reconciler.reconcile([line(1, 1, "1 Ltr", depot_id=2)], 2)
                await asyncio.sleep(0.2)
                gc.collect()
        finally:
            loop.set_exception_handler(previous)

        assert result.degraded is True
        assert unhandled == []
        [failed] = [entry for entry in logs if entry["event"] == "catalog.fetch_failed"]
        assert failed["key"] == "variants_2"
        assert "TransportError" in failed["error"]


class TestContract:
    async def test_empty_cart_fetches_nothing(self, client, reconciler):
        result = await reconciler.reconcile([], 2)

        assert result.is_valid is True
        assert result.validated_items == ()
        assert client.calls == []

    @pytest.mark.parametrize(("depot_id", "error"), [(0, ValueError), (-3, ValueError), ("2", TypeError), (True, TypeError)])
    async def test_bad_depot_id(self, reconciler, depot_id, error):
        with pytest.raises(error):
            await reconciler.reconcile([line(10, 100, "1 Ltr")], depot_id)

    async def test_one_fetch_per_call(self, client, reconciler):
        client.variants[2] = [variant(205, 10, 2, "500ml")]
        items = [line(10, 100 + i, "500 ML", depot_id=1) for i in range(5)]

        await reconciler.reconcile(items, 2)
        assert client.count("get_depot_variants") == 1

    async def test_deterministic(self, client, reconciler):
        client.variants[2] = [variant(205, 10, 2, "500ml", closing_qty=1), variant(206, 11, 2, "1 Ltr")]
        items = [line(10, 100, "500 ML", quantity=2, depot_id=1), line(11, 110, "1ltr", depot_id=1)]

        assert await reconciler.reconcile(items, 2) == await reconciler.reconcile(items, 2)


class TestSummary:
    @pytest.mark.parametrize(
        ("stock", "message"),
        [
            ([None, None], "All items are available for delivery"),
            ([0, None], "1 item not available in this location"),
            ([0, 0], "No items are available in this location"),
        ],
    )
    async def test_messages(self, client, reconciler, stock, message):
        client.variants[1] = [variant(100 + i, 10 + i, 1, "1 Ltr", closing_qty=q) for i, q in enumerate(stock)]
        items = [line(10 + i, 100 + i, "1 Ltr", depot_id=1) for i in range(len(stock))]

        summary = (await reconciler.reconcile(items, 1)).summary()
        assert summary.message == message
        assert summary.total == len(stock)
        assert summary.available + summary.unavailable == summary.total

    async def test_plural(self, client, reconciler):
        items = [line(10 + i, 100 + i, "1 Ltr", depot_id=1) for i in range(3)]
        client.variants[1] = [variant(100, 10, 1, "1 Ltr")]

        summary = (await reconciler.reconcile(items, 1)).summary()
        assert summary.message == "2 items not available in this location"


class TestCheckVariant:
    async def test_available(self, client, reconciler):
        client.variants[1] = [variant(100, 10, 1, "1 Ltr", buy_once_price=55.0, closing_qty=8)]
        availability = await reconciler.check_variant(100, 1, quantity=2)
        assert availability.is_available is True
        assert availability.current_price == 55.0
        assert availability.max_quantity == 8

    async def test_low_stock(self, client, reconciler):
        client.variants[1] = [variant(100, 10, 1, "1 Ltr", closing_qty=1)]
        availability = await reconciler.check_variant(100, 1, quantity=2)
        assert availability.is_available is False
        assert availability.reason == "Only 1 available"
        assert availability.max_quantity == 1

    async def test_missing(self, client, reconciler):
        availability = await reconciler.check_variant(100, 1)
        assert availability.is_available is False
        assert availability.reason == "Not available in this area"

    async def test_unverified(self, client, reconciler):
        client.fail_with = ConnectionError("down")
        availability = await reconciler.check_variant(100, 1)
        assert availability.reason == "Unable to verify availability"


# Randomized carts over the pure per-item step

VARIANT_NAMES = ["1 Ltr", "1ltr", "500 ML", "500ml", "250 g", "2 kg", "6 pcs"]


def random_catalog(rng):
    return [
        Variant(
            id=rng.randint(1, 20),
            product_id=rng.randint(1, 5),
            depot_id=2,
            name=rng.choice(VARIANT_NAMES),
            mrp=float(rng.randint(1, 500)),
            buy_once_price=rng.choice([None, float(rng.randint(1, 500))]),
            closing_qty=rng.choice([None, rng.randint(0, 10)]),
            not_in_stock=rng.random() < 0.2,
            is_hidden=rng.random() < 0.1,
            product_name=rng.choice([None, "Cow Milk", "Curd"]),
        )
        for _ in range(rng.randint(0, 15))
    ]


def random_cart(rng):
    return [
        CartLineItem(
            product_id=rng.randint(1, 7),
            variant_id=rng.randint(1, 25),
            name=rng.choice(["Cow Milk", "Curd", "Paneer"]),
            variant_name=rng.choice(VARIANT_NAMES),
            price=10.0,
            quantity=rng.randint(1, 99),
            depot_id=rng.choice([None, 1, 2, 3]),
            original_depot_id=rng.choice([None, 1, 2, 3]),
            original_variant_id=rng.choice([None, rng.randint(1, 25)]),
        )
        for _ in range(rng.randint(0, 10))
    ]


class TestRandomized:
    @pytest.mark.parametrize("seed", range(100))
    def test_total_and_retargeted(self, seed):
        rng = random.Random(seed)
        index = CatalogIndex.build(random_catalog(rng))
        items = random_cart(rng)

        out = [reconcile_item(item, index, 2) for item in items]

        assert len(out) == len(items)
        for before, after in zip(items, out):
            assert after.depot_id == 2
            assert isinstance(after.is_available, bool)
            assert (after.unavailable_reason is None) == after.is_available
            if after.is_available:
                assert after.variant_id in index.by_id
            if before.original_variant_id is not None:
                assert after.original_variant_id == before.original_variant_id

    @pytest.mark.parametrize("seed", range(20))
    def test_deterministic(self, seed):
        rng = random.Random(seed)
        variants, items = random_catalog(rng), random_cart(rng)

        first = [reconcile_item(item, CatalogIndex.build(variants), 2) for item in items]
        second = [reconcile_item(item, CatalogIndex.build(variants), 2) for item in items]
        assert first == second
