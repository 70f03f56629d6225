# apps/catalog/tests.py
from unittest.mock import Mock, patch

from django.apps import apps
from django.contrib import admin
from django.core.cache import cache, caches
from django.core.exceptions import ImproperlyConfigured
from django.test import RequestFactory, TestCase, override_settings

from apps.catalog.admin import ProductAdmin
from apps.catalog.cache import TaggedCache
from apps.catalog.events import BrandEvent, ProductEvent, model_saved
from apps.catalog.features import PopularitySorting, resolve_popularity_feature
from apps.catalog.handlers import BrandModelHandler, ProductModelHandler
from apps.catalog.items import BrandItem, ProductItem
from apps.catalog.lists import add_id, remove_id
from apps.catalog.models import Brand, Category, Product
from apps.catalog.store import (
    ACTIVE_LIST_KEY,
    CATEGORY_LIST_TAGS,
    LIST_TAGS,
    ProductListStore,
    ProductSorting,
    load_product_list_store,
)
from apps.catalog.tasks import rebuild_product_lists
from apps.utils.exceptions import UnknownSortingError


def product_event(pk, current=None, original=None, created=False):
    state = {"is_active": True, "category_id": None, "popularity": 0}
    return ProductEvent(
        pk,
        current={**state, **(current or {})},
        original={} if created else {**state, **(original or {})},
        created=created,
    )


class TaggedCacheTestCase(TestCase):
    def setUp(self):
        cache.clear()
        self.cache = TaggedCache(caches["default"])

    def test_get_returns_stored_value(self):
        self.cache.set_forever(("a", "b"), "k", [1, 2])
        self.assertEqual(self.cache.get(("a", "b"), "k"), [1, 2])

    def test_tag_order_is_irrelevant(self):
        self.cache.set_forever(("a", "b"), "k", "value")
        self.assertEqual(self.cache.get(("b", "a"), "k"), "value")

    def test_tag_sets_address_separate_entries(self):
        self.cache.set_forever(("a", "b"), "k", "value")
        self.assertIsNone(self.cache.get(("a",), "k"))

    def test_set_overwrites(self):
        self.cache.set_forever(("a",), "k", 1)
        self.cache.set_forever(("a",), "k", 2)
        self.assertEqual(self.cache.get(("a",), "k"), 2)

    def test_clear_removes_single_entry(self):
        self.cache.set_forever(("a",), "k1", 1)
        self.cache.set_forever(("a",), "k2", 2)

        self.cache.clear(("a",), "k1")

        self.assertIsNone(self.cache.get(("a",), "k1"))
        self.assertEqual(self.cache.get(("a",), "k2"), 2)

    def test_clear_by_tag_invalidates_every_entry_under_it(self):
        self.cache.set_forever(("a", "b"), "k1", 1)
        self.cache.set_forever(("b",), "k2", 2)
        self.cache.set_forever(("c",), "k3", 3)

        self.cache.clear(("b",))

        self.assertIsNone(self.cache.get(("a", "b"), "k1"))
        self.assertIsNone(self.cache.get(("b",), "k2"))
        self.assertEqual(self.cache.get(("c",), "k3"), 3)

    def test_clear_by_tag_survives_missing_counter(self):
        self.cache.set_forever(("x",), "k", 1)
        caches["default"].delete("catalog:tag:x")

        self.cache.clear("x")

        self.assertIsNone(self.cache.get(("x",), "k"))

    def test_recreated_counter_does_not_revive_cleared_entries(self):
        self.cache.set_forever(("x",), "k", 1)
        self.cache.clear("x")

        # Counter lost after the clear, e.g. evicted by the backend
        caches["default"].delete("catalog:tag:x")

        self.assertIsNone(self.cache.get(("x",), "k"))

    def test_backend_keeps_many_forever_entries(self):
        for key in range(1000):
            self.cache.set_forever(("catalog", "product-list"), key, [key])

        self.assertEqual(self.cache.get(("catalog", "product-list"), 0), [0])

    def test_set_forever_stores_without_timeout(self):
        backend = Mock()
        backend.get.return_value = 1

        TaggedCache(backend).set_forever(("a",), "k", "v")

        backend.set.assert_called_once_with("catalog:a@1:k", "v", timeout=None)


class ListPatchTestCase(TestCase):
    def setUp(self):
        cache.clear()
        self.cache = TaggedCache(caches["default"])
        self.tags = ("catalog", "product-list")
        self.repopulate = Mock()

    def test_add_is_idempotent(self):
        self.cache.set_forever(self.tags, "k", [1, 2])

        self.assertTrue(add_id(self.cache, self.tags, "k", 3, self.repopulate))
        self.assertFalse(add_id(self.cache, self.tags, "k", 3, self.repopulate))

        self.assertEqual(self.cache.get(self.tags, "k"), [1, 2, 3])
        self.repopulate.assert_not_called()

    def test_remove_drops_exactly_one_id(self):
        self.cache.set_forever(self.tags, "k", [1, 2, 3])

        self.assertTrue(remove_id(self.cache, self.tags, "k", 2, self.repopulate))

        id_list = self.cache.get(self.tags, "k")
        self.assertNotIn(2, id_list)
        self.assertEqual(len(id_list), 2)

    def test_remove_absent_id_is_noop(self):
        self.cache.set_forever(self.tags, "k", [1, 3])

        with patch.object(self.cache, "set_forever") as mock_set:
            self.assertFalse(remove_id(self.cache, self.tags, "k", 2, self.repopulate))
            mock_set.assert_not_called()

        self.assertEqual(self.cache.get(self.tags, "k"), [1, 3])
        self.repopulate.assert_not_called()

    def test_remove_only_first_occurrence(self):
        self.cache.set_forever(self.tags, "k", [1, 2, 1])
        remove_id(self.cache, self.tags, "k", 1, self.repopulate)
        self.assertEqual(self.cache.get(self.tags, "k"), [2, 1])

    def test_missing_list_delegates_to_provider(self):
        with patch.object(self.cache, "set_forever") as mock_set:
            self.assertFalse(add_id(self.cache, self.tags, "k", 3, self.repopulate))
            self.assertFalse(remove_id(self.cache, self.tags, "other", 3, self.repopulate))
            mock_set.assert_not_called()

        self.assertEqual(self.repopulate.call_count, 2)
        self.assertIsNone(self.cache.get(self.tags, "k"))

    def test_empty_list_is_patched_not_repopulated(self):
        self.cache.set_forever(self.tags, "k", [])

        add_id(self.cache, self.tags, "k", 7, self.repopulate)

        self.assertEqual(self.cache.get(self.tags, "k"), [7])
        self.repopulate.assert_not_called()


class ProductModelHandlerTestCase(TestCase):
    def setUp(self):
        cache.clear()
        self.cache = TaggedCache(caches["default"])
        self.store = Mock(spec=ProductListStore)
        self.handler = ProductModelHandler(self.cache, self.store)
        self.item = ProductItem(self.cache)

    def test_save_always_clears_item_cache(self):
        self.cache.set_forever(self.item.tags, 2, {"id": 2})

        self.handler.after_save(sender=ProductEvent, event=product_event(2))

        self.assertIsNone(self.cache.get(self.item.tags, 2))
        self.store.get_active_list.assert_not_called()
        self.store.get_by_category.assert_not_called()

    def test_delete_always_clears_item_cache(self):
        self.cache.set_forever(self.item.tags, 2, {"id": 2})

        self.handler.after_delete(sender=ProductEvent, event=product_event(2, {"is_active": False}))

        self.assertIsNone(self.cache.get(self.item.tags, 2))

    def test_active_flip_clears_and_rebuilds_active_list(self):
        self.cache.set_forever(LIST_TAGS, ACTIVE_LIST_KEY, [1, 2, 3])

        event = product_event(2, current={"is_active": False}, original={"is_active": True})
        self.handler.after_save(sender=ProductEvent, event=event)

        # Cleared, not patched: the mocked provider does not refill it
        self.assertIsNone(self.cache.get(LIST_TAGS, ACTIVE_LIST_KEY))
        self.store.get_active_list.assert_called_once_with()

    def test_category_move_patches_both_lists(self):
        self.cache.set_forever(CATEGORY_LIST_TAGS, 5, [1, 2])
        self.cache.set_forever(CATEGORY_LIST_TAGS, 7, [3])
        self.cache.set_forever(CATEGORY_LIST_TAGS, 9, [2])
        self.cache.set_forever(LIST_TAGS, ACTIVE_LIST_KEY, [1, 2, 3])

        event = product_event(2, current={"category_id": 7}, original={"category_id": 5})
        self.handler.after_save(sender=ProductEvent, event=event)

        self.assertEqual(self.cache.get(CATEGORY_LIST_TAGS, 7), [3, 2])
        self.assertEqual(self.cache.get(CATEGORY_LIST_TAGS, 5), [1])
        self.assertEqual(self.cache.get(CATEGORY_LIST_TAGS, 9), [2])
        self.assertEqual(self.cache.get(LIST_TAGS, ACTIVE_LIST_KEY), [1, 2, 3])
        self.store.get_by_category.assert_not_called()

    def test_category_add_is_idempotent(self):
        self.cache.set_forever(CATEGORY_LIST_TAGS, 7, [3, 2])
        self.cache.set_forever(CATEGORY_LIST_TAGS, 5, [1])

        event = product_event(2, current={"category_id": 7}, original={"category_id": 5})
        self.handler.after_save(sender=ProductEvent, event=event)

        self.assertEqual(self.cache.get(CATEGORY_LIST_TAGS, 7), [3, 2])

    def test_original_category_is_coerced_to_int(self):
        self.cache.set_forever(CATEGORY_LIST_TAGS, 5, [1, 2])

        event = product_event(2, current={"category_id": None}, original={"category_id": "5"})
        self.handler.after_save(sender=ProductEvent, event=event)

        self.assertEqual(self.cache.get(CATEGORY_LIST_TAGS, 5), [1])
        self.store.get_by_category.assert_not_called()

    def test_category_missing_list_delegates_once(self):
        self.cache.set_forever(CATEGORY_LIST_TAGS, 5, [1, 2])

        event = product_event(2, current={"category_id": 7}, original={"category_id": 5})
        self.handler.after_save(sender=ProductEvent, event=event)

        self.store.get_by_category.assert_called_once_with(7)
        self.assertIsNone(self.cache.get(CATEGORY_LIST_TAGS, 7))
        self.assertEqual(self.cache.get(CATEGORY_LIST_TAGS, 5), [1])

    def test_popularity_change_without_feature_is_ignored(self):
        event = product_event(2, current={"popularity": 10}, original={"popularity": 1})
        self.handler.after_save(sender=ProductEvent, event=event)
        self.store.update_cache_by_sorting.assert_not_called()

    def test_popularity_change_rebuilds_popularity_list(self):
        handler = ProductModelHandler(self.cache, self.store, popularity=PopularitySorting(self.store))

        event = product_event(2, current={"popularity": 10}, original={"popularity": 1})
        handler.after_save(sender=ProductEvent, event=event)

        self.store.update_cache_by_sorting.assert_called_once_with(ProductSorting.POPULARITY_DESC)

    def test_created_product_rebuilds_sorting_lists(self):
        event = product_event(8, current={"category_id": 5}, created=True)
        self.handler.after_save(sender=ProductEvent, event=event)

        for sorting in ProductSorting:
            self.store.update_cache_by_sorting.assert_any_call(sorting)
        self.store.get_active_list.assert_called_once_with()
        self.store.get_by_category.assert_called_once_with(5)

    def test_delete_sweeps_all_sorting_lists(self):
        for sorting in ProductSorting:
            self.cache.set_forever(LIST_TAGS, sorting.value, [4, 1, 2])
        self.cache.set_forever(LIST_TAGS, ProductSorting.NO.value, [1, 2])
        self.cache.set_forever(LIST_TAGS, ACTIVE_LIST_KEY, [1, 4])
        self.cache.set_forever(CATEGORY_LIST_TAGS, 5, [4, 9])

        event = product_event(4, current={"is_active": True, "category_id": 5})
        self.handler.after_delete(sender=ProductEvent, event=event)

        for sorting in ProductSorting:
            self.assertEqual(self.cache.get(LIST_TAGS, sorting.value), [1, 2])
        self.assertEqual(self.cache.get(LIST_TAGS, ACTIVE_LIST_KEY), [1])
        self.assertEqual(self.cache.get(CATEGORY_LIST_TAGS, 5), [9])
        self.store.get_by_sorting.assert_not_called()

    def test_delete_inactive_product_leaves_active_list(self):
        self.cache.set_forever(LIST_TAGS, ACTIVE_LIST_KEY, [1, 4])
        for sorting in ProductSorting:
            self.cache.set_forever(LIST_TAGS, sorting.value, [4])

        self.handler.after_delete(sender=ProductEvent, event=product_event(4, {"is_active": False}))

        self.assertEqual(self.cache.get(LIST_TAGS, ACTIVE_LIST_KEY), [1, 4])
        self.store.get_active_list.assert_not_called()
        self.store.get_by_category.assert_not_called()

    def test_delete_with_missing_sorting_list_delegates(self):
        for sorting in ProductSorting:
            if sorting is not ProductSorting.POPULARITY_DESC:
                self.cache.set_forever(LIST_TAGS, sorting.value, [4])

        self.handler.after_delete(sender=ProductEvent, event=product_event(4, {"is_active": False}))

        self.store.get_by_sorting.assert_called_once_with(ProductSorting.POPULARITY_DESC)

    def test_invalid_payload_is_ignored(self):
        self.handler.after_save(sender=ProductEvent)
        self.handler.after_save(sender=BrandEvent, event=BrandEvent(2))
        self.handler.after_delete(sender=ProductEvent, event=None)
        self.handler.after_delete(sender=BrandEvent, event=BrandEvent(2))

        self.assertEqual(self.store.mock_calls, [])


class BrandModelHandlerTestCase(TestCase):
    def setUp(self):
        cache.clear()
        self.cache = TaggedCache(caches["default"])
        self.handler = BrandModelHandler(self.cache)
        self.item = BrandItem(self.cache)

    def test_save_and_delete_clear_item_cache(self):
        self.cache.set_forever(self.item.tags, 3, {"id": 3})
        self.handler.after_save(sender=BrandEvent, event=BrandEvent(3))
        self.assertIsNone(self.cache.get(self.item.tags, 3))

        self.cache.set_forever(self.item.tags, 3, {"id": 3})
        self.handler.after_delete(sender=BrandEvent, event=BrandEvent(3))
        self.assertIsNone(self.cache.get(self.item.tags, 3))

    def test_product_event_is_ignored(self):
        self.cache.set_forever(self.item.tags, 3, {"id": 3})
        self.handler.after_save(sender=ProductEvent, event=product_event(3))
        self.assertEqual(self.cache.get(self.item.tags, 3), {"id": 3})


class CatalogDataMixin:
    def create_catalog(self):
        self.c1 = Category.objects.create(name="Dairy", slug="dairy")
        self.c2 = Category.objects.create(name="Bakery", slug="bakery")
        self.brand = Brand.objects.create(name="Amul", slug="amul")

        self.p1 = Product.objects.create(
            category=self.c1, brand=self.brand, name="Milk", sku="MILK-001", price="30.00", popularity=5
        )
        self.p2 = Product.objects.create(
            category=self.c1, name="Curd", sku="CURD-001", price="10.00", popularity=50, is_active=False
        )
        self.p3 = Product.objects.create(
            category=self.c2, name="Bread", sku="BREAD-001", price="20.00", popularity=1
        )
        cache.clear()


class ProductListStoreTestCase(CatalogDataMixin, TestCase):
    def setUp(self):
        self.create_catalog()
        self.cache = TaggedCache(caches["default"])
        self.store = ProductListStore(self.cache)

    def test_active_list_is_computed_and_cached(self):
        self.assertEqual(self.store.get_active_list(), [self.p1.id, self.p3.id])
        self.assertEqual(self.cache.get(LIST_TAGS, ACTIVE_LIST_KEY), [self.p1.id, self.p3.id])

        with self.assertNumQueries(0):
            self.store.get_active_list()

    def test_by_category(self):
        self.assertEqual(self.store.get_by_category(self.c1.id), [self.p1.id, self.p2.id])
        self.assertEqual(self.cache.get(CATEGORY_LIST_TAGS, self.c1.id), [self.p1.id, self.p2.id])
        self.assertEqual(self.store.get_by_category(None), [])

    def test_by_sorting(self):
        p1, p2, p3 = self.p1.id, self.p2.id, self.p3.id

        self.assertEqual(self.store.get_by_sorting(ProductSorting.PRICE_ASC), [p2, p3, p1])
        self.assertEqual(self.store.get_by_sorting("price|desc"), [p1, p3, p2])
        self.assertEqual(self.store.get_by_sorting(ProductSorting.POPULARITY_DESC), [p2, p1, p3])
        self.assertEqual(self.store.get_by_sorting(ProductSorting.NEW), [p3, p2, p1])
        self.assertEqual(self.store.get_by_sorting(ProductSorting.NO), [p1, p2, p3])

    def test_unknown_sorting_raises(self):
        with self.assertRaises(UnknownSortingError) as context:
            self.store.get_by_sorting("name|asc")
        self.assertEqual(context.exception.code, "unknown_sorting")

    def test_update_cache_by_sorting_forces_rebuild(self):
        self.store.get_by_sorting(ProductSorting.POPULARITY_DESC)
        Product.objects.filter(pk=self.p3.pk).update(popularity=1000)

        self.assertEqual(self.store.get_by_sorting(ProductSorting.POPULARITY_DESC)[0], self.p2.id)
        self.assertEqual(self.store.update_cache_by_sorting(ProductSorting.POPULARITY_DESC)[0], self.p3.id)

    def test_load_store_from_settings(self):
        self.assertIsInstance(load_product_list_store(self.cache), ProductListStore)

        with override_settings(CATALOG_PRODUCT_LIST_STORE="apps.catalog.store.Missing"):
            with self.assertRaises(ImproperlyConfigured):
                load_product_list_store(self.cache)


class ElementItemTestCase(CatalogDataMixin, TestCase):
    def setUp(self):
        self.create_catalog()
        self.cache = TaggedCache(caches["default"])

    def test_product_item_is_materialized_once(self):
        item = ProductItem(self.cache)

        data = item.get(self.p1.id)
        self.assertEqual(data["sku"], "MILK-001")
        self.assertEqual(data["category_id"], self.c1.id)

        with self.assertNumQueries(0):
            self.assertEqual(item.get(self.p1.id), data)

    def test_missing_row(self):
        self.assertIsNone(BrandItem(self.cache).get(99999))
        self.assertIsNone(BrandItem(self.cache).get(None))

    def test_clear_cache(self):
        item = BrandItem(self.cache)
        item.get(self.brand.id)

        item.clear_cache(self.brand.id)

        self.assertIsNone(self.cache.get(item.tags, self.brand.id))


class TrackedModelTestCase(CatalogDataMixin, TestCase):
    def setUp(self):
        self.create_catalog()

    def test_loaded_row_keeps_original_values(self):
        product = Product.objects.get(pk=self.p1.pk)
        product.is_active = False
        product.category = self.c2

        self.assertEqual(
            product.original_values(),
            {"is_active": True, "category_id": self.c1.id, "popularity": 5},
        )
        self.assertEqual(product.current_values()["category_id"], self.c2.id)

    def test_unsaved_row_has_no_original_values(self):
        self.assertEqual(Product(name="New", sku="NEW-1").original_values(), {})

    def test_event_diff(self):
        product = Product.objects.get(pk=self.p1.pk)
        product.popularity = 6

        event = ProductEvent.from_instance(product)

        self.assertTrue(event.changed("popularity"))
        self.assertFalse(event.changed("is_active"))
        self.assertEqual(event.original_category_id, self.c1.id)


class ModelEventChannelTestCase(TestCase):
    def test_receivers_only_get_their_event_type(self):
        received = []

        def receiver(sender, event=None, **kwargs):
            received.append(event)

        model_saved.connect(receiver, sender=BrandEvent, weak=False)
        try:
            event = BrandEvent(1)
            event.publish_saved()
            ProductEvent(1).publish_saved()
        finally:
            model_saved.disconnect(receiver, sender=BrandEvent)

        self.assertEqual(received, [event])


class SignalBridgeTestCase(CatalogDataMixin, TestCase):
    """ORM saves/deletes flowing through the handlers wired at startup."""

    def setUp(self):
        self.create_catalog()
        config = apps.get_app_config("catalog")
        self.cache = config.cache
        self.store = config.store

    def test_category_move_on_save(self):
        self.store.get_by_category(self.c1.id)
        self.store.get_by_category(self.c2.id)

        product = Product.objects.get(pk=self.p2.pk)
        product.category = self.c2
        product.save()

        self.assertEqual(self.cache.get(CATEGORY_LIST_TAGS, self.c1.id), [self.p1.id])
        self.assertEqual(self.cache.get(CATEGORY_LIST_TAGS, self.c2.id), [self.p3.id, self.p2.id])

    def test_consecutive_saves_diff_against_last_save(self):
        self.store.get_by_category(self.c1.id)
        self.store.get_by_category(self.c2.id)

        self.p1.category = self.c2
        self.p1.save()
        self.p1.category = self.c1
        self.p1.save()

        self.assertEqual(self.cache.get(CATEGORY_LIST_TAGS, self.c1.id), [self.p2.id, self.p1.id])
        self.assertEqual(self.cache.get(CATEGORY_LIST_TAGS, self.c2.id), [self.p3.id])

    def test_active_flip_on_save(self):
        self.assertEqual(self.store.get_active_list(), [self.p1.id, self.p3.id])

        self.p1.is_active = False
        self.p1.save()

        self.assertEqual(self.cache.get(LIST_TAGS, ACTIVE_LIST_KEY), [self.p3.id])

    def test_save_clears_item_cache(self):
        item = apps.get_app_config("catalog").product_handler.product_item
        item.get(self.p1.id)

        self.p1.name = "Toned Milk"
        self.p1.save()

        self.assertIsNone(self.cache.get(item.tags, self.p1.id))
        self.assertEqual(item.get(self.p1.id)["name"], "Toned Milk")

    def test_popularity_change_reorders_list(self):
        self.store.get_by_sorting(ProductSorting.POPULARITY_DESC)

        self.p3.popularity = 1000
        self.p3.save()

        self.assertEqual(self.cache.get(LIST_TAGS, ProductSorting.POPULARITY_DESC.value)[0], self.p3.id)

    def test_new_product_joins_lists(self):
        for sorting in ProductSorting:
            self.store.get_by_sorting(sorting)
        self.store.get_by_category(self.c2.id)

        product = Product.objects.create(category=self.c2, name="Bun", sku="BUN-001", price="5.00")

        for sorting in ProductSorting:
            self.assertIn(product.id, self.cache.get(LIST_TAGS, sorting.value))
        self.assertEqual(self.cache.get(CATEGORY_LIST_TAGS, self.c2.id), [self.p3.id, product.id])

    def test_delete_removes_from_every_list(self):
        self.store.get_active_list()
        self.store.get_by_category(self.c1.id)
        for sorting in ProductSorting:
            self.store.get_by_sorting(sorting)

        pk = self.p1.pk
        self.p1.delete()

        self.assertNotIn(pk, self.cache.get(LIST_TAGS, ACTIVE_LIST_KEY))
        self.assertEqual(self.cache.get(CATEGORY_LIST_TAGS, self.c1.id), [self.p2.id])
        for sorting in ProductSorting:
            id_list = self.cache.get(LIST_TAGS, sorting.value)
            self.assertNotIn(pk, id_list)
            self.assertIn(self.p3.id, id_list)

    def test_brand_save_and_delete_clear_item_cache(self):
        item = apps.get_app_config("catalog").brand_handler.brand_item
        item.get(self.brand.id)

        self.brand.name = "Amul Dairy"
        self.brand.save()
        self.assertEqual(item.get(self.brand.id)["name"], "Amul Dairy")

        pk = self.brand.pk
        self.brand.delete()
        self.assertIsNone(self.cache.get(item.tags, pk))

    def test_partial_save_only_diffs_written_fields(self):
        self.store.get_active_list()
        self.store.get_by_category(self.c1.id)
        self.store.get_by_category(self.c2.id)

        product = Product.objects.get(pk=self.p1.pk)
        product.category = self.c2
        product.is_active = False
        product.save(update_fields=["is_active"])

        # Category was not written: the row still belongs to c1
        self.assertEqual(Product.objects.get(pk=self.p1.pk).category_id, self.c1.id)
        self.assertEqual(self.cache.get(CATEGORY_LIST_TAGS, self.c1.id), [self.p1.id, self.p2.id])
        self.assertEqual(self.cache.get(CATEGORY_LIST_TAGS, self.c2.id), [self.p3.id])
        self.assertEqual(self.cache.get(LIST_TAGS, ACTIVE_LIST_KEY), [self.p3.id])

        # A later full save still sees the pending category move
        product.save()

        self.assertEqual(self.cache.get(CATEGORY_LIST_TAGS, self.c1.id), [self.p2.id])
        self.assertEqual(self.cache.get(CATEGORY_LIST_TAGS, self.c2.id), [self.p3.id, self.p1.id])

    def test_partial_save_by_attname(self):
        self.store.get_by_category(self.c1.id)
        self.store.get_by_category(self.c2.id)

        product = Product.objects.get(pk=self.p2.pk)
        product.category = self.c2
        product.save(update_fields=["category_id"])

        self.assertEqual(self.cache.get(CATEGORY_LIST_TAGS, self.c1.id), [self.p1.id])
        self.assertEqual(self.cache.get(CATEGORY_LIST_TAGS, self.c2.id), [self.p3.id, self.p2.id])

    def test_brand_delete_clears_product_items(self):
        item = apps.get_app_config("catalog").product_handler.product_item
        self.assertEqual(item.get(self.p1.id)["brand_id"], self.brand.id)

        self.brand.delete()

        self.assertIsNone(self.cache.get(item.tags, self.p1.id))
        self.assertIsNone(item.get(self.p1.id)["brand_id"])

    def test_category_delete_clears_product_items_and_list(self):
        item = apps.get_app_config("catalog").product_handler.product_item
        item.get(self.p1.id)
        item.get(self.p3.id)
        self.store.get_by_category(self.c1.id)
        category_id = self.c1.id

        self.c1.delete()

        self.assertIsNone(self.cache.get(item.tags, self.p1.id))
        self.assertIsNone(self.cache.get(CATEGORY_LIST_TAGS, category_id))
        self.assertIsNone(item.get(self.p1.id)["category_id"])
        # Products of other categories keep their cached item
        self.assertIsNotNone(self.cache.get(item.tags, self.p3.id))


class ProductAdminActionsTestCase(CatalogDataMixin, TestCase):
    def setUp(self):
        self.create_catalog()
        config = apps.get_app_config("catalog")
        self.cache = config.cache
        self.store = config.store
        self.model_admin = ProductAdmin(Product, admin.site)
        self.request = RequestFactory().post("/admin/catalog/product/")

    @patch.object(ProductAdmin, "message_user")
    def test_deactivate_then_activate_keeps_active_list(self, mock_message):
        self.store.get_active_list()
        self.store.get_by_category(self.c1.id)

        self.model_admin.deactivate_products(self.request, Product.objects.filter(pk=self.p1.pk))
        self.assertEqual(self.cache.get(LIST_TAGS, ACTIVE_LIST_KEY), [self.p3.id])

        self.model_admin.activate_products(self.request, Product.objects.all())
        self.assertEqual(self.cache.get(LIST_TAGS, ACTIVE_LIST_KEY), [self.p1.id, self.p2.id, self.p3.id])

        self.assertEqual(self.cache.get(CATEGORY_LIST_TAGS, self.c1.id), [self.p1.id, self.p2.id])
        mock_message.assert_called_with(self.request, "2 products activated.")


class PopularityFeatureTestCase(TestCase):
    def test_resolved_from_settings(self):
        store = Mock()

        with override_settings(CATALOG_POPULARITY_TRACKING=False):
            self.assertIsNone(resolve_popularity_feature(store))

        with override_settings(CATALOG_POPULARITY_TRACKING=True):
            self.assertIsInstance(resolve_popularity_feature(store), PopularitySorting)

    def test_unchanged_popularity_is_skipped(self):
        store = Mock()
        feature = PopularitySorting(store)

        self.assertFalse(feature.refresh(product_event(1, {"popularity": 3}, {"popularity": 3})))
        store.update_cache_by_sorting.assert_not_called()


class RebuildProductListsTaskTestCase(CatalogDataMixin, TestCase):
    def setUp(self):
        self.create_catalog()
        self.cache = apps.get_app_config("catalog").cache

    def test_rebuild_heals_lists_after_bulk_update(self):
        self.assertIn(self.p1.id, apps.get_app_config("catalog").store.get_active_list())

        # queryset.update() bypasses model signals
        Product.objects.filter(pk=self.p1.pk).update(is_active=False, category=self.c2)

        result = rebuild_product_lists()

        self.assertEqual(result, {"sortings": 5, "categories": 2})
        self.assertEqual(self.cache.get(LIST_TAGS, ACTIVE_LIST_KEY), [self.p3.id])
        self.assertEqual(self.cache.get(CATEGORY_LIST_TAGS, self.c2.id), [self.p1.id, self.p3.id])
        for sorting in ProductSorting:
            self.assertIsNotNone(self.cache.get(LIST_TAGS, sorting.value))
