# apps/catalog/handlers.py
import logging

from .events import BrandEvent, ProductEvent, model_deleted, model_saved
from .items import BrandItem, ProductItem
from .lists import add_id, remove_id
from .store import (
    ACTIVE_LIST_KEY,
    CATEGORY_LIST_TAGS,
    LIST_TAGS,
    ProductSorting,
)

logger = logging.getLogger(__name__)


class BrandModelHandler:
    """Brands have no lists, only their single-item cache."""

    def __init__(self, cache):
        self.brand_item = BrandItem(cache)

    def subscribe(self):
        model_saved.connect(self.after_save, sender=BrandEvent, weak=False, dispatch_uid="catalog.brand.after_save")
        model_deleted.connect(self.after_delete, sender=BrandEvent, weak=False, dispatch_uid="catalog.brand.after_delete")

    def after_save(self, sender=None, event=None, **kwargs):
        if event is None or not isinstance(event, BrandEvent):
            return
        self.brand_item.clear_cache(event.pk)

    def after_delete(self, sender=None, event=None, **kwargs):
        if event is None or not isinstance(event, BrandEvent):
            return
        self.brand_item.clear_cache(event.pk)


class ProductModelHandler:
    """
    Keeps product caches consistent with saves and deletes.

    Only fields that actually changed touch the lists. Category and sorting
    lists are patched in place, the active list is rebuilt whole when the
    flag flips. The handler holds no per-event state: it may be shared
    between threads.
    """

    def __init__(self, cache, store, popularity=None):
        self.cache = cache
        self.store = store
        self.popularity = popularity
        self.product_item = ProductItem(cache)

    def subscribe(self):
        model_saved.connect(self.after_save, sender=ProductEvent, weak=False, dispatch_uid="catalog.product.after_save")
        model_deleted.connect(self.after_delete, sender=ProductEvent, weak=False, dispatch_uid="catalog.product.after_delete")

    def after_save(self, sender=None, event=None, **kwargs):
        if event is None or not isinstance(event, ProductEvent):
            return

        self.product_item.clear_cache(event.pk)

        self.check_active_field(event)
        self.check_category_id_field(event)
        self.check_popularity_field(event)

        if event.created:
            self.rebuild_sorting_lists()

    def after_delete(self, sender=None, event=None, **kwargs):
        if event is None or not isinstance(event, ProductEvent):
            return

        self.product_item.clear_cache(event.pk)

        if event.active:
            self.remove_from_active_list(event.pk)

        self.remove_from_category_list(event.pk, event.category_id)

        for sorting in ProductSorting:
            self.remove_from_sorting_list(event.pk, sorting)

    def detach_from_parent(self, product_ids, category_id=None):
        """
        Products whose brand or category is being deleted: their materialized
        items go stale, and so does the whole list of a deleted category.
        """
        for product_id in product_ids:
            self.product_item.clear_cache(product_id)

        if category_id:
            self.cache.clear(CATEGORY_LIST_TAGS, category_id)

        logger.debug(f"Detached {len(product_ids)} products from deleted parent")

    def check_active_field(self, event):
        if not event.changed("is_active"):
            return

        # Membership flips both ways here, a rebuild is simpler than a patch
        self.cache.clear(LIST_TAGS, ACTIVE_LIST_KEY)
        self.store.get_active_list()
        logger.debug(f"Active product list rebuilt after product {event.pk} changed")

    def check_category_id_field(self, event):
        if not event.changed("category_id"):
            return

        self.add_to_category_list(event.pk, event.category_id)
        self.remove_from_category_list(event.pk, int(event.original_category_id or 0))

    def check_popularity_field(self, event):
        if self.popularity is None:
            return
        self.popularity.refresh(event)

    def rebuild_sorting_lists(self):
        # Position of a new product in each ordering is unknown
        for sorting in ProductSorting:
            self.store.update_cache_by_sorting(sorting)

    def remove_from_active_list(self, product_id):
        remove_id(self.cache, LIST_TAGS, ACTIVE_LIST_KEY, product_id, self.store.get_active_list)

    def add_to_category_list(self, product_id, category_id):
        if not category_id:
            return

        add_id(
            self.cache, CATEGORY_LIST_TAGS, category_id, product_id,
            lambda: self.store.get_by_category(category_id),
        )

    def remove_from_category_list(self, product_id, category_id):
        if not category_id:
            return

        remove_id(
            self.cache, CATEGORY_LIST_TAGS, category_id, product_id,
            lambda: self.store.get_by_category(category_id),
        )

    def remove_from_sorting_list(self, product_id, sorting):
        if not sorting:
            return

        sorting = ProductSorting.parse(sorting)
        remove_id(
            self.cache, LIST_TAGS, sorting.value, product_id,
            lambda: self.store.get_by_sorting(sorting),
        )
