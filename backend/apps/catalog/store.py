# apps/catalog/store.py
import logging
from enum import Enum
from typing import List, Protocol

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from apps.utils.exceptions import UnknownSortingError
from .cache import CACHE_TAG
from .models import Product

logger = logging.getLogger(__name__)

CACHE_TAG_LIST = "product-list"
CACHE_TAG_CATEGORY = "category-element"

# Active list and sorting lists share the same tags, the key tells them apart
LIST_TAGS = (CACHE_TAG, CACHE_TAG_LIST)
CATEGORY_LIST_TAGS = (CACHE_TAG, CACHE_TAG_LIST, CACHE_TAG_CATEGORY)
ACTIVE_LIST_KEY = CACHE_TAG_LIST


class ProductSorting(str, Enum):
    PRICE_ASC = "price|asc"
    PRICE_DESC = "price|desc"
    NEW = "new"
    POPULARITY_DESC = "popularity|desc"
    NO = "no"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownSortingError(value) from None


class ProductListProvider(Protocol):
    """
    Rebuilds cached product id lists from the source of truth.
    Every read stores the list it computes on a miss.
    """

    def get_active_list(self) -> List[int]: ...

    def get_by_category(self, category_id) -> List[int]: ...

    def get_by_sorting(self, sorting) -> List[int]: ...

    def update_cache_by_sorting(self, sorting) -> List[int]: ...


class ProductListStore:
    """
    Default provider: plain ORM queries over Product.
    Category and sorting lists hold every product, the active list only
    products with is_active set.
    """

    SORTING_ORDER = {
        ProductSorting.PRICE_ASC: ("price", "id"),
        ProductSorting.PRICE_DESC: ("-price", "id"),
        ProductSorting.NEW: ("-created_at", "-id"),
        ProductSorting.POPULARITY_DESC: ("-popularity", "id"),
        ProductSorting.NO: ("id",),
    }

    def __init__(self, cache):
        self.cache = cache

    def get_active_list(self):
        return self._remember(
            LIST_TAGS,
            ACTIVE_LIST_KEY,
            lambda: Product.objects.filter(is_active=True).order_by("id"),
        )

    def get_by_category(self, category_id):
        if not category_id:
            return []

        return self._remember(
            CATEGORY_LIST_TAGS,
            int(category_id),
            lambda: Product.objects.filter(category_id=category_id).order_by("id"),
        )

    def get_by_sorting(self, sorting):
        sorting = ProductSorting.parse(sorting)
        return self._remember(
            LIST_TAGS,
            sorting.value,
            lambda: Product.objects.order_by(*self.SORTING_ORDER[sorting]),
        )

    def update_cache_by_sorting(self, sorting):
        sorting = ProductSorting.parse(sorting)
        self.cache.clear(LIST_TAGS, sorting.value)
        return self.get_by_sorting(sorting)

    def _remember(self, tags, key, build_queryset):
        id_list = self.cache.get(tags, key)
        if id_list is not None:
            return id_list

        id_list = list(build_queryset().values_list("id", flat=True))
        self.cache.set_forever(tags, key, id_list)

        logger.debug(f"Product list {key} rebuilt with {len(id_list)} ids")
        return id_list


def load_product_list_store(cache):
    """Instantiate the provider named by CATALOG_PRODUCT_LIST_STORE."""
    path = getattr(settings, "CATALOG_PRODUCT_LIST_STORE", "apps.catalog.store.ProductListStore")
    try:
        store_class = import_string(path)
    except ImportError as e:
        raise ImproperlyConfigured(f"CATALOG_PRODUCT_LIST_STORE {path!r} cannot be imported: {e}") from e
    return store_class(cache)
