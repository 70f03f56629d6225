# apps/catalog/features.py
import logging

from django.conf import settings

from .store import ProductSorting

logger = logging.getLogger(__name__)


class PopularitySorting:
    """Keeps the popularity ordered list fresh when a product's popularity moves."""

    def __init__(self, store):
        self.store = store

    def refresh(self, event):
        if not event.changed("popularity"):
            return False

        self.store.update_cache_by_sorting(ProductSorting.POPULARITY_DESC)
        return True


def resolve_popularity_feature(store):
    if not getattr(settings, "CATALOG_POPULARITY_TRACKING", False):
        return None

    logger.info("Popularity tracking enabled for product lists")
    return PopularitySorting(store)
