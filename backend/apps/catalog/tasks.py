# apps/catalog/tasks.py
import logging

from celery import shared_task
from django.apps import apps

from .models import Category
from .store import ACTIVE_LIST_KEY, CATEGORY_LIST_TAGS, LIST_TAGS, ProductSorting

logger = logging.getLogger(__name__)


@shared_task
def rebuild_product_lists():
    """
    Self-Healing: force a rebuild of every cached product id list.
    Run after bulk imports or queryset.update() calls, which skip model signals.
    """
    config = apps.get_app_config("catalog")
    cache, store = config.cache, config.store

    cache.clear(LIST_TAGS, ACTIVE_LIST_KEY)
    store.get_active_list()

    for sorting in ProductSorting:
        store.update_cache_by_sorting(sorting)

    category_ids = list(Category.objects.values_list("id", flat=True))
    for category_id in category_ids:
        cache.clear(CATEGORY_LIST_TAGS, category_id)
        store.get_by_category(category_id)

    logger.info(
        "Product lists rebuilt",
        extra={"metadata": {"sortings": len(ProductSorting), "categories": len(category_ids)}},
    )
    return {"sortings": len(ProductSorting), "categories": len(category_ids)}
