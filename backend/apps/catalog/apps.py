import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class CatalogConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.catalog"

    def ready(self):
        # Bridges ORM post_save/post_delete into catalog events
        import apps.catalog.signals  # noqa: F401

        from .cache import TaggedCache
        from .features import resolve_popularity_feature
        from .handlers import BrandModelHandler, ProductModelHandler
        from .store import load_product_list_store

        self.cache = TaggedCache.from_settings()
        self.store = load_product_list_store(self.cache)

        self.brand_handler = BrandModelHandler(self.cache)
        self.product_handler = ProductModelHandler(
            self.cache,
            self.store,
            popularity=resolve_popularity_feature(self.store),
        )

        self.brand_handler.subscribe()
        self.product_handler.subscribe()

        logger.info(f"Catalog cache handlers subscribed (store: {type(self.store).__name__})")
