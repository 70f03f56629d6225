# apps/catalog/items.py
from .cache import CACHE_TAG
from .models import Brand, Product


class ElementItem:
    """
    Cached, materialized view of a single row.
    Built lazily on read and kept until clear_cache() is called for its id.
    """
    CACHE_TAG_ELEMENT = None
    model = None

    def __init__(self, cache):
        self.cache = cache

    @property
    def tags(self):
        return (CACHE_TAG, self.CACHE_TAG_ELEMENT)

    def get(self, pk):
        if not pk:
            return None

        data = self.cache.get(self.tags, pk)
        if data is not None:
            return data

        obj = self.model.objects.filter(pk=pk).first()
        if obj is None:
            return None

        data = self.serialize(obj)
        self.cache.set_forever(self.tags, pk, data)
        return data

    def clear_cache(self, pk):
        if not pk:
            return
        self.cache.clear(self.tags, pk)

    def serialize(self, obj):
        raise NotImplementedError


class BrandItem(ElementItem):
    CACHE_TAG_ELEMENT = "brand-element"
    model = Brand

    def serialize(self, brand):
        return {
            "id": brand.id,
            "name": brand.name,
            "slug": brand.slug,
            "logo": brand.logo,
            "is_active": brand.is_active,
        }


class ProductItem(ElementItem):
    CACHE_TAG_ELEMENT = "product-element"
    model = Product

    def serialize(self, product):
        return {
            "id": product.id,
            "name": product.name,
            "sku": product.sku,
            "price": str(product.price),
            "popularity": product.popularity,
            "category_id": product.category_id,
            "brand_id": product.brand_id,
            "is_active": product.is_active,
        }
