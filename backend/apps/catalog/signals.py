from django.apps import apps
from django.db.models.signals import post_save, post_delete, pre_delete
from django.dispatch import receiver

from .events import BrandEvent, ProductEvent
from .models import Brand, Category, Product


@receiver(post_save, sender=Brand, dispatch_uid="catalog.publish_brand_saved")
@receiver(post_save, sender=Product, dispatch_uid="catalog.publish_product_saved")
def publish_model_saved(sender, instance, created=False, raw=False, update_fields=None, **kwargs):
    """
    Turns ORM saves into typed catalog events.
    Only the fields written by this save are re-armed afterwards, so the
    next save diffs against what the DB actually holds.
    """
    if raw:
        # Fixture loading, rows may reference objects not loaded yet
        return

    event_class = ProductEvent if sender is Product else BrandEvent
    event_class.from_instance(instance, created=created, update_fields=update_fields).publish_saved()
    instance.remember_tracked_values(update_fields)


@receiver(post_delete, sender=Brand, dispatch_uid="catalog.publish_brand_deleted")
@receiver(post_delete, sender=Product, dispatch_uid="catalog.publish_product_deleted")
def publish_model_deleted(sender, instance, **kwargs):
    event_class = ProductEvent if sender is Product else BrandEvent
    event_class.from_instance(instance).publish_deleted()


@receiver(pre_delete, sender=Brand, dispatch_uid="catalog.detach_brand_products")
@receiver(pre_delete, sender=Category, dispatch_uid="catalog.detach_category_products")
def detach_products(sender, instance, **kwargs):
    """
    Deleting a brand or category nulls the product FKs with a plain UPDATE,
    which sends no product events. The affected product items are dropped
    here, while the rows can still be found.
    """
    product_ids = list(instance.products.values_list("id", flat=True))
    category_id = instance.pk if sender is Category else None

    handler = apps.get_app_config("catalog").product_handler
    handler.detach_from_parent(product_ids, category_id=category_id)
