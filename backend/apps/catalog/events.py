# apps/catalog/events.py
"""
Typed model lifecycle events.

Events are sent on two channels with the event class as sender, so a
receiver subscribes to exactly the entity type it understands:

    model_saved.connect(handler.after_save, sender=ProductEvent)
"""
from django.dispatch import Signal

model_saved = Signal()
model_deleted = Signal()


class ModelEvent:
    """
    Snapshot of a row at save/delete time: its id plus the current and the
    original (as loaded) values of its tracked fields.
    """

    def __init__(self, pk, current=None, original=None, created=False):
        self.pk = pk
        self.current = dict(current or {})
        self.original = dict(original or {})
        self.created = created

    @classmethod
    def from_instance(cls, instance, created=False, update_fields=None):
        """
        With update_fields, fields the save did not write keep their loaded
        value on both sides and so never count as changed.
        """
        return cls(
            instance.pk,
            current=instance.saved_values(update_fields),
            original={} if created else instance.original_values(),
            created=created,
        )

    def get(self, field):
        return self.current.get(field)

    def get_original(self, field):
        return self.original.get(field)

    def changed(self, field):
        return self.get(field) != self.get_original(field)

    def publish_saved(self):
        return model_saved.send(sender=type(self), event=self)

    def publish_deleted(self):
        return model_deleted.send(sender=type(self), event=self)

    def __repr__(self):
        return f"<{type(self).__name__} pk={self.pk} created={self.created}>"


class BrandEvent(ModelEvent):
    pass


class ProductEvent(ModelEvent):

    @property
    def active(self):
        return self.get("is_active")

    @property
    def category_id(self):
        return self.get("category_id")

    @property
    def original_category_id(self):
        return self.get_original("category_id")
