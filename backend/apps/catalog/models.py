from django.db import models


class TrackedModel(models.Model):
    """
    Remembers the values of TRACKED_FIELDS as they were loaded from the DB,
    so a save can be diffed against them.
    """
    TRACKED_FIELDS = ()

    class Meta:
        abstract = True

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        loaded = dict(zip(field_names, values))
        instance._original_values = {
            name: loaded[name] for name in cls.TRACKED_FIELDS if name in loaded
        }
        return instance

    def current_values(self):
        return {name: getattr(self, name) for name in self.TRACKED_FIELDS}

    def original_values(self):
        return dict(getattr(self, "_original_values", {}))

    def written_tracked_fields(self, update_fields=None):
        """
        Tracked attnames a save actually wrote.
        update_fields may name either the field ("category") or its attname.
        """
        if update_fields is None:
            return set(self.TRACKED_FIELDS)

        written = set()
        for name in self.TRACKED_FIELDS:
            field = self._meta.get_field(name)
            if field.name in update_fields or field.attname in update_fields:
                written.add(name)
        return written

    def saved_values(self, update_fields=None):
        """
        Tracked values as they now stand in the DB: written fields from the
        instance, the rest carried over from what was loaded.
        """
        written = self.written_tracked_fields(update_fields)
        values = {name: value for name, value in self.original_values().items() if name not in written}
        values.update({name: getattr(self, name) for name in written})
        return values

    def remember_tracked_values(self, update_fields=None):
        original = self.original_values()
        for name in self.written_tracked_fields(update_fields):
            original[name] = getattr(self, name)
        self._original_values = original


class Brand(TrackedModel):
    name = models.CharField(max_length=100)
    slug = models.SlugField(unique=True)
    logo = models.URLField(max_length=500, null=True, blank=True)
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return self.name


class Category(models.Model):
    parent = models.ForeignKey(
        'self',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='subcategories'
    )

    name = models.CharField(max_length=100)
    slug = models.SlugField(unique=True)
    icon = models.URLField(max_length=500, null=True, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        verbose_name_plural = "Categories"

    def __str__(self):
        if self.parent:
            return f"{self.parent.name} > {self.name}"
        return self.name


class Product(TrackedModel):
    TRACKED_FIELDS = ("is_active", "category_id", "popularity")

    category = models.ForeignKey(
        Category, on_delete=models.SET_NULL, related_name="products", null=True, blank=True
    )
    brand = models.ForeignKey(
        Brand, on_delete=models.SET_NULL, related_name="products", null=True, blank=True
    )

    name = models.CharField(max_length=255)
    sku = models.CharField(max_length=100, unique=True, db_index=True)

    price = models.DecimalField(max_digits=10, decimal_places=2, default="0.00")
    popularity = models.PositiveIntegerField(default=0)

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.name} ({self.sku})"
