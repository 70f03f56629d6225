from django.contrib import admin

from .models import Product, Category, Brand
from .tasks import rebuild_product_lists


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ('name', 'sku', 'category', 'brand', 'price', 'popularity', 'is_active', 'created_at')
    list_filter = ('is_active', 'category', 'brand', 'created_at')
    search_fields = ('name', 'sku', 'category__name', 'brand__name')
    list_select_related = ('category', 'brand')
    raw_id_fields = ('category', 'brand')
    list_per_page = 25
    actions = ['activate_products', 'deactivate_products', 'rebuild_list_cache']

    fieldsets = (
        ('Basic Information', {'fields': ('name', 'sku')}),
        ('Shop by Store', {'fields': ('category', 'brand')}),
        ('Pricing & Ranking', {'fields': ('price', 'popularity', 'is_active')}),
    )

    # Saved one by one: queryset.update() would skip the cache handlers
    @admin.action(description="Activate selected products")
    def activate_products(self, request, queryset):
        count = 0
        for product in queryset.filter(is_active=False):
            product.is_active = True
            product.save(update_fields=['is_active'])
            count += 1
        self.message_user(request, f"{count} products activated.")

    @admin.action(description="Deactivate selected products")
    def deactivate_products(self, request, queryset):
        count = 0
        for product in queryset.filter(is_active=True):
            product.is_active = False
            product.save(update_fields=['is_active'])
            count += 1
        self.message_user(request, f"{count} products deactivated.")

    @admin.action(description="Rebuild cached product lists")
    def rebuild_list_cache(self, request, queryset):
        rebuild_product_lists.delay()
        self.message_user(request, "Product list rebuild queued.")


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ('name', 'parent_name', 'is_active', 'product_count')
    list_filter = ('is_active', 'parent')
    search_fields = ('name', 'parent__name')
    list_select_related = ('parent',)
    raw_id_fields = ('parent',)
    prepopulated_fields = {'slug': ('name',)}

    def parent_name(self, obj):
        return obj.parent.name if obj.parent else "Root"
    parent_name.short_description = "Parent"
    parent_name.admin_order_field = 'parent__name'

    def product_count(self, obj):
        return obj.products.count()
    product_count.short_description = "Products"


@admin.register(Brand)
class BrandAdmin(admin.ModelAdmin):
    list_display = ('name', 'logo', 'is_active', 'product_count')
    list_filter = ('is_active',)
    search_fields = ('name',)
    prepopulated_fields = {'slug': ('name',)}

    def product_count(self, obj):
        return obj.products.count()
    product_count.short_description = "Products"
