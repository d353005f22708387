"""Admin registration for catalog models."""

from django.contrib import admin, messages

from .models import Product, ProductVariant
from .services import refresh_cached_prices


class ProductVariantInline(admin.TabularInline):
    model = ProductVariant
    extra = 0
    fields = ("variant_id", "name", "stock_quantity", "making_price", "metals", "total_price")
    readonly_fields = ("total_price",)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "product_id", "is_active", "stock_quantity", "total_price", "latest_price_update")
    search_fields = ("name", "product_id")
    list_filter = ("is_active", "category_id")
    readonly_fields = ("total_price", "latest_price_update", "created_at", "updated_at")
    inlines = [ProductVariantInline]

    @admin.action(description="Recompute cached prices")
    def action_refresh_prices(self, request, queryset):
        result = refresh_cached_prices(product_ids=list(queryset.values_list("product_id", flat=True)))
        messages.success(request, f"Repriced {result['updated']} of {result['processed']} product(s).")

    actions = ["action_refresh_prices"]


@admin.register(ProductVariant)
class ProductVariantAdmin(admin.ModelAdmin):
    list_display = ("product", "variant_id", "name", "stock_quantity", "total_price")
    search_fields = ("variant_id", "name", "product__name")
    raw_id_fields = ("product",)
