"""Admin registration for cart models.

Provides admin interfaces for `Cart` and `CartItem`, with inline items on
the cart page for easier support.
"""

from common.exceptions import DomainError
from django.contrib import admin, messages

from .models import Cart, CartItem
from .services import cleanup_cart, refresh_cart_prices


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0
    fields = ("product_id", "variant_id", "name", "quantity", "price_at_purchase", "updated_at")
    readonly_fields = ("updated_at",)


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "total_items", "total_amount", "version", "updated_at")
    search_fields = ("user__username", "user__email")
    ordering = ("-updated_at",)
    readonly_fields = ("total_items", "total_amount", "version", "created_at", "updated_at")
    inlines = [CartItemInline]
    list_select_related = ("user",)

    def _run(self, request, queryset, func, verb):
        successes = 0
        failures = 0
        for cart in queryset:
            try:
                func(user_id=cart.user_id)
                successes += 1
            except DomainError:
                failures += 1
        if successes:
            messages.success(request, f"{verb} {successes} cart(s).")
        if failures:
            messages.error(request, f"Failed on {failures} cart(s).")

    @admin.action(description="Drop invalid lines")
    def action_cleanup_cart(self, request, queryset):
        self._run(request, queryset, cleanup_cart, "Cleaned")

    @admin.action(description="Refresh line prices from catalog")
    def action_refresh_prices(self, request, queryset):
        self._run(request, queryset, refresh_cart_prices, "Repriced")

    actions = ["action_cleanup_cart", "action_refresh_prices"]


@admin.register(CartItem)
class CartItemAdmin(admin.ModelAdmin):
    list_display = ("id", "cart", "product_id", "variant_id", "quantity", "price_at_purchase", "updated_at")
    search_fields = ("product_id", "variant_id", "cart__user__email")
    ordering = ("id",)
    readonly_fields = ("created_at", "updated_at")
    raw_id_fields = ("cart",)
