from common.exceptions import DomainError
from django.contrib import admin, messages

from .invoices import generate_invoice
from .models import IdempotencyKey, Order, OrderHistory, OrderItem
from .services import handle_payment_failure


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    fields = ("product_id", "variant_id", "name", "quantity", "price")
    readonly_fields = fields


class OrderHistoryInline(admin.TabularInline):
    model = OrderHistory
    extra = 0
    can_delete = False
    fields = ("timestamp", "status", "payment_status", "updated_by", "notes")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "number", "status", "payment_status", "user", "total_price", "created_at")
    list_filter = ("status", "payment_status", "payment_method", "created_at")
    search_fields = ("number", "email", "transaction_id")
    date_hierarchy = "created_at"
    readonly_fields = (
        "number",
        "subtotal",
        "tax",
        "shipping_fee",
        "total_price",
        "paid_at",
        "refund_amount",
        "invoice_url",
        "stock_released",
    )
    inlines = [OrderItemInline, OrderHistoryInline]

    @admin.action(description="Generate invoice")
    def action_generate_invoice(self, request, queryset):
        for order in queryset:
            try:
                generate_invoice(order_id=order.id)
            except DomainError as exc:
                messages.error(request, f"{order.number}: {exc.message}")

    @admin.action(description="Mark payment failed (cancels pending orders)")
    def action_fail_payment(self, request, queryset):
        for order in queryset:
            handle_payment_failure(order_id=order.id, reason=f"Marked failed by {request.user}")

    actions = ["action_generate_invoice", "action_fail_payment"]


@admin.register(OrderItem)
class OrderItemAdmin(admin.ModelAdmin):
    list_display = ("id", "order", "product_id", "variant_id", "quantity", "price")
    search_fields = ("product_id", "variant_id", "name", "order__number")


@admin.register(IdempotencyKey)
class IdempotencyKeyAdmin(admin.ModelAdmin):
    list_display = ("id", "key", "scope", "path", "method", "response_code", "created_at")
    list_filter = ("method", "response_code", "created_at")
    search_fields = ("key", "scope", "path")
    date_hierarchy = "created_at"
