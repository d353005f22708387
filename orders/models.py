from decimal import Decimal

from common.choices import OrderStatus, PaymentMethod, PaymentStatus
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Order(TimeStampedModel):
    """Purchase order capturing a frozen snapshot of a checkout.

    Item content and totals never change after creation; only the status and
    payment fields, notes, `invoice_url` and the history log move afterwards.
    """

    STATUS_PENDING = OrderStatus.PENDING
    STATUS_PLACED = OrderStatus.PLACED
    STATUS_SHIPPED = OrderStatus.SHIPPED
    STATUS_COMPLETED = OrderStatus.COMPLETED
    STATUS_CANCELLED = OrderStatus.CANCELLED
    STATUS_CHOICES = OrderStatus.choices

    user = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="orders", on_delete=models.PROTECT)
    number = models.CharField(max_length=32, unique=True, null=True, blank=True, db_index=True)
    email = models.EmailField(null=True, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)

    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    tax = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    shipping_fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_price = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    # Shipping address snapshot
    shipping_name = models.CharField(max_length=200)
    shipping_street = models.CharField(max_length=255)
    shipping_city = models.CharField(max_length=100)
    shipping_state = models.CharField(max_length=100)
    shipping_postal_code = models.CharField(max_length=20)
    shipping_country = models.CharField(max_length=100, default="India")
    shipping_phone = models.CharField(max_length=20, blank=True)

    # Payment sub-record
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    payment_status = models.CharField(
        max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING, db_index=True
    )
    transaction_id = models.CharField(max_length=128, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    refund_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    customer_notes = models.TextField(blank=True)
    admin_notes = models.TextField(blank=True)
    # Storage URL, possibly site-relative; written once by orders.invoices
    invoice_url = models.CharField(max_length=500, blank=True, default="")
    stock_released = models.BooleanField(default=False)

    class Meta:
        ordering = ["-id"]
        indexes = [
            models.Index(fields=["user", "status", "created_at"], name="order_user_status_idx"),
            models.Index(fields=["payment_status", "created_at"], name="order_payment_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                name="order_totals_non_negative",
                condition=models.Q(subtotal__gte=0, tax__gte=0, shipping_fee__gte=0),
            ),
            models.CheckConstraint(name="order_refund_non_negative", condition=models.Q(refund_amount__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Order#{self.id} user={self.user_id} status={self.status} payment={self.payment_status}"

    @property
    def is_paid(self) -> bool:
        return self.payment_status in (
            PaymentStatus.COMPLETED,
            PaymentStatus.REFUNDED,
            PaymentStatus.PARTIALLY_REFUNDED,
        )

    @property
    def shipping_address(self) -> dict:
        return {
            "name": self.shipping_name,
            "street": self.shipping_street,
            "city": self.shipping_city,
            "state": self.shipping_state,
            "postal_code": self.shipping_postal_code,
            "country": self.shipping_country,
            "phone": self.shipping_phone,
        }


class OrderItem(TimeStampedModel):
    """Line item within an order.

    Holds a value copy of the product and, when bought, the variant as they
    were at order creation. Rendering and invoicing read these snapshots and
    never go back to the catalog.
    """

    order = models.ForeignKey(Order, related_name="items", on_delete=models.CASCADE)
    product_id = models.CharField(max_length=64)
    variant_id = models.CharField(max_length=64)
    name = models.CharField(max_length=330)
    product_snapshot = models.JSONField(encoder=DjangoJSONEncoder)
    variant_snapshot = models.JSONField(encoder=DjangoJSONEncoder, null=True, blank=True)
    quantity = models.PositiveIntegerField(default=1)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        ordering = ["id"]
        indexes = [
            models.Index(fields=["order", "product_id"], name="orderitem_product_idx"),
        ]
        constraints = [
            models.CheckConstraint(name="orderitem_price_non_negative", condition=models.Q(price__gte=0)),
            models.CheckConstraint(name="orderitem_quantity_positive", condition=models.Q(quantity__gte=1)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"OrderItem#{self.id} order={self.order_id} {self.product_id}/{self.variant_id} qty={self.quantity}"

    @property
    def line_total(self) -> Decimal:
        return (self.price or Decimal("0.00")) * Decimal(int(self.quantity))

    @property
    def stock_variant_id(self):
        """Variant whose stock this line consumed; None for product-level stock."""

        return self.variant_id if self.variant_snapshot else None


class AppendOnlyQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise TypeError("Order history entries cannot be modified")

    def delete(self):
        raise TypeError("Order history entries cannot be deleted")


class OrderHistory(models.Model):
    """Append-only audit log of status and payment status changes."""

    order = models.ForeignKey(Order, related_name="history", on_delete=models.CASCADE)
    status = models.CharField(max_length=16, choices=OrderStatus.choices)
    payment_status = models.CharField(max_length=20, choices=PaymentStatus.choices)
    timestamp = models.DateTimeField(auto_now_add=True)
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, related_name="+", on_delete=models.SET_NULL
    )
    notes = models.TextField(blank=True)

    objects = AppendOnlyQuerySet.as_manager()

    class Meta:
        ordering = ["timestamp", "id"]
        verbose_name_plural = "order history"

    def __str__(self) -> str:  # pragma: no cover
        return f"OrderHistory#{self.id} order={self.order_id} {self.status}/{self.payment_status}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise TypeError("Order history entries cannot be modified")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise TypeError("Order history entries cannot be deleted")


class IdempotencyKey(TimeStampedModel):
    """Stores idempotent request results to prevent duplicate processing."""

    key = models.CharField(max_length=128)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.CASCADE)
    scope = models.CharField(max_length=128)
    path = models.CharField(max_length=255)
    method = models.CharField(max_length=16)
    request_hash = models.CharField(max_length=64, null=True, blank=True)
    response_code = models.IntegerField(null=True, blank=True)
    response_json = models.JSONField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["key", "scope", "path", "method"], name="uniq_idem_scope_path_method"),
        ]
