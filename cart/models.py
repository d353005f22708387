"""Cart app models.

One shopping cart per user. Lines reference catalog units by their public
product/variant identifiers and carry a price snapshot taken when the line
was added.
"""

from decimal import Decimal

from django.conf import settings
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Cart(TimeStampedModel):
    """Shopping cart bound to a user.

    `total_items` and `total_amount` are derived from the items and are
    recomputed by every mutation in `cart.services`; `version` increases
    with each mutation so callers can detect concurrent writers.
    """

    user = models.OneToOneField(settings.AUTH_USER_MODEL, related_name="cart", on_delete=models.CASCADE)
    total_items = models.PositiveIntegerField(default=0)
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    version = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["-updated_at"]

    def __str__(self) -> str:  # pragma: no cover
        return f"Cart#{self.id} ({self.user_id})"

    def recalculate_totals(self, items) -> None:
        items = list(items)
        self.total_items = sum(int(item.quantity) for item in items)
        self.total_amount = sum((item.line_total for item in items), Decimal("0.00"))


class CartItem(TimeStampedModel):
    """Line item in a shopping cart for one purchasable unit."""

    cart = models.ForeignKey(Cart, related_name="items", on_delete=models.CASCADE)
    product_id = models.CharField(max_length=64)
    variant_id = models.CharField(max_length=64)
    name = models.CharField(max_length=330)
    price_at_purchase = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    quantity = models.PositiveIntegerField(default=1)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["cart", "product_id", "variant_id"], name="unique_unit_per_cart"),
            models.CheckConstraint(name="quantity_positive", condition=models.Q(quantity__gte=1)),
            models.CheckConstraint(name="cart_price_non_negative", condition=models.Q(price_at_purchase__gte=0)),
        ]
        indexes = [
            models.Index(fields=["cart", "product_id", "variant_id"], name="cartitem_unit_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"CartItem#{self.id} cart={self.cart_id} {self.product_id}/{self.variant_id} qty={self.quantity}"

    @property
    def line_total(self) -> Decimal:
        return (self.price_at_purchase or Decimal("0.00")) * Decimal(int(self.quantity))
