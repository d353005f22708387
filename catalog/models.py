"""Catalog app models.

Defines the purchasable jewelry catalog: products with their metal and
gemstone composition, and optional variants (e.g. ring sizes) that carry
their own stock, metals and making charge.
"""

import secrets
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


def generate_product_id() -> str:
    return secrets.token_hex(8)


def generate_variant_id() -> str:
    return f"var_{secrets.token_hex(8)}"


def validate_metals(value):
    """Metal components: `[{"type", "purity", "weight", "color"?}]`."""

    if not isinstance(value, list):
        raise ValidationError("Metals must be a list.")
    for entry in value:
        if not isinstance(entry, dict) or not entry.get("type") or not entry.get("purity"):
            raise ValidationError("Each metal needs a type and a purity.")
        try:
            weight = Decimal(str(entry.get("weight", 0)))
        except ArithmeticError:
            raise ValidationError("Metal weight must be numeric.")
        if weight < 0:
            raise ValidationError("Metal weight cannot be negative.")


def validate_gemstones(value):
    """Gemstones: `[{"type", "carat", "count", "price", ...}]` with caller-supplied unit price."""

    if not isinstance(value, list):
        raise ValidationError("Gemstones must be a list.")
    for entry in value:
        if not isinstance(entry, dict) or not entry.get("type"):
            raise ValidationError("Each gemstone needs a type.")
        try:
            price = Decimal(str(entry.get("price", 0)))
            count = int(entry.get("count", 0))
        except (ArithmeticError, TypeError, ValueError):
            raise ValidationError("Gemstone price and count must be numeric.")
        if price < 0 or count < 0:
            raise ValidationError("Gemstone price and count cannot be negative.")


class Product(TimeStampedModel):
    """Catalog entry.

    A product without variants is itself the sole purchasable unit; its own
    `stock_quantity` and `total_price` play the role a variant's would.
    """

    product_id = models.CharField(max_length=64, unique=True, default=generate_product_id)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    category_id = models.IntegerField(null=True, blank=True, db_index=True)
    making_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    stock_quantity = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True, db_index=True)
    metals = models.JSONField(default=list, blank=True, validators=[validate_metals])
    gemstones = models.JSONField(default=list, blank=True, validators=[validate_gemstones])
    images = models.JSONField(default=list, blank=True)
    certificates = models.JSONField(default=list, blank=True)
    # Last computed price; may be stale relative to reference prices
    total_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    latest_price_update = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(name="product_making_price_non_negative", condition=models.Q(making_price__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.name} [{self.product_id}]"


class ProductVariant(TimeStampedModel):
    """Variant of a product (e.g. a ring size) with its own stock and price."""

    product = models.ForeignKey(Product, related_name="variants", on_delete=models.CASCADE)
    variant_id = models.CharField(max_length=64, default=generate_variant_id)
    name = models.CharField(max_length=120)
    stock_quantity = models.PositiveIntegerField(default=0)
    making_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    metals = models.JSONField(default=list, blank=True, validators=[validate_metals])
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["product", "variant_id"], name="unique_variant_id_per_product"),
            models.CheckConstraint(name="variant_making_price_non_negative", condition=models.Q(making_price__gte=0)),
        ]
        indexes = [
            models.Index(fields=["product", "variant_id"], name="variant_unit_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.product.name} - {self.name} [{self.variant_id}]"
