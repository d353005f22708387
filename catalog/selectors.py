"""Selectors for the catalog domain.

Expose read-only query helpers shared by the cart and order services.
Selectors return lightweight data structures and avoid side effects.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from common.exceptions import InsufficientStock, NotFound, Unavailable

from .models import Product, ProductVariant


@dataclass
class PurchasableUnit:
    """The thing actually being bought: a variant, or a product without variants."""

    product: Product
    variant: Optional[ProductVariant]
    variant_id: str
    name: str
    stock_quantity: int
    unit_price: Decimal

    @property
    def product_id(self) -> str:
        return self.product.product_id


def resolve_unit(*, product_id: str, variant_id: str) -> PurchasableUnit:
    """Resolve a (product, variant) pair presented by a buyer.

    Raises NotFound for a missing product or variant and Unavailable for an
    inactive product. For a product without variants, `variant_id` must
    equal `product_id`.
    """

    try:
        product = Product.objects.prefetch_related("variants").get(product_id=product_id)
    except Product.DoesNotExist:
        raise NotFound("Product not found", product_id=product_id)

    if not product.is_active:
        raise Unavailable("Product is not available", product_id=product_id)

    variants = list(product.variants.all())
    if variants:
        variant = next((v for v in variants if v.variant_id == variant_id), None)
        if variant is None:
            raise NotFound("Product variant not found", product_id=product_id, variant_id=variant_id)
        return PurchasableUnit(
            product=product,
            variant=variant,
            variant_id=variant.variant_id,
            name=f"{product.name} - {variant.name}",
            stock_quantity=int(variant.stock_quantity),
            unit_price=variant.total_price or Decimal("0.00"),
        )

    if variant_id != product_id:
        raise NotFound("Product variant not found", product_id=product_id, variant_id=variant_id)
    return PurchasableUnit(
        product=product,
        variant=None,
        variant_id=product.product_id,
        name=product.name,
        stock_quantity=int(product.stock_quantity),
        unit_price=product.total_price or Decimal("0.00"),
    )


def ensure_in_stock(unit: PurchasableUnit, quantity: int) -> None:
    if quantity > unit.stock_quantity:
        raise InsufficientStock(
            product_id=unit.product_id,
            variant_id=unit.variant_id,
            available=unit.stock_quantity,
            requested=quantity,
        )


def validate_unit(*, product_id: str, variant_id: str, quantity: int) -> PurchasableUnit:
    """Resolve a unit and check `quantity` against its current stock."""

    unit = resolve_unit(product_id=product_id, variant_id=variant_id)
    ensure_in_stock(unit, quantity)
    return unit
