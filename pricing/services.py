"""Pricing services: live quotes built on the engine and reference prices."""

from decimal import Decimal

from catalog.models import Product
from common.deadlines import Deadline
from common.exceptions import NotFound
from django.conf import settings

from .engine import price_product
from .selectors import DatabaseReferencePrices, latest_reference_update


def default_tax_percent() -> Decimal:
    return Decimal(str(getattr(settings, "PRICING_DEFAULT_TAX_PERCENT", 3)))


def lookup_deadline() -> Deadline:
    """Fresh deadline for the reference price lookups of one request."""

    return Deadline(getattr(settings, "PRICING_LOOKUP_TIMEOUT_SECONDS", None))


def quote_product(*, product_id: str, source=None, deadline=None) -> dict:
    """Price a product against current reference prices without persisting anything."""

    try:
        product = Product.objects.prefetch_related("variants").get(product_id=product_id)
    except Product.DoesNotExist:
        raise NotFound("Product not found", product_id=product_id)

    breakdowns = price_product(
        product,
        source=source or DatabaseReferencePrices(),
        tax_percent=default_tax_percent(),
        deadline=deadline or lookup_deadline(),
    )
    return {
        "product_id": product.product_id,
        "units": [b.as_dict() for b in breakdowns],
        "last_updated": latest_reference_update(),
    }
