"""Catalog services: stock movements and cached price refresh."""

import logging
from typing import Iterable, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone
from pricing.engine import price_product
from pricing.selectors import DatabaseReferencePrices

from .models import Product, ProductVariant

logger = logging.getLogger("luxejewels.catalog")


def _stock_queryset(*, product_id: str, variant_id: Optional[str]):
    if variant_id:
        return ProductVariant.objects.filter(product__product_id=product_id, variant_id=variant_id)
    return Product.objects.filter(product_id=product_id)


def decrement_stock(*, product_id: str, variant_id: Optional[str], quantity: int) -> bool:
    """Atomically take `quantity` units if at least that many remain.

    A `variant_id` of None targets the product's own stock. Returns False,
    leaving stock untouched, when the unit is missing or short.
    """

    if quantity <= 0:
        return True
    updated = _stock_queryset(product_id=product_id, variant_id=variant_id).filter(
        stock_quantity__gte=quantity
    ).update(stock_quantity=F("stock_quantity") - quantity)
    return updated == 1


def restore_stock(*, product_id: str, variant_id: Optional[str], quantity: int) -> bool:
    """Return units to stock. Returns False if the unit no longer exists."""

    if quantity <= 0:
        return True
    updated = _stock_queryset(product_id=product_id, variant_id=variant_id).update(
        stock_quantity=F("stock_quantity") + quantity
    )
    if not updated:
        logger.warning(
            "catalog.restock_skipped",
            extra={
                "event": "catalog.restock_skipped",
                "product_id": product_id,
                "variant_id": variant_id,
                "quantity": quantity,
            },
        )
    return updated == 1


def refresh_cached_prices(
    *,
    product_ids: Optional[Iterable[str]] = None,
    limit: Optional[int] = None,
    dry_run: bool = False,
    source=None,
) -> dict:
    """Recompute and persist `total_price` for active products and their variants.

    Products are priced against one preloaded reference snapshot. Returns
    counts of processed and updated products.
    """

    source = source or DatabaseReferencePrices(preload=True)
    tax_percent = getattr(settings, "PRICING_DEFAULT_TAX_PERCENT", 3)
    qs = Product.objects.filter(is_active=True).prefetch_related("variants").order_by("id")
    if product_ids:
        qs = qs.filter(product_id__in=list(product_ids))
    if limit:
        qs = qs[: int(limit)]

    processed = 0
    updated = 0
    for product in qs:
        processed += 1
        breakdowns = price_product(product, source=source, tax_percent=tax_percent)
        if dry_run:
            continue
        now = timezone.now()
        with transaction.atomic():
            variants = {v.variant_id: v for v in product.variants.all()}
            if variants:
                for breakdown in breakdowns:
                    variant = variants[breakdown.unit_id]
                    variant.total_price = breakdown.rounded_total
                    variant.save(update_fields=["total_price", "updated_at"])
                # Product-level price mirrors the cheapest variant for listings
                product.total_price = min(b.rounded_total for b in breakdowns)
            else:
                product.total_price = breakdowns[0].rounded_total
            product.latest_price_update = now
            product.save(update_fields=["total_price", "latest_price_update", "updated_at"])
        updated += 1
        logger.info(
            "catalog.price_refreshed",
            extra={
                "event": "catalog.price_refreshed",
                "product_id": product.product_id,
                "units": len(breakdowns),
                "total_price": str(product.total_price),
            },
        )
    return {"processed": processed, "updated": updated, "dry_run": dry_run}
