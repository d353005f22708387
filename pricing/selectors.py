"""Selectors for read-only reference price queries."""

from decimal import Decimal
from typing import Dict, Optional, Tuple

from django.db.models import Max

from .models import MetalPrice


class DatabaseReferencePrices:
    """Reference price source backed by `MetalPrice` rows.

    With `preload=True` every row is read once up front, which suits batch
    jobs pricing many products against one consistent snapshot.
    """

    def __init__(self, *, preload: bool = False):
        self._snapshot: Optional[Dict[Tuple[str, str], Decimal]] = None
        if preload:
            self._snapshot = {
                (row.metal, row.purity): row.price_per_gram for row in MetalPrice.objects.all()
            }

    def lookup(self, metal_type: str, purity: str) -> Optional[Decimal]:
        if self._snapshot is not None:
            return self._snapshot.get((metal_type, purity))
        return (
            MetalPrice.objects.filter(metal=metal_type, purity=purity)
            .values_list("price_per_gram", flat=True)
            .first()
        )


class StaticReferencePrices:
    """Fixed in-memory price table, e.g. for quotes against a pinned snapshot."""

    def __init__(self, prices: Dict[Tuple[str, str], object]):
        self._prices = {key: Decimal(str(value)) for key, value in prices.items()}

    def lookup(self, metal_type: str, purity: str) -> Optional[Decimal]:
        return self._prices.get((metal_type, purity))


def latest_reference_update():
    """Timestamp of the most recently updated reference price, if any."""

    return MetalPrice.objects.aggregate(latest=Max("updated_at"))["latest"]


def list_metal_prices():
    return MetalPrice.objects.all()
