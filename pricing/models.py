"""Reference price store.

Holds the externally maintained price-per-gram for each (metal, purity)
pair. Rows are updated out-of-band (admin, feeds); the pricing engine only
reads them.
"""

from decimal import Decimal

from django.db import models


class MetalPrice(models.Model):
    metal = models.CharField(max_length=40)
    purity = models.CharField(max_length=40)
    price_per_gram = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    source = models.CharField(max_length=40, blank=True, default="manual")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["metal", "purity"]
        constraints = [
            models.UniqueConstraint(fields=["metal", "purity"], name="unique_metal_purity"),
            models.CheckConstraint(name="metal_price_non_negative", condition=models.Q(price_per_gram__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.metal} {self.purity} @ {self.price_per_gram}/g"
