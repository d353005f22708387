"""Seed jewelry catalog data and reference metal prices for development.

Re-running is idempotent; existing rows are reused by name/metal and purity.
"""

from decimal import Decimal

from catalog.models import Product, ProductVariant
from catalog.services import refresh_cached_prices
from django.core.management.base import BaseCommand
from django.db import transaction
from pricing.models import MetalPrice

METAL_PRICES = [
    ("Gold", "24K", Decimal("7200.00")),
    ("Gold", "22K", Decimal("6600.00")),
    ("Gold", "18K", Decimal("5400.00")),
    ("Silver", "925", Decimal("95.00")),
    ("Platinum", "950", Decimal("3100.00")),
]

PRODUCTS = [
    {
        "name": "Aurora Solitaire Ring",
        "description": "18K gold band with a round brilliant diamond.",
        "making_price": Decimal("4500.00"),
        "metals": [{"type": "Gold", "purity": "18K", "weight": 3.2, "color": "Yellow"}],
        "gemstones": [
            {"type": "Diamond", "carat": 0.5, "count": 1, "price": 42000, "clarity": "VS1", "shape": "Round"}
        ],
        "variants": [
            {"name": "Size 6", "stock_quantity": 4, "making_price": Decimal("4500.00"), "weight": 3.0},
            {"name": "Size 7", "stock_quantity": 6, "making_price": Decimal("4600.00"), "weight": 3.2},
            {"name": "Size 8", "stock_quantity": 3, "making_price": Decimal("4700.00"), "weight": 3.4},
        ],
    },
    {
        "name": "Lotus Silver Anklet",
        "description": "Sterling silver anklet with lotus charms.",
        "making_price": Decimal("800.00"),
        "stock_quantity": 25,
        "metals": [{"type": "Silver", "purity": "925", "weight": 18.5, "color": "White"}],
        "gemstones": [],
    },
    {
        "name": "Temple Gold Necklace",
        "description": "22K gold temple necklace with ruby accents.",
        "making_price": Decimal("18000.00"),
        "stock_quantity": 2,
        "metals": [{"type": "Gold", "purity": "22K", "weight": 32.0, "color": "Yellow"}],
        "gemstones": [{"type": "Ruby", "carat": 0.1, "count": 12, "price": 1500}],
    },
]


class Command(BaseCommand):
    help = "Seed jewelry products, variants and reference metal prices"

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write("Seeding reference prices...")
        for metal, purity, price in METAL_PRICES:
            MetalPrice.objects.update_or_create(
                metal=metal, purity=purity, defaults={"price_per_gram": price, "source": "seed"}
            )

        self.stdout.write("Seeding products...")
        for data in PRODUCTS:
            variants = data.get("variants", [])
            product, created = Product.objects.get_or_create(
                name=data["name"],
                defaults={
                    "description": data["description"],
                    "making_price": data["making_price"],
                    "stock_quantity": data.get("stock_quantity", 0),
                    "metals": data["metals"],
                    "gemstones": data["gemstones"],
                },
            )
            if created:
                base_metal = data["metals"][0]
                for variant in variants:
                    ProductVariant.objects.create(
                        product=product,
                        name=variant["name"],
                        stock_quantity=variant["stock_quantity"],
                        making_price=variant["making_price"],
                        metals=[{**base_metal, "weight": variant["weight"]}],
                    )

        result = refresh_cached_prices()
        self.stdout.write(self.style.SUCCESS(f"Seeded catalog; priced {result['updated']} products."))
