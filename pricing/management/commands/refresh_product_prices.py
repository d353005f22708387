from catalog.services import refresh_cached_prices
from django.core.management.base import BaseCommand


class Command(BaseCommand):
    help = "Recompute cached total prices of active products from current reference prices"

    def add_arguments(self, parser):
        parser.add_argument("--dry-run", action="store_true", help="Compute prices without saving them")
        parser.add_argument("--limit", type=int, default=None, help="Process at most this many products")
        parser.add_argument("--product-ids", default="", help="Comma-separated product ids to refresh")

    def handle(self, *args, **options):
        product_ids = [p.strip() for p in options["product_ids"].split(",") if p.strip()]
        result = refresh_cached_prices(
            product_ids=product_ids or None,
            limit=options["limit"],
            dry_run=options["dry_run"],
        )
        suffix = " (dry run)" if result["dry_run"] else ""
        self.stdout.write(
            self.style.SUCCESS(f"Processed {result['processed']} products, updated {result['updated']}{suffix}.")
        )
