from datetime import timedelta

from cart.models import Cart
from cart.services import cleanup_cart, refresh_cart_prices
from common.exceptions import DomainError
from django.core.management.base import BaseCommand
from django.utils import timezone


class Command(BaseCommand):
    help = "Drop invalid lines from carts touched recently, optionally re-snapshotting prices"

    def add_arguments(self, parser):
        parser.add_argument("--days", type=int, default=30, help="Only carts updated within this many days")
        parser.add_argument("--refresh-prices", action="store_true", help="Also re-snapshot line prices")

    def handle(self, *args, **options):
        cutoff = timezone.now() - timedelta(days=int(options["days"]))
        func = refresh_cart_prices if options["refresh_prices"] else cleanup_cart
        qs = Cart.objects.filter(updated_at__gte=cutoff, items__isnull=False).distinct()
        count = 0
        skipped = 0
        for cart in qs.iterator():
            try:
                func(user_id=cart.user_id)
            except DomainError:
                # Carts of accounts later promoted to admin
                skipped += 1
                continue
            count += 1
        self.stdout.write(self.style.SUCCESS(f"Cleaned {count} carts ({skipped} skipped)."))
