from django.conf import settings
from django.core.management.base import BaseCommand
from orders.services import expire_pending_orders


class Command(BaseCommand):
    help = "Fail orders still awaiting payment after ORDER_PAYMENT_TTL_MINUTES, returning their stock"

    def add_arguments(self, parser):
        parser.add_argument("--minutes", type=int, default=None, help="Override the payment window")

    def handle(self, *args, **options):
        minutes = options["minutes"]
        if minutes is None:
            minutes = getattr(settings, "ORDER_PAYMENT_TTL_MINUTES", 60)
        count = expire_pending_orders(older_than_minutes=minutes)
        self.stdout.write(self.style.SUCCESS(f"Expired {count} unpaid orders."))
