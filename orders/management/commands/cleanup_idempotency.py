from django.core.management.base import BaseCommand
from orders.services import purge_idempotency_keys


class Command(BaseCommand):
    help = "Delete expired idempotency records and in-progress ones abandoned by crashed requests"

    def add_arguments(self, parser):
        parser.add_argument(
            "--stale-minutes",
            type=int,
            default=60,
            help="Also delete records still without a stored response after this many minutes",
        )
        parser.add_argument("--dry-run", action="store_true", help="Only report how many would be deleted")

    def handle(self, *args, **options):
        counts = purge_idempotency_keys(stale_after_minutes=options["stale_minutes"], dry_run=options["dry_run"])
        verb = "Would delete" if options["dry_run"] else "Deleted"
        self.stdout.write(
            self.style.SUCCESS(f"{verb} {counts['expired']} expired and {counts['stale']} stale idempotency keys.")
        )
