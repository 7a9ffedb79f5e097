from django.core.management.base import BaseCommand

from eln_core.services.lifecycle_service import expiring_chemicals


class Command(BaseCommand):
    help = "List chemicals expiring within the warning window"

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=None,
            help="Warning window in days (defaults to ELN_EXPIRY_WARNING_DAYS)",
        )

    def handle(self, *args, **options):
        rows = expiring_chemicals(window_days=options["days"])
        if not rows:
            self.stdout.write("No chemicals expiring soon.")
            return

        for row in rows:
            self.stdout.write(
                f"{row['business_id']}\t{row['name']}\t{row['expiry_date']}\t"
                f"{row['days_until']} day(s)\t{row['status']}"
            )
        self.stdout.write(self.style.WARNING(f"{len(rows)} chemical(s) expiring soon"))
