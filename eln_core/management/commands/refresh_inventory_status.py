from django.core.management.base import BaseCommand

from eln_core.services.lifecycle_service import refresh_inventory_statuses


class Command(BaseCommand):
    help = "Rewrite stale cached chemical inventory statuses from quantity and expiry"

    def handle(self, *args, **options):
        changed = refresh_inventory_statuses()
        self.stdout.write(self.style.SUCCESS(f"{changed} chemical record(s) updated"))
