from django.core.management.base import BaseCommand

from frontdesk.services.billing import sync_from_appointments


class Command(BaseCommand):
    help = "Record missing payments for completed appointments that carry a fee."

    def handle(self, *args, **options):
        synced = sync_from_appointments()
        self.stdout.write(self.style.SUCCESS(f"Synced {synced} payments."))
