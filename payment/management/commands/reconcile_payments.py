from django.core.management.base import BaseCommand, CommandError
from payment.services import reconcile_paid_bookings
from vendors.models import Vendor


class Command(BaseCommand):
    help = "Creates missing payment transactions for confirmed and paid bookings"

    def add_arguments(self, parser):
        parser.add_argument(
            "--vendor",
            dest="vendor_id",
            help="Only reconcile the bookings of this vendor id",
        )

    def handle(self, *args, **options):
        vendor_id = options.get("vendor_id")
        if vendor_id and not Vendor.objects.filter(pk=vendor_id).exists():
            raise CommandError(f"Vendor {vendor_id} not found")

        created = reconcile_paid_bookings(vendor_id=vendor_id)

        scope = f"vendor {vendor_id}" if vendor_id else "all vendors"
        if created:
            self.stdout.write(self.style.SUCCESS(f"Created {created} payment transaction(s) for {scope}"))
        else:
            self.stdout.write(f"No missing payment transactions for {scope}")
