from rest_framework import serializers
from .models import Booking
from accounts.serializers import UserSummarySerializer
from listings.serializers import ServiceSummarySerializer
from vendors.serializers import VendorSummarySerializer


class BookingSerializer(serializers.ModelSerializer):
    """
    Serializes booking data for API usage.

    Service, vendor and tourist are nested. Bookings are created and
    changed through bookingsystem.services, so every field is read-only.
    """

    service = ServiceSummarySerializer(read_only=True)
    vendor = VendorSummarySerializer(read_only=True)
    tourist = UserSummarySerializer(read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "service",
            "vendor",
            "tourist",
            "guest_name",
            "guest_email",
            "guest_phone",
            "booking_date",
            "service_date",
            "guests",
            "total_amount",
            "currency",
            "status",
            "payment_status",
            "special_requests",
            "payment_reference",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
