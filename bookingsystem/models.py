import uuid
from decimal import Decimal
from django.db import models
from django.contrib.auth import get_user_model
from django.utils import timezone
from utils.constants import Choices, DEFAULT_CURRENCY

User = get_user_model()


class Booking(models.Model):
    """
    Booking of a service by a tourist or a guest.

    A guest booking has no tourist and carries guest_name, guest_email and
    guest_phone instead. When a booking is confirmed and paid, exactly one
    completed payment transaction is written for it (see payment.Transaction).
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    service = models.ForeignKey(
        "listings.Service", on_delete=models.SET_NULL, null=True, blank=True, related_name="bookings"
    )
    vendor = models.ForeignKey("vendors.Vendor", on_delete=models.CASCADE, related_name="bookings")
    tourist = models.ForeignKey(
        User, on_delete=models.CASCADE, null=True, blank=True, related_name="bookings"
    )
    guest_name = models.CharField(max_length=200, blank=True)
    guest_email = models.EmailField(blank=True)
    guest_phone = models.CharField(max_length=20, blank=True)
    booking_date = models.DateTimeField(default=timezone.now)
    service_date = models.DateTimeField(null=True, blank=True)
    guests = models.PositiveIntegerField(default=1)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default=DEFAULT_CURRENCY)
    status = models.CharField(max_length=20, choices=Choices.BOOKING_STATUS_CHOICES, default="pending")
    payment_status = models.CharField(
        max_length=20, choices=Choices.PAYMENT_STATUS_CHOICES, default="pending"
    )
    special_requests = models.TextField(blank=True)
    payment_reference = models.CharField(max_length=100, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def is_guest_booking(self):
        return self.tourist_id is None

    def __str__(self):
        return f"Booking {self.id} - {self.status}/{self.payment_status}"

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Booking"
        verbose_name_plural = "Bookings"
        db_table = "bookings"
        indexes = [
            models.Index(fields=["status", "payment_status"], name="bookings_status_idx"),
        ]
