import uuid
from django.conf import settings
from django.db import models
from utils.constants import Choices


class Vendor(models.Model):
    """
    Business profile of a vendor account.

    A vendor owns services and bookings, and has a cached wallet balance
    (payment.Wallet). New vendors are pending until an admin approves them.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="vendor_profile"
    )
    business_name = models.CharField(max_length=200)
    business_description = models.TextField(blank=True)
    business_address = models.CharField(max_length=255, blank=True)
    business_phone = models.CharField(max_length=20, blank=True)
    business_email = models.EmailField(blank=True)
    business_website = models.URLField(blank=True)
    business_type = models.CharField(max_length=100, blank=True)
    status = models.CharField(max_length=20, choices=Choices.VENDOR_STATUS_CHOICES, default="pending")
    approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="approved_vendors",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "vendors"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.business_name} ({self.status})"
