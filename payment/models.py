import uuid
from decimal import Decimal
from django.conf import settings
from django.db import models
from bookingsystem.models import Booking
from utils.constants import Choices, DEFAULT_CURRENCY


class Transaction(models.Model):
    """
    Ledger entry for a payment, withdrawal or refund.

    A booking has at most one completed payment. The conditional unique
    constraint below enforces it, and writers treat the IntegrityError it
    raises as "already recorded".
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    transaction_type = models.CharField(max_length=20, choices=Choices.TRANSACTION_TYPE_CHOICES)
    status = models.CharField(max_length=20, choices=Choices.TRANSACTION_STATUS_CHOICES, default="pending")
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default=DEFAULT_CURRENCY)
    reference = models.CharField(max_length=100, blank=True)
    booking = models.ForeignKey(
        Booking, on_delete=models.SET_NULL, null=True, blank=True, related_name="transactions"
    )
    vendor = models.ForeignKey("vendors.Vendor", on_delete=models.CASCADE, related_name="transactions")
    tourist = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transactions",
    )
    payment_method = models.CharField(max_length=50, blank=True)
    description = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "transactions"
        constraints = [
            models.UniqueConstraint(
                fields=["booking"],
                condition=models.Q(transaction_type="payment", status="completed"),
                name="unique_completed_payment_per_booking",
            )
        ]
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.transaction_type} {self.amount} {self.currency} - {self.status}"


class Wallet(models.Model):
    """
    Cached balance of a vendor, or of the platform admin when vendor is empty.
    Only the crediting helpers in utils.payment_helpers change the balance.
    """

    vendor = models.OneToOneField(
        "vendors.Vendor", on_delete=models.CASCADE, null=True, blank=True, related_name="wallet"
    )
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, null=True, blank=True, related_name="wallet"
    )
    balance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default=DEFAULT_CURRENCY)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "wallets"

    def __str__(self):
        owner = self.vendor.business_name if self.vendor_id else self.user
        return f"Wallet of {owner}: {self.balance} {self.currency}"
