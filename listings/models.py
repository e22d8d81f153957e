import uuid
from decimal import Decimal
from django.conf import settings
from django.db import models
from utils.constants import Choices, DEFAULT_CURRENCY


class ServiceCategory(models.Model):
    """
    Category of bookable services. The kind selects which category-specific
    attributes a service in this category may carry.
    """

    name = models.CharField(max_length=100, unique=True)
    kind = models.CharField(max_length=20, choices=Choices.CATEGORY_KIND_CHOICES, default="other")
    description = models.TextField(blank=True)
    icon = models.CharField(max_length=50, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "service_categories"
        ordering = ["name"]
        verbose_name_plural = "Service categories"

    def __str__(self):
        return self.name


class Service(models.Model):
    """
    A bookable offering of a vendor.

    Columns common to every category live on the model. Category-specific
    values (hotel star rating, tour itinerary, flight number, ...) live in
    the attributes JSON object, filtered by utils.service_helpers.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    vendor = models.ForeignKey("vendors.Vendor", on_delete=models.CASCADE, related_name="services")
    category = models.ForeignKey(ServiceCategory, on_delete=models.PROTECT, related_name="services")
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default=DEFAULT_CURRENCY)
    images = models.JSONField(default=list, blank=True)
    location = models.CharField(max_length=255, blank=True)
    duration_hours = models.PositiveIntegerField(null=True, blank=True)
    max_capacity = models.PositiveIntegerField(null=True, blank=True)
    amenities = models.JSONField(default=list, blank=True)
    attributes = models.JSONField(default=dict, blank=True)
    status = models.CharField(max_length=20, choices=Choices.SERVICE_STATUS_CHOICES, default="pending")
    approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="approved_services",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "services"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.title} - {self.vendor.business_name}"


class ServiceDeleteRequest(models.Model):
    """
    A vendor's request to remove one of its services, reviewed by an admin.
    The request outlives the service once approved.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    service = models.ForeignKey(
        Service, on_delete=models.SET_NULL, null=True, blank=True, related_name="delete_requests"
    )
    service_title = models.CharField(max_length=200, blank=True)
    vendor = models.ForeignKey("vendors.Vendor", on_delete=models.CASCADE, related_name="delete_requests")
    reason = models.TextField()
    status = models.CharField(
        max_length=20, choices=Choices.DELETE_REQUEST_STATUS_CHOICES, default="pending"
    )
    admin_notes = models.TextField(blank=True)
    requested_at = models.DateTimeField(auto_now_add=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviewed_delete_requests",
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "service_delete_requests"
        ordering = ["-requested_at"]

    def __str__(self):
        return f"Delete request for {self.service_title} - {self.status}"


class Review(models.Model):
    """
    A tourist's rating of a completed booking. Reviews are published once an
    admin approves them.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    service = models.ForeignKey(
        Service, on_delete=models.SET_NULL, null=True, blank=True, related_name="reviews"
    )
    booking = models.OneToOneField(
        "bookingsystem.Booking", on_delete=models.CASCADE, related_name="review"
    )
    vendor = models.ForeignKey("vendors.Vendor", on_delete=models.CASCADE, related_name="reviews")
    tourist = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="reviews"
    )
    rating = models.PositiveSmallIntegerField()
    comment = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=Choices.REVIEW_STATUS_CHOICES, default="pending")
    admin_notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="moderated_reviews",
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "reviews"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.rating}/5 review of booking {self.booking_id} - {self.status}"
