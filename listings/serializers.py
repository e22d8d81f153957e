from rest_framework import serializers
from .models import Review, Service, ServiceCategory, ServiceDeleteRequest
from vendors.serializers import VendorSummarySerializer


class ServiceCategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = ServiceCategory
        fields = ["id", "name", "kind", "description", "icon", "created_at"]
        read_only_fields = ["id", "created_at"]


class ServiceSerializer(serializers.ModelSerializer):
    """
    Read serializer for services.

    Writes go through listings.services, which whitelists the input per
    category kind, so every field here is read-only.
    """

    vendor = VendorSummarySerializer(read_only=True)
    category = ServiceCategorySerializer(read_only=True)

    class Meta:
        model = Service
        fields = [
            "id",
            "vendor",
            "category",
            "title",
            "description",
            "price",
            "currency",
            "images",
            "location",
            "duration_hours",
            "max_capacity",
            "amenities",
            "attributes",
            "status",
            "approved_at",
            "approved_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ServiceSummarySerializer(serializers.ModelSerializer):
    """Compact service representation nested inside bookings."""

    class Meta:
        model = Service
        fields = ["id", "title", "price", "currency", "location", "status"]


class ServiceDeleteRequestSerializer(serializers.ModelSerializer):
    vendor = VendorSummarySerializer(read_only=True)

    class Meta:
        model = ServiceDeleteRequest
        fields = [
            "id",
            "service",
            "service_title",
            "vendor",
            "reason",
            "status",
            "admin_notes",
            "requested_at",
            "reviewed_at",
            "reviewed_by",
        ]
        read_only_fields = fields


class ReviewSerializer(serializers.ModelSerializer):
    """
    Read serializer for reviews. Only the reviewer's display name is
    exposed, never their contact details.
    """

    tourist_name = serializers.CharField(source="tourist.full_name", read_only=True)
    service_title = serializers.CharField(source="service.title", read_only=True, default=None)

    class Meta:
        model = Review
        fields = [
            "id",
            "service",
            "service_title",
            "booking",
            "vendor",
            "tourist",
            "tourist_name",
            "rating",
            "comment",
            "status",
            "admin_notes",
            "created_at",
            "reviewed_at",
            "reviewed_by",
        ]
        read_only_fields = fields
