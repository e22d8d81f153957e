from rest_framework import serializers
from .models import Vendor
from accounts.serializers import UserSummarySerializer


class VendorSerializer(serializers.ModelSerializer):
    """
    Serializer for vendor profiles.

    Status and approval fields are managed by admin moderation and
    are read-only here.
    """

    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = Vendor
        fields = [
            "id",
            "user",
            "business_name",
            "business_description",
            "business_address",
            "business_phone",
            "business_email",
            "business_website",
            "business_type",
            "status",
            "approved_at",
            "approved_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "status", "approved_at", "approved_by", "created_at", "updated_at"]


class VendorSummarySerializer(serializers.ModelSerializer):
    """Compact vendor representation nested inside services and bookings."""

    class Meta:
        model = Vendor
        fields = ["id", "business_name", "business_email", "business_phone", "status"]


class VendorStatusSerializer(serializers.Serializer):
    status = serializers.CharField()
