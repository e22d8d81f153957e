from rest_framework import serializers
from .models import Transaction, Wallet
from accounts.serializers import UserSummarySerializer
from vendors.serializers import VendorSummarySerializer


class TransactionSerializer(serializers.ModelSerializer):
    """
    Serializer for ledger entries.
    Transactions are written by the payment services only, so it is read-only.
    """

    vendor = VendorSummarySerializer(read_only=True)
    tourist = UserSummarySerializer(read_only=True)

    class Meta:
        model = Transaction
        fields = [
            "id",
            "transaction_type",
            "status",
            "amount",
            "currency",
            "reference",
            "booking",
            "vendor",
            "tourist",
            "payment_method",
            "description",
            "metadata",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class WithdrawalRequestSerializer(serializers.Serializer):
    """
    Validates the shape of a withdrawal request. Amount limits are checked
    against the wallet stats in payment.services.
    """

    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    payment_method = serializers.CharField(required=False, allow_blank=True, max_length=50)
    description = serializers.CharField(required=False, allow_blank=True)


class TransactionStatusSerializer(serializers.Serializer):
    status = serializers.CharField()


class ReconcileSerializer(serializers.Serializer):
    vendor_id = serializers.UUIDField(required=False, allow_null=True)


class WalletSerializer(serializers.ModelSerializer):
    class Meta:
        model = Wallet
        fields = ["id", "vendor", "user", "balance", "currency", "created_at", "updated_at"]
        read_only_fields = fields
