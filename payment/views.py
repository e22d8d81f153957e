from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from .models import Transaction, Wallet
from .serializers import (
    ReconcileSerializer,
    TransactionSerializer,
    TransactionStatusSerializer,
    WalletSerializer,
    WithdrawalRequestSerializer,
)
from .services import reconcile_paid_bookings, request_withdrawal, set_transaction_status
from utils.queryset_helpers import RoleFilterableQuerysetMixin
from utils.permission_helpers import ActionPermissionMixin, IsAdminUser, IsVendor, IsVendorOrAdmin
from utils.validators import VendorValidators
import logging

logger = logging.getLogger("payment")


class TransactionViewSet(ActionPermissionMixin, RoleFilterableQuerysetMixin, viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for the transaction ledger.

    Admins see every transaction, vendors their own. Entries are only written
    by booking payments, refunds, withdrawals and the reconciliation sweep.
    """

    queryset = Transaction.objects.select_related("vendor", "tourist", "booking")
    serializer_class = TransactionSerializer
    permission_classes = [IsVendorOrAdmin]
    action_permission_classes = {
        "withdraw": [IsVendor],
        "set_status": [IsAdminUser],
        "reconcile": [IsAdminUser],
    }
    vendor_field = "vendor"
    filter_fields = ["transaction_type", "status"]

    @action(detail=False, methods=["post"], url_path="withdraw")
    def withdraw(self, request):
        """Request a withdrawal from the vendor's balance"""
        vendor = VendorValidators.get_vendor_for_user(request.user)
        serializer = WithdrawalRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        entry = request_withdrawal(vendor, **serializer.validated_data)
        return Response(self.get_serializer(entry).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="set-status")
    def set_status(self, request, pk=None):
        """Move a withdrawal to its next status"""
        serializer = TransactionStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        entry = set_transaction_status(pk, serializer.validated_data["status"], request.user)
        return Response(self.get_serializer(entry).data)

    @action(detail=False, methods=["post"], url_path="reconcile")
    def reconcile(self, request):
        """Backfill payment transactions for confirmed and paid bookings"""
        serializer = ReconcileSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        vendor_id = serializer.validated_data.get("vendor_id")
        created = reconcile_paid_bookings(vendor_id=vendor_id)
        logger.info(f"Reconciliation run by {request.user}: {created} created")
        return Response({"created": created, "vendor_id": vendor_id})


class WalletViewSet(RoleFilterableQuerysetMixin, viewsets.ReadOnlyModelViewSet):
    """
    Cached wallet balances. Admins see every wallet, vendors their own.
    """

    queryset = Wallet.objects.select_related("vendor", "user")
    serializer_class = WalletSerializer
    permission_classes = [IsVendorOrAdmin]
    vendor_field = "vendor"
    default_ordering = ["-updated_at"]
