import logging
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from .models import Vendor
from .serializers import VendorSerializer, VendorStatusSerializer
from .services import set_vendor_status
from utils.booking_helpers import BookingHelpers
from utils.payment_helpers import WalletHelpers
from utils.permission_helpers import ActionPermissionMixin, IsAdminUser, IsVendor, IsVendorOrAdmin
from utils.queryset_helpers import FilterableQuerysetMixin
from utils.validators import VendorValidators
from utils.constants import VendorMessage
from exceptions.handlers import MethodNotAllowedException

logger = logging.getLogger("vendors")


class VendorViewSet(ActionPermissionMixin, FilterableQuerysetMixin, viewsets.ModelViewSet):
    """
    ViewSet for vendor profiles.

    Admins list and moderate every vendor. A vendor reads and edits its
    own profile and reads its wallet statistics and dashboard.
    """

    queryset = Vendor.objects.select_related("user", "approved_by")
    serializer_class = VendorSerializer
    permission_classes = [IsVendorOrAdmin]
    action_permission_classes = {
        "set_status": [IsAdminUser],
        "me": [IsVendor],
        "dashboard": [IsVendor],
    }
    filter_fields = ["status"]

    def get_queryset(self):
        qs = super().get_queryset()
        if self.request.user.role == "admin":
            return qs
        return qs.filter(user=self.request.user)

    def create(self, request, *args, **kwargs):
        raise MethodNotAllowedException(VendorMessage.VENDOR_CREATE_NOT_ALLOWED)

    def destroy(self, request, *args, **kwargs):
        raise MethodNotAllowedException(VendorMessage.VENDOR_DELETE_NOT_ALLOWED)

    def perform_update(self, serializer):
        vendor = serializer.save()
        logger.info(f"Vendor profile {vendor.id} updated by {self.request.user}")

    @action(detail=True, methods=["post"], url_path="set-status")
    def set_status(self, request, pk=None):
        """Approve, reject or suspend a vendor"""
        serializer = VendorStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        vendor = set_vendor_status(pk, serializer.validated_data["status"], request.user)
        return Response(self.get_serializer(vendor).data)

    @action(detail=False, methods=["get"], url_path="me")
    def me(self, request):
        vendor = VendorValidators.get_vendor_for_user(request.user)
        return Response(self.get_serializer(vendor).data)

    @action(detail=True, methods=["get"], url_path="wallet-stats")
    def wallet_stats(self, request, pk=None):
        """Earnings, withdrawals and both balances of a vendor"""
        vendor = self.get_object()
        return Response(WalletHelpers.get_wallet_stats(vendor.id))

    @action(detail=False, methods=["get"], url_path="dashboard")
    def dashboard(self, request):
        vendor = VendorValidators.get_vendor_for_user(request.user)
        return Response(BookingHelpers.get_vendor_dashboard(vendor))
