import logging
from rest_framework import viewsets, status
from rest_framework.response import Response
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.decorators import action
from .models import Booking
from .serializers import BookingSerializer
from .services import create_booking, refund_booking, update_booking_status
from payment.serializers import TransactionSerializer
from utils.queryset_helpers import RoleFilterableQuerysetMixin
from utils.permission_helpers import ActionPermissionMixin, IsAdminUser
from utils.booking_helpers import BookingHelpers
from utils.constants import BookingMessage
from exceptions.handlers import MethodNotAllowedException

logger = logging.getLogger("bookingsystem")


def _plain_data(data):
    """Request data as a plain dict, flattening form-encoded QueryDicts."""
    return data.dict() if hasattr(data, "dict") else dict(data)


class BookingViewSet(ActionPermissionMixin, RoleFilterableQuerysetMixin, viewsets.ModelViewSet):
    """
    ViewSet for managing bookings.

    Anyone can book, guests included. Admins see every booking, vendors the
    bookings of their services and tourists their own. Status changes go
    through the update-status action, refunds through the refund action.
    """

    queryset = Booking.objects.select_related("service", "vendor", "tourist")
    serializer_class = BookingSerializer
    permission_classes = [IsAuthenticated]
    action_permission_classes = {
        "create": [AllowAny],
        "refund": [IsAdminUser],
    }
    vendor_field = "vendor"
    tourist_field = "tourist"
    filter_fields = ["status", "payment_status"]
    default_ordering = ["-created_at"]

    def create(self, request, *args, **kwargs):
        """
        Handles booking creation for tourists and guests.
        """
        booking = create_booking(_plain_data(request.data), user=request.user)
        return Response(
            {
                "message": "Booking created successfully! Please complete the payment.",
                "booking_id": booking.id,
                "total_amount": booking.total_amount,
                "currency": booking.currency,
                "booking_details": self.get_serializer(booking).data,
            },
            status=status.HTTP_201_CREATED,
        )

    def list(self, request, *args, **kwargs):
        """
        Lists the caller's bookings with status counts.
        """
        queryset = self.get_queryset()
        serializer = self.get_serializer(queryset, many=True)
        stats = BookingHelpers.get_booking_statistics(queryset)

        return Response({**stats, "bookings": serializer.data})

    def update(self, request, *args, **kwargs):
        raise MethodNotAllowedException(BookingMessage.UPDATE_NOT_ALLOWED)

    def partial_update(self, request, *args, **kwargs):
        raise MethodNotAllowedException(BookingMessage.UPDATE_NOT_ALLOWED)

    def destroy(self, request, *args, **kwargs):
        raise MethodNotAllowedException(BookingMessage.DELETE_NOT_ALLOWED)

    @action(detail=True, methods=["post"], url_path="update-status")
    def update_status(self, request, pk=None):
        """Change status and/or payment_status of a booking"""
        booking = update_booking_status(pk, _plain_data(request.data), user=request.user)
        return Response(self.get_serializer(booking).data)

    @action(detail=True, methods=["post"], url_path="refund")
    def refund(self, request, pk=None):
        """Refund a paid booking"""
        booking, entry = refund_booking(pk, request.user, reason=request.data.get("reason", ""))
        return Response(
            {
                "booking": self.get_serializer(booking).data,
                "transaction": TransactionSerializer(entry).data,
            }
        )
