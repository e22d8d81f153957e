import logging
from datetime import datetime, time
from decimal import Decimal
from django.db import DatabaseError
from django.db.models import Count, Q, Sum
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from utils.constants import BookingMessage
from exceptions.handlers import InvalidInputException

logger = logging.getLogger("bookingsystem")


class BookingHelpers:
    """
    Reusable helper methods for booking operations.
    Centralizes booking-related utilities to reduce redundancy.
    """

    @staticmethod
    def calculate_total(price, guests):
        """
        Calculate the amount of a booking.

        Args:
            price (Decimal): Service price per guest
            guests (int): Number of guests

        Returns:
            Decimal: price x guests
        """
        return Decimal(str(price)) * guests

    @staticmethod
    def parse_service_date(value):
        """
        Parse an ISO 8601 date or datetime into an aware datetime.

        Args:
            value (str|None): Raw service_date from the request

        Returns:
            datetime|None: Parsed value, None when not given

        Raises:
            InvalidInputException: If the value cannot be parsed
        """
        if value in (None, ""):
            return None
        if isinstance(value, datetime):
            parsed = value
        else:
            try:
                parsed = parse_datetime(str(value))
                if parsed is None:
                    day = parse_date(str(value))
                    parsed = datetime.combine(day, time.min) if day else None
            except ValueError:
                parsed = None
        if parsed is None:
            raise InvalidInputException(BookingMessage.SERVICE_DATE_INVALID)
        if timezone.is_naive(parsed):
            parsed = timezone.make_aware(parsed)
        return parsed

    @staticmethod
    def get_booking_statistics(queryset):
        """
        Get booking statistics with a single aggregation query.

        Args:
            queryset: Booking queryset

        Returns:
            dict: Booking counts by status
        """
        stats = queryset.aggregate(
            total=Count("id"),
            pending=Count("id", filter=Q(status="pending")),
            confirmed=Count("id", filter=Q(status="confirmed")),
            cancelled=Count("id", filter=Q(status="cancelled")),
            completed=Count("id", filter=Q(status="completed")),
        )

        return {
            "total_bookings": stats["total"],
            "pending_bookings": stats["pending"],
            "confirmed_bookings": stats["confirmed"],
            "cancelled_bookings": stats["cancelled"],
            "completed_bookings": stats["completed"],
        }

    @staticmethod
    def empty_dashboard():
        return {
            "total_bookings": 0,
            "pending_bookings": 0,
            "confirmed_bookings": 0,
            "cancelled_bookings": 0,
            "completed_bookings": 0,
            "total_services": 0,
            "approved_services": 0,
            "total_revenue": Decimal("0.00"),
        }

    @staticmethod
    def get_vendor_dashboard(vendor):
        """
        Summary numbers for a vendor's dashboard.

        Revenue counts bookings with payment_status paid. Database errors are
        logged and answered with zeros so the dashboard still renders.

        Args:
            vendor: Vendor instance

        Returns:
            dict: Booking counts by status, service counts and revenue
        """
        from bookingsystem.models import Booking
        from listings.models import Service

        try:
            bookings = Booking.objects.filter(vendor=vendor)
            summary = BookingHelpers.get_booking_statistics(bookings)
            services = Service.objects.filter(vendor=vendor).aggregate(
                total=Count("id"),
                approved=Count("id", filter=Q(status="approved")),
            )
            revenue = bookings.filter(payment_status="paid").aggregate(total=Sum("total_amount"))["total"]
        except DatabaseError:
            logger.exception(f"Failed to build dashboard for vendor {vendor.id}")
            return BookingHelpers.empty_dashboard()

        summary.update({
            "total_services": services["total"],
            "approved_services": services["approved"],
            "total_revenue": revenue or Decimal("0.00"),
        })
        return summary
