from decimal import Decimal
from unittest import mock
from django.db import ProgrammingError
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APITestCase
from rest_framework import status
from django.contrib.auth import get_user_model
from exceptions.handlers import (
    InvalidInputException,
    NotFoundException,
    PermissionDeniedException,
)
from listings.models import Service, ServiceCategory
from payment.models import Transaction, Wallet
from utils.constants import BookingMessage
from .models import Booking
from .services import create_booking, refund_booking, update_booking_status

User = get_user_model()

PASSWORD = "Kampala-Trails-2024"


class BookingFixturesMixin:
    """Creates an admin, an approved vendor with one service and a tourist."""

    def setUp(self):
        self.admin = User.objects.create_superuser("root", "root@example.com", PASSWORD)
        vendor_user = User.objects.create_user("v1", "v1@example.com", PASSWORD, role="vendor")
        self.vendor = vendor_user.vendor_profile
        self.vendor.status = "approved"
        self.vendor.save()
        other_user = User.objects.create_user("v2", "v2@example.com", PASSWORD, role="vendor")
        self.other_vendor = other_user.vendor_profile
        self.tourist = User.objects.create_user("traveller", "traveller@example.com", PASSWORD)

        category = ServiceCategory.objects.create(name="Tours", kind="tour")
        self.service = Service.objects.create(
            vendor=self.vendor,
            category=category,
            title="Murchison Falls day trip",
            price=Decimal("25000.00"),
            currency="UGX",
            status="approved",
        )

    def make_booking(self, **overrides):
        fields = {
            "service": self.service,
            "vendor": self.vendor,
            "tourist": self.tourist,
            "guests": 2,
            "total_amount": Decimal("50000.00"),
            "currency": "UGX",
        }
        fields.update(overrides)
        return Booking.objects.create(**fields)


class CreateBookingTest(BookingFixturesMixin, TestCase):
    """Test cases for booking creation."""

    def test_guest_booking_missing_email_touches_no_database(self):
        """Test that a guest booking without email is rejected before any query."""
        data = {
            "service_id": str(self.service.id),
            "guests": 1,
            "guest_name": "Jane Guest",
            "guest_phone": "+256700000004",
        }
        with self.assertNumQueries(0):
            with self.assertRaises(InvalidInputException) as ctx:
                create_booking(data)
        self.assertEqual(str(ctx.exception.detail), BookingMessage.GUEST_DETAILS_REQUIRED)
        self.assertEqual(Booking.objects.count(), 0)

    def test_guest_booking_blank_field_rejected(self):
        """Test that whitespace does not count as guest contact data."""
        with self.assertRaises(InvalidInputException):
            create_booking({
                "service_id": str(self.service.id),
                "guest_name": "Jane Guest",
                "guest_email": "jane@example.com",
                "guest_phone": "   ",
            })
        self.assertEqual(Booking.objects.count(), 0)

    def test_guest_booking(self):
        """Test that a complete guest booking is stored without a tourist."""
        booking = create_booking({
            "service_id": str(self.service.id),
            "guests": 3,
            "guest_name": "Jane Guest",
            "guest_email": "jane@example.com",
            "guest_phone": "+256700000004",
            "service_date": "2026-12-01",
        })
        self.assertIsNone(booking.tourist)
        self.assertTrue(booking.is_guest_booking)
        self.assertEqual(booking.total_amount, Decimal("75000.00"))
        self.assertEqual(booking.currency, "UGX")
        self.assertEqual(booking.vendor, self.vendor)
        self.assertEqual((booking.status, booking.payment_status), ("pending", "pending"))
        self.assertEqual(timezone.localtime(booking.service_date).date().isoformat(), "2026-12-01")

    def test_tourist_booking_needs_no_guest_fields(self):
        """Test that an authenticated tourist books without guest details."""
        booking = create_booking({"service_id": str(self.service.id), "guests": 2}, user=self.tourist)
        self.assertEqual(booking.tourist, self.tourist)
        self.assertEqual(booking.total_amount, Decimal("50000.00"))

    def test_vendor_cannot_book(self):
        """Test that vendor accounts cannot create bookings."""
        with self.assertRaises(PermissionDeniedException):
            create_booking({"service_id": str(self.service.id)}, user=self.vendor.user)

    def test_unapproved_service_cannot_be_booked(self):
        """Test that only approved services are bookable."""
        self.service.status = "pending"
        self.service.save()
        with self.assertRaises(InvalidInputException):
            create_booking({"service_id": str(self.service.id)}, user=self.tourist)

    def test_invalid_guest_count(self):
        """Test that zero guests is rejected."""
        with self.assertRaises(InvalidInputException):
            create_booking({"service_id": str(self.service.id), "guests": 0}, user=self.tourist)


class UpdateBookingStatusTest(BookingFixturesMixin, TestCase):
    """Test cases for booking status changes and payment reconciliation."""

    PAID = {"status": "confirmed", "payment_status": "paid"}

    def test_end_to_end_payment_and_wallet_credit(self):
        """Test that confirming and paying records one payment and credits the wallet."""
        booking = self.make_booking()

        updated = update_booking_status(booking.id, self.PAID, user=self.admin)

        self.assertEqual((updated.status, updated.payment_status), ("confirmed", "paid"))
        payments = Transaction.objects.filter(vendor=self.vendor)
        self.assertEqual(payments.count(), 1)
        payment = payments.get()
        self.assertEqual(payment.transaction_type, "payment")
        self.assertEqual(payment.status, "completed")
        self.assertEqual(payment.booking_id, booking.id)
        self.assertEqual(payment.amount, Decimal("50000.00"))
        self.assertEqual(payment.currency, "UGX")
        self.assertTrue(payment.reference.startswith(f"PMT_{str(booking.id)[:8]}_"))
        self.assertEqual(updated.payment_reference, payment.reference)

        self.assertEqual(Wallet.objects.get(vendor=self.vendor).balance, Decimal("50000.00"))
        self.assertEqual(Wallet.objects.get(user=self.admin).balance, Decimal("50000.00"))

    def test_repeated_updates_create_one_payment(self):
        """Test that repeated updates never duplicate the payment or the credit."""
        booking = self.make_booking()

        for _ in range(3):
            update_booking_status(booking.id, self.PAID, user=self.admin)
        update_booking_status(booking.id, {"payment_status": "paid"}, user=self.vendor.user)

        self.assertEqual(
            Transaction.objects.filter(
                booking=booking, transaction_type="payment", status="completed"
            ).count(),
            1,
        )
        self.assertEqual(Wallet.objects.get(vendor=self.vendor).balance, Decimal("50000.00"))

    def test_check_runs_without_transition(self):
        """Test that an already confirmed and paid booking gets its payment on the next update."""
        booking = self.make_booking(status="confirmed", payment_status="paid")
        update_booking_status(booking.id, {"status": "confirmed"}, user=self.vendor.user)
        self.assertTrue(
            Transaction.objects.filter(booking=booking, transaction_type="payment").exists()
        )

    def test_pending_payment_records_nothing(self):
        """Test that a confirmation without payment writes no transaction."""
        booking = self.make_booking()
        update_booking_status(booking.id, {"status": "confirmed"}, user=self.admin)
        self.assertFalse(Transaction.objects.exists())
        self.assertFalse(Wallet.objects.exists())

    def test_unknown_field_rejected_before_write(self):
        """Test that only status and payment_status are accepted."""
        booking = self.make_booking()
        with self.assertRaises(InvalidInputException):
            update_booking_status(booking.id, {"status": "confirmed", "total_amount": 1}, user=self.admin)
        booking.refresh_from_db()
        self.assertEqual(booking.status, "pending")

    def test_invalid_value_rejected(self):
        """Test that values outside the choices are rejected."""
        booking = self.make_booking()
        with self.assertRaises(InvalidInputException):
            update_booking_status(booking.id, {"status": "teleported"}, user=self.admin)

    def test_missing_booking(self):
        """Test that a missing booking is reported as not found."""
        with self.assertRaises(NotFoundException):
            update_booking_status("00000000-0000-0000-0000-000000000000", {"status": "cancelled"})

    def test_tourist_may_only_cancel(self):
        """Test that tourists can cancel but not mark their booking paid."""
        booking = self.make_booking()
        with self.assertRaises(PermissionDeniedException):
            update_booking_status(booking.id, self.PAID, user=self.tourist)

        updated = update_booking_status(booking.id, {"status": "cancelled"}, user=self.tourist)
        self.assertEqual(updated.status, "cancelled")

    def test_other_vendor_forbidden(self):
        """Test that a vendor cannot update another vendor's booking."""
        booking = self.make_booking()
        with self.assertRaises(PermissionDeniedException):
            update_booking_status(booking.id, {"status": "confirmed"}, user=self.other_vendor.user)

    def test_missing_ledger_tables_degrade_to_warning(self):
        """Test that the booking update survives a ledger that is not migrated yet."""
        booking = self.make_booking()
        missing = ProgrammingError('relation "transactions" does not exist')

        with mock.patch(
            "utils.payment_helpers.PaymentHelpers.get_completed_payment", side_effect=missing
        ):
            with self.assertLogs("payment", level="WARNING"):
                updated = update_booking_status(booking.id, self.PAID, user=self.admin)

        self.assertEqual((updated.status, updated.payment_status), ("confirmed", "paid"))
        self.assertFalse(Transaction.objects.exists())
        self.assertFalse(Wallet.objects.exists())

    def test_other_database_errors_propagate(self):
        """Test that unrelated database errors roll the update back."""
        booking = self.make_booking()

        with mock.patch(
            "utils.payment_helpers.PaymentHelpers.get_completed_payment",
            side_effect=ProgrammingError("syntax error at or near"),
        ):
            with self.assertRaises(ProgrammingError):
                update_booking_status(booking.id, self.PAID, user=self.admin)

        booking.refresh_from_db()
        self.assertEqual((booking.status, booking.payment_status), ("pending", "pending"))


class RefundBookingTest(BookingFixturesMixin, TestCase):
    """Test cases for admin refunds."""

    def test_refund_paid_booking(self):
        """Test that a refund writes a completed refund and leaves wallets alone."""
        booking = self.make_booking()
        update_booking_status(booking.id, {"status": "confirmed", "payment_status": "paid"}, user=self.admin)

        refunded, entry = refund_booking(booking.id, self.admin, reason="Weather")

        self.assertEqual(refunded.payment_status, "refunded")
        self.assertEqual(entry.transaction_type, "refund")
        self.assertEqual(entry.status, "completed")
        self.assertEqual(entry.amount, Decimal("50000.00"))
        self.assertTrue(entry.reference.startswith("RFD_"))
        self.assertEqual(Wallet.objects.get(vendor=self.vendor).balance, Decimal("50000.00"))

    def test_refund_requires_paid_booking(self):
        """Test that unpaid bookings cannot be refunded."""
        booking = self.make_booking()
        with self.assertRaises(InvalidInputException):
            refund_booking(booking.id, self.admin)

    def test_refund_requires_admin(self):
        """Test that vendors cannot refund."""
        booking = self.make_booking(payment_status="paid")
        with self.assertRaises(PermissionDeniedException):
            refund_booking(booking.id, self.vendor.user)


class BookingAPITest(BookingFixturesMixin, APITestCase):
    """Test cases for the booking endpoints."""

    def test_anonymous_guest_booking(self):
        """Test that guests can book without an account."""
        response = self.client.post(
            reverse("booking-list"),
            {
                "service_id": str(self.service.id),
                "guests": 2,
                "guest_name": "Jane Guest",
                "guest_email": "jane@example.com",
                "guest_phone": "+256700000004",
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data["booking_details"]["tourist"])
        self.assertEqual(response.data["booking_details"]["service"]["id"], str(self.service.id))

    def test_anonymous_guest_booking_missing_email(self):
        """Test that the API rejects incomplete guest bookings."""
        response = self.client.post(
            reverse("booking-list"),
            {"service_id": str(self.service.id), "guest_name": "Jane", "guest_phone": "+256700000004"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data["success"])
        self.assertFalse(Booking.objects.exists())

    def test_list_is_scoped_and_counted(self):
        """Test that tourists see their own bookings with status counts."""
        self.make_booking()
        self.make_booking(status="confirmed")
        self.make_booking(tourist=None, guest_name="G", guest_email="g@example.com", guest_phone="1")

        self.client.force_authenticate(self.tourist)
        response = self.client.get(reverse("booking-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["total_bookings"], 2)
        self.assertEqual(response.data["pending_bookings"], 1)
        self.assertEqual(response.data["confirmed_bookings"], 1)
        self.assertEqual(len(response.data["bookings"]), 2)

    def test_vendor_lists_own_bookings(self):
        """Test that vendors only see bookings of their services."""
        self.make_booking()
        self.client.force_authenticate(self.other_vendor.user)
        response = self.client.get(reverse("booking-list"))
        self.assertEqual(response.data["total_bookings"], 0)

    def test_update_status_action(self):
        """Test the update-status action with nested relations in the response."""
        booking = self.make_booking()
        self.client.force_authenticate(self.vendor.user)
        response = self.client.post(
            reverse("booking-update-status", args=[booking.id]),
            {"status": "confirmed", "payment_status": "paid"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "confirmed")
        self.assertEqual(response.data["vendor"]["id"], str(self.vendor.id))
        self.assertEqual(response.data["tourist"]["username"], "traveller")
        self.assertEqual(Transaction.objects.filter(booking=booking).count(), 1)

    def test_update_status_forbidden_for_other_vendor(self):
        """Test that foreign vendors get a 403."""
        booking = self.make_booking()
        self.client.force_authenticate(self.other_vendor.user)
        response = self.client.post(
            reverse("booking-update-status", args=[booking.id]), {"status": "confirmed"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_bookings_cannot_be_deleted(self):
        """Test that bookings are never deleted through the API."""
        booking = self.make_booking()
        self.client.force_authenticate(self.admin)
        response = self.client.delete(reverse("booking-detail", args=[booking.id]))
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)
        self.assertTrue(Booking.objects.filter(pk=booking.id).exists())

    def test_refund_action_admin_only(self):
        """Test that only admins reach the refund action."""
        booking = self.make_booking(status="confirmed", payment_status="paid")
        self.client.force_authenticate(self.vendor.user)
        response = self.client.post(reverse("booking-refund", args=[booking.id]), {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        response = self.client.post(reverse("booking-refund", args=[booking.id]), {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["booking"]["payment_status"], "refunded")
        self.assertEqual(response.data["transaction"]["transaction_type"], "refund")
