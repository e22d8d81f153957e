from decimal import Decimal
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APITestCase
from rest_framework import status
from django.contrib.auth import get_user_model
from bookingsystem.models import Booking
from listings.models import Service, ServiceCategory
from payment.models import Transaction
from exceptions.handlers import InvalidInputException, PermissionDeniedException
from .models import Vendor
from .services import set_vendor_status
from utils.booking_helpers import BookingHelpers

User = get_user_model()

PASSWORD = "Kampala-Trails-2024"


def make_vendor(username, status="approved"):
    user = User.objects.create_user(username, f"{username}@example.com", PASSWORD, role="vendor")
    vendor = user.vendor_profile
    vendor.business_name = f"{username.title()} Ltd"
    vendor.status = status
    vendor.save()
    return vendor


class VendorModerationTest(TestCase):
    """Test cases for admin moderation of vendors."""

    def setUp(self):
        self.admin = User.objects.create_superuser("root", "root@example.com", PASSWORD)
        self.vendor = make_vendor("gorilla_treks", status="pending")

    def test_approve_vendor(self):
        """Test that approval stamps approved_at and approved_by."""
        vendor = set_vendor_status(self.vendor.id, "approved", self.admin)
        self.assertEqual(vendor.status, "approved")
        self.assertEqual(vendor.approved_by, self.admin)
        self.assertIsNotNone(vendor.approved_at)

    def test_suspend_clears_approval(self):
        """Test that suspending a vendor clears the approval stamp."""
        set_vendor_status(self.vendor.id, "approved", self.admin)
        vendor = set_vendor_status(self.vendor.id, "suspended", self.admin)
        self.assertEqual(vendor.status, "suspended")
        self.assertIsNone(vendor.approved_at)
        self.assertIsNone(vendor.approved_by)

    def test_non_admin_cannot_moderate(self):
        """Test that a vendor cannot approve itself."""
        with self.assertRaises(PermissionDeniedException):
            set_vendor_status(self.vendor.id, "approved", self.vendor.user)
        self.vendor.refresh_from_db()
        self.assertEqual(self.vendor.status, "pending")

    def test_invalid_status(self):
        """Test that only moderation statuses are accepted."""
        with self.assertRaises(InvalidInputException):
            set_vendor_status(self.vendor.id, "pending", self.admin)


class VendorDashboardTest(TestCase):
    """Test cases for the vendor dashboard summary."""

    def setUp(self):
        self.vendor = make_vendor("gorilla_treks")
        category = ServiceCategory.objects.create(name="Tours", kind="tour")
        self.service = Service.objects.create(
            vendor=self.vendor, category=category, title="Bwindi trek",
            price=Decimal("100.00"), status="approved",
        )

    def _booking(self, status, payment_status, amount):
        return Booking.objects.create(
            service=self.service, vendor=self.vendor, guest_name="Guest",
            guest_email="guest@example.com", guest_phone="+256700000002",
            total_amount=Decimal(amount), status=status, payment_status=payment_status,
        )

    def test_dashboard_counts_and_revenue(self):
        """Test booking counts by status and revenue from paid bookings."""
        self._booking("pending", "pending", "100")
        self._booking("confirmed", "paid", "200")
        self._booking("completed", "paid", "300")
        self._booking("cancelled", "refunded", "400")

        dashboard = BookingHelpers.get_vendor_dashboard(self.vendor)

        self.assertEqual(dashboard["total_bookings"], 4)
        self.assertEqual(dashboard["pending_bookings"], 1)
        self.assertEqual(dashboard["confirmed_bookings"], 1)
        self.assertEqual(dashboard["completed_bookings"], 1)
        self.assertEqual(dashboard["cancelled_bookings"], 1)
        self.assertEqual(dashboard["total_services"], 1)
        self.assertEqual(dashboard["approved_services"], 1)
        self.assertEqual(dashboard["total_revenue"], Decimal("500.00"))

    def test_dashboard_without_bookings(self):
        """Test that an empty vendor gets zero revenue rather than None."""
        other = make_vendor("empty_vendor")
        dashboard = BookingHelpers.get_vendor_dashboard(other)
        self.assertEqual(dashboard["total_bookings"], 0)
        self.assertEqual(dashboard["total_revenue"], Decimal("0.00"))


class VendorAPITest(APITestCase):
    """Test cases for the vendor endpoints."""

    def setUp(self):
        self.admin = User.objects.create_superuser("root", "root@example.com", PASSWORD)
        self.vendor = make_vendor("gorilla_treks", status="pending")
        self.other_vendor = make_vendor("lake_cruises")
        self.tourist = User.objects.create_user("traveller", "traveller@example.com", PASSWORD)

    def test_admin_lists_all_vendors(self):
        """Test that admins see every vendor."""
        self.client.force_authenticate(self.admin)
        response = self.client.get(reverse("vendor-list"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

    def test_vendor_lists_only_itself(self):
        """Test that a vendor only sees its own profile."""
        self.client.force_authenticate(self.vendor.user)
        response = self.client.get(reverse("vendor-list"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row["id"] for row in response.data], [str(self.vendor.id)])

    def test_tourist_cannot_list_vendors(self):
        """Test that tourists have no access to vendor profiles."""
        self.client.force_authenticate(self.tourist)
        response = self.client.get(reverse("vendor-list"))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_sets_status(self):
        """Test the set-status action."""
        self.client.force_authenticate(self.admin)
        response = self.client.post(
            reverse("vendor-set-status", args=[self.vendor.id]), {"status": "approved"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "approved")

    def test_vendor_cannot_set_status(self):
        """Test that vendors cannot moderate themselves."""
        self.client.force_authenticate(self.vendor.user)
        response = self.client.post(
            reverse("vendor-set-status", args=[self.vendor.id]), {"status": "approved"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_vendor_me(self):
        """Test that a vendor can read its own profile."""
        self.client.force_authenticate(self.vendor.user)
        response = self.client.get(reverse("vendor-me"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["business_name"], "Gorilla_Treks Ltd")

    def test_vendor_updates_own_profile_but_not_status(self):
        """Test that status stays read-only on profile updates."""
        self.client.force_authenticate(self.vendor.user)
        response = self.client.patch(
            reverse("vendor-detail", args=[self.vendor.id]),
            {"business_phone": "+256700000003", "status": "approved"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.vendor.refresh_from_db()
        self.assertEqual(self.vendor.business_phone, "+256700000003")
        self.assertEqual(self.vendor.status, "pending")

    def test_vendor_cannot_be_deleted(self):
        """Test that vendor profiles are not deleted through the API."""
        self.client.force_authenticate(self.admin)
        response = self.client.delete(reverse("vendor-detail", args=[self.vendor.id]))
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)
        self.assertTrue(Vendor.objects.filter(pk=self.vendor.id).exists())

    def test_wallet_stats_endpoint(self):
        """Test that a vendor reads its own wallet stats."""
        Transaction.objects.create(
            transaction_type="withdrawal", status="pending", amount=Decimal("25.00"),
            vendor=self.vendor,
        )
        self.client.force_authenticate(self.vendor.user)
        response = self.client.get(reverse("vendor-wallet-stats", args=[self.vendor.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(str(response.data["pending_withdrawals"])), Decimal("25.00"))
        self.assertEqual(Decimal(str(response.data["current_balance"])), Decimal("-25.00"))

    def test_vendor_cannot_read_other_wallet_stats(self):
        """Test that another vendor's stats are not visible."""
        self.client.force_authenticate(self.vendor.user)
        response = self.client.get(reverse("vendor-wallet-stats", args=[self.other_vendor.id]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_dashboard_endpoint(self):
        """Test the dashboard action for vendors."""
        self.client.force_authenticate(self.vendor.user)
        response = self.client.get(reverse("vendor-dashboard"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["total_bookings"], 0)
