from decimal import Decimal
from io import StringIO
from unittest import mock
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import DatabaseError, IntegrityError, transaction
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APITestCase
from rest_framework import status
from django.contrib.auth import get_user_model
from bookingsystem.models import Booking
from exceptions.handlers import InvalidInputException, NotFoundException, PermissionDeniedException
from listings.models import Service, ServiceCategory
from vendors.models import Vendor
from utils.payment_helpers import PaymentHelpers, WalletHelpers
from .models import Transaction, Wallet
from .services import reconcile_paid_bookings, request_withdrawal, set_transaction_status

User = get_user_model()

PASSWORD = "Kampala-Trails-2024"


def make_vendor(username, status="approved"):
    user = User.objects.create_user(username, f"{username}@example.com", PASSWORD, role="vendor")
    vendor = user.vendor_profile
    vendor.status = status
    vendor.save()
    return vendor


class LedgerFixturesMixin:
    """Creates an admin, two vendors with one service each and a tourist."""

    def setUp(self):
        self.admin = User.objects.create_superuser("root", "root@example.com", PASSWORD)
        self.vendor = make_vendor("rafting_co")
        self.other_vendor = make_vendor("birding_co")
        self.tourist = User.objects.create_user("traveller", "traveller@example.com", PASSWORD)
        category = ServiceCategory.objects.create(name="Activities", kind="activity")
        self.service = Service.objects.create(
            vendor=self.vendor, category=category, title="White water rafting",
            price=Decimal("100.00"), status="approved",
        )
        self.other_service = Service.objects.create(
            vendor=self.other_vendor, category=category, title="Shoebill walk",
            price=Decimal("40.00"), status="approved",
        )

    def make_booking(self, vendor=None, service=None, status="confirmed", payment_status="paid",
                     amount="100.00"):
        return Booking.objects.create(
            service=service or self.service,
            vendor=vendor or self.vendor,
            tourist=self.tourist,
            total_amount=Decimal(amount),
            status=status,
            payment_status=payment_status,
        )

    def make_entry(self, transaction_type, status, amount, booking=None, vendor=None):
        return Transaction.objects.create(
            transaction_type=transaction_type,
            status=status,
            amount=Decimal(amount),
            booking=booking,
            vendor=vendor or self.vendor,
        )


class EnsureCompletedPaymentTest(LedgerFixturesMixin, TestCase):
    """Test cases for the single completed payment per booking."""

    def test_creates_once(self):
        """Test that the second call returns the existing transaction."""
        booking = self.make_booking()
        first, created = PaymentHelpers.ensure_completed_payment(booking)
        second, created_again = PaymentHelpers.ensure_completed_payment(booking)

        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertEqual(first.pk, second.pk)
        booking.refresh_from_db()
        self.assertEqual(booking.payment_reference, first.reference)

    def test_constraint_rejects_second_completed_payment(self):
        """Test that the database refuses a duplicate completed payment."""
        booking = self.make_booking()
        self.make_entry("payment", "completed", "100.00", booking=booking)
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                self.make_entry("payment", "completed", "100.00", booking=booking)

    def test_constraint_allows_other_payment_states(self):
        """Test that failed or pending payments do not count against the constraint."""
        booking = self.make_booking()
        self.make_entry("payment", "completed", "100.00", booking=booking)
        self.make_entry("payment", "failed", "100.00", booking=booking)
        self.make_entry("payment", "pending", "100.00", booking=booking)
        self.assertEqual(Transaction.objects.filter(booking=booking).count(), 3)

    def test_concurrent_insert_counts_as_existing(self):
        """Test that losing the insert race returns the winner's transaction."""
        booking = self.make_booking()
        winner = self.make_entry("payment", "completed", "100.00", booking=booking)

        with mock.patch.object(PaymentHelpers, "get_completed_payment", side_effect=[None, winner]):
            entry, created = PaymentHelpers.ensure_completed_payment(booking)

        self.assertFalse(created)
        self.assertEqual(entry.pk, winner.pk)
        self.assertEqual(Transaction.objects.filter(booking=booking).count(), 1)


class ReconcilePaidBookingsTest(LedgerFixturesMixin, TestCase):
    """Test cases for the reconciliation sweep."""

    def test_sweep_backfills_without_crediting(self):
        """Test that missing payments are created once and wallets stay untouched."""
        first = self.make_booking()
        self.make_booking(vendor=self.other_vendor, service=self.other_service, amount="40.00")
        self.make_booking(status="pending", payment_status="pending")
        self.make_booking(status="cancelled", payment_status="paid")

        self.assertEqual(reconcile_paid_bookings(), 2)
        self.assertEqual(reconcile_paid_bookings(), 0)

        entry = Transaction.objects.get(booking=first)
        self.assertEqual(entry.payment_method, "reconciliation")
        self.assertEqual(entry.status, "completed")
        self.assertFalse(Wallet.objects.exists())

    def test_sweep_for_one_vendor(self):
        """Test that the vendor filter limits the sweep."""
        self.make_booking()
        self.make_booking(vendor=self.other_vendor, service=self.other_service, amount="40.00")

        self.assertEqual(reconcile_paid_bookings(vendor_id=self.other_vendor.id), 1)
        self.assertFalse(Transaction.objects.filter(vendor=self.vendor).exists())

    def test_failing_booking_is_skipped(self):
        """Test that one broken booking does not stop the sweep."""
        broken = self.make_booking()
        self.make_booking()
        real_ensure = PaymentHelpers.ensure_completed_payment

        def ensure(booking, **kwargs):
            if booking.pk == broken.pk:
                raise DatabaseError("disk I/O error")
            return real_ensure(booking, **kwargs)

        with mock.patch.object(PaymentHelpers, "ensure_completed_payment", side_effect=ensure):
            with self.assertLogs("payment", level="ERROR"):
                created = reconcile_paid_bookings()

        self.assertEqual(created, 1)
        self.assertFalse(Transaction.objects.filter(booking=broken).exists())

    def test_management_command(self):
        """Test the reconcile_payments command."""
        self.make_booking()
        out = StringIO()
        call_command("reconcile_payments", stdout=out)
        self.assertIn("Created 1 payment transaction(s) for all vendors", out.getvalue())

        out = StringIO()
        call_command("reconcile_payments", vendor=str(self.vendor.id), stdout=out)
        self.assertIn("No missing payment transactions", out.getvalue())

    def test_management_command_unknown_vendor(self):
        """Test that an unknown vendor id is a command error."""
        with self.assertRaises(CommandError):
            call_command("reconcile_payments", vendor="00000000-0000-0000-0000-000000000000")


class WalletHelpersTest(LedgerFixturesMixin, TestCase):
    """Test cases for wallet crediting and stats."""

    def test_credit_creates_and_increments(self):
        """Test that the first credit creates the wallet and later ones add up."""
        WalletHelpers.credit_wallet(self.vendor.id, Decimal("100.00"), "UGX")
        wallet = WalletHelpers.credit_wallet(self.vendor.id, Decimal("50.50"), "UGX")
        self.assertEqual(wallet.balance, Decimal("150.50"))
        self.assertEqual(Wallet.objects.filter(vendor=self.vendor).count(), 1)

    def test_credit_unknown_vendor(self):
        """Test that crediting a missing vendor is not found."""
        with self.assertRaises(NotFoundException):
            WalletHelpers.credit_wallet("00000000-0000-0000-0000-000000000000", Decimal("1.00"))

    def test_credit_in_other_currency_warns(self):
        """Test that a currency mismatch is logged and the amount still added."""
        WalletHelpers.credit_wallet(self.vendor.id, Decimal("10.00"), "UGX")
        with self.assertLogs("payment", level="WARNING") as logs:
            wallet = WalletHelpers.credit_wallet(self.vendor.id, Decimal("5.00"), "USD")
        self.assertTrue(any("held in UGX" in line for line in logs.output))
        self.assertEqual(wallet.balance, Decimal("15.00"))
        self.assertEqual(wallet.currency, "UGX")

    def test_credit_admin_wallet(self):
        """Test that the platform admin wallet is keyed by user."""
        wallet = WalletHelpers.credit_admin_wallet(Decimal("75.00"), "UGX")
        self.assertEqual(wallet.user, self.admin)
        self.assertIsNone(wallet.vendor)
        self.assertEqual(wallet.balance, Decimal("75.00"))

    def test_credit_admin_wallet_without_admin(self):
        """Test that a missing admin is a warning, not an error."""
        self.admin.delete()
        with self.assertLogs("payment", level="WARNING"):
            self.assertIsNone(WalletHelpers.credit_admin_wallet(Decimal("75.00")))
        self.assertFalse(Wallet.objects.exists())

    def test_stats(self):
        """Test earnings, withdrawals and balance derived from the ledger."""
        completed = self.make_booking(status="completed")
        upcoming = self.make_booking(amount="50.00")
        self.make_entry("payment", "completed", "100.00", booking=completed)
        self.make_entry("payment", "completed", "50.00", booking=upcoming)
        self.make_entry("payment", "failed", "999.00")
        self.make_entry("withdrawal", "completed", "10.00")
        self.make_entry("withdrawal", "pending", "30.00")
        self.make_entry("withdrawal", "approved", "20.00")
        self.make_entry("withdrawal", "rejected", "500.00")
        self.make_entry("payment", "completed", "400.00", vendor=self.other_vendor)
        WalletHelpers.credit_wallet(self.vendor.id, Decimal("150.00"), "UGX")

        stats = WalletHelpers.get_wallet_stats(self.vendor.id)

        self.assertEqual(stats["completed_earnings"], Decimal("100.00"))
        self.assertEqual(stats["pending_earnings"], Decimal("50.00"))
        self.assertEqual(stats["total_earned"], Decimal("100.00"))
        self.assertEqual(stats["total_withdrawn"], Decimal("10.00"))
        self.assertEqual(stats["pending_withdrawals"], Decimal("50.00"))
        self.assertEqual(stats["current_balance"], Decimal("90.00"))
        self.assertEqual(stats["cached_balance"], Decimal("150.00"))
        self.assertEqual(stats["currency"], "UGX")

    def test_stats_without_transactions(self):
        """Test that a new vendor has all-zero stats."""
        stats = WalletHelpers.get_wallet_stats(self.other_vendor.id)
        self.assertEqual(stats, WalletHelpers.empty_wallet_stats())

    def test_stats_on_database_error(self):
        """Test that a database error yields zeros and is logged."""
        self.make_entry("payment", "completed", "100.00", booking=self.make_booking(status="completed"))
        with mock.patch.object(Transaction.objects, "filter", side_effect=DatabaseError("boom")):
            with self.assertLogs("payment", level="ERROR"):
                stats = WalletHelpers.get_wallet_stats(self.vendor.id)
        self.assertEqual(stats["current_balance"], Decimal("0.00"))
        self.assertEqual(stats["total_earned"], Decimal("0.00"))


class WithdrawalServicesTest(LedgerFixturesMixin, TestCase):
    """Test cases for withdrawals and their status changes."""

    def setUp(self):
        super().setUp()
        self.make_entry("payment", "completed", "100.00", booking=self.make_booking(status="completed"))

    def test_request_withdrawal(self):
        """Test that a withdrawal is filed as pending and the wallet is untouched."""
        entry = request_withdrawal(self.vendor, "60", payment_method="mobile_money")
        self.assertEqual(entry.transaction_type, "withdrawal")
        self.assertEqual(entry.status, "pending")
        self.assertEqual(entry.amount, Decimal("60.00"))
        self.assertFalse(Wallet.objects.exists())
        self.assertEqual(WalletHelpers.get_wallet_stats(self.vendor.id)["current_balance"], Decimal("40.00"))

    def test_withdrawal_over_balance(self):
        """Test that pending withdrawals count against the balance."""
        request_withdrawal(self.vendor, "60")
        with self.assertRaises(InvalidInputException):
            request_withdrawal(self.vendor, "50")

    def test_withdrawal_must_be_positive(self):
        with self.assertRaises(InvalidInputException):
            request_withdrawal(self.vendor, "0")

    def test_withdrawal_rejects_non_finite_amount(self):
        """Test that NaN and infinite amounts are refused."""
        for amount in ("NaN", "Infinity", "-Infinity", "sNaN"):
            with self.subTest(amount=amount):
                with self.assertRaises(InvalidInputException):
                    request_withdrawal(self.vendor, amount)
        self.assertFalse(Transaction.objects.filter(transaction_type="withdrawal").exists())

    def test_withdrawal_locks_vendor_row(self):
        """Test that the vendor row is locked before the balance is read."""
        with mock.patch.object(
            Vendor.objects, "select_for_update", wraps=Vendor.objects.select_for_update
        ) as locked:
            request_withdrawal(self.vendor, "60")
        locked.assert_called_once_with()

    def test_rejected_withdrawal_leaves_no_entry(self):
        """Test that a withdrawal over the balance writes nothing."""
        with self.assertRaises(InvalidInputException):
            request_withdrawal(self.vendor, "100.01")
        self.assertFalse(Transaction.objects.filter(transaction_type="withdrawal").exists())

    def test_status_transitions(self):
        """Test the pending, approved, completed path."""
        entry = request_withdrawal(self.vendor, "60")
        self.assertEqual(set_transaction_status(entry.id, "approved", self.admin).status, "approved")
        done = set_transaction_status(entry.id, "completed", self.admin)
        self.assertEqual(done.status, "completed")
        self.assertEqual(done.metadata["completed_by"], "root")

        with self.assertRaises(InvalidInputException):
            set_transaction_status(entry.id, "pending", self.admin)

    def test_payment_status_cannot_change(self):
        """Test that only withdrawals move through admin status changes."""
        payment = Transaction.objects.get(transaction_type="payment")
        with self.assertRaises(InvalidInputException):
            set_transaction_status(payment.id, "failed", self.admin)

    def test_status_change_requires_admin(self):
        entry = request_withdrawal(self.vendor, "60")
        with self.assertRaises(PermissionDeniedException):
            set_transaction_status(entry.id, "approved", self.vendor.user)

    def test_status_change_missing_transaction(self):
        with self.assertRaises(NotFoundException):
            set_transaction_status("00000000-0000-0000-0000-000000000000", "approved", self.admin)


class PaymentAPITest(LedgerFixturesMixin, APITestCase):
    """Test cases for the transaction and wallet endpoints."""

    def setUp(self):
        super().setUp()
        self.make_entry("payment", "completed", "100.00", booking=self.make_booking(status="completed"))
        self.make_entry("payment", "completed", "40.00", vendor=self.other_vendor)

    def test_vendor_sees_own_transactions(self):
        """Test that vendors only list their own ledger entries."""
        self.client.force_authenticate(self.vendor.user)
        response = self.client.get(reverse("transaction-list"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]["vendor"]["id"], str(self.vendor.id))

    def test_admin_sees_all_transactions(self):
        self.client.force_authenticate(self.admin)
        response = self.client.get(reverse("transaction-list"), {"transaction_type": "payment"})
        self.assertEqual(len(response.data), 2)

    def test_tourist_has_no_ledger_access(self):
        self.client.force_authenticate(self.tourist)
        response = self.client.get(reverse("transaction-list"))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_withdraw(self):
        """Test the withdraw action against the computed balance."""
        self.client.force_authenticate(self.vendor.user)
        url = reverse("transaction-withdraw")

        too_much = self.client.post(url, {"amount": "150.00"}, format="json")
        self.assertEqual(too_much.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(too_much.data["success"])

        zero = self.client.post(url, {"amount": "0"}, format="json")
        self.assertEqual(zero.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(url, {"amount": "80.00", "payment_method": "bank"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["status"], "pending")
        self.assertEqual(response.data["transaction_type"], "withdrawal")

    def test_admin_cannot_withdraw(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post(reverse("transaction-withdraw"), {"amount": "1"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_set_status(self):
        """Test admin approval of a withdrawal and the vendor being refused."""
        entry = request_withdrawal(self.vendor, "20")
        url = reverse("transaction-set-status", args=[entry.id])

        self.client.force_authenticate(self.vendor.user)
        self.assertEqual(
            self.client.post(url, {"status": "approved"}, format="json").status_code,
            status.HTTP_403_FORBIDDEN,
        )

        self.client.force_authenticate(self.admin)
        response = self.client.post(url, {"status": "approved"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "approved")

    def test_reconcile(self):
        """Test the reconcile action for admins."""
        self.make_booking()
        self.make_booking(vendor=self.other_vendor, service=self.other_service, amount="40.00")
        self.client.force_authenticate(self.admin)

        response = self.client.post(
            reverse("transaction-reconcile"), {"vendor_id": str(self.vendor.id)}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["created"], 1)

        response = self.client.post(reverse("transaction-reconcile"), {}, format="json")
        self.assertEqual(response.data["created"], 1)

    def test_reconcile_requires_admin(self):
        self.client.force_authenticate(self.vendor.user)
        response = self.client.post(reverse("transaction-reconcile"), {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_wallets_are_scoped(self):
        """Test that vendors only see their own wallet."""
        WalletHelpers.credit_wallet(self.vendor.id, Decimal("10.00"))
        WalletHelpers.credit_wallet(self.other_vendor.id, Decimal("20.00"))
        WalletHelpers.credit_admin_wallet(Decimal("30.00"))

        self.client.force_authenticate(self.vendor.user)
        response = self.client.get(reverse("wallet-list"))
        self.assertEqual(len(response.data), 1)
        self.assertEqual(Decimal(response.data[0]["balance"]), Decimal("10.00"))

        self.client.force_authenticate(self.admin)
        self.assertEqual(len(self.client.get(reverse("wallet-list")).data), 3)
