import time
import logging
from decimal import Decimal
from django.contrib.auth import get_user_model
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F
from django.utils import timezone
from utils.constants import DEFAULT_CURRENCY, VendorMessage
from exceptions.handlers import NotFoundException

logger = logging.getLogger("payment")

ZERO = Decimal("0.00")


class PaymentHelpers:
    """
    Reusable helper methods for ledger operations.
    Centralizes transaction writes so every path records payments the same way.
    """

    @staticmethod
    def generate_payment_reference(booking_id, prefix="PMT"):
        """
        Builds the reference of a booking payment or refund.

        Args:
            booking_id: Booking primary key
            prefix (str): PMT for payments, RFD for refunds

        Returns:
            str: <prefix>_<first 8 chars of booking id>_<epoch millis>
        """
        return f"{prefix}_{str(booking_id)[:8]}_{int(time.time() * 1000)}"

    @staticmethod
    def get_completed_payment(booking_id):
        """
        Returns the completed payment transaction of a booking, or None.
        """
        from payment.models import Transaction

        return (
            Transaction.objects.filter(
                booking_id=booking_id, transaction_type="payment", status="completed"
            )
            .order_by("created_at")
            .first()
        )

    @staticmethod
    def create_transaction(transaction_type, vendor_id, amount, currency=DEFAULT_CURRENCY,
                           status="pending", **extra_fields):
        """
        Inserts a ledger entry.

        Args:
            transaction_type (str): payment, withdrawal or refund
            vendor_id: Owning vendor
            amount (Decimal): Positive amount
            currency (str): ISO currency code
            status (str): Initial status
            **extra_fields: booking, tourist, reference, payment_method,
                description, metadata

        Returns:
            Transaction: Created transaction
        """
        from payment.models import Transaction

        entry = Transaction.objects.create(
            transaction_type=transaction_type,
            vendor_id=vendor_id,
            amount=amount,
            currency=currency,
            status=status,
            **extra_fields,
        )
        logger.info(
            f"Transaction {entry.id} created: type={transaction_type}, status={status}, "
            f"amount={amount} {currency}, vendor={vendor_id}, reference={entry.reference}"
        )
        return entry

    @staticmethod
    def ensure_completed_payment(booking, payment_method="booking", description=""):
        """
        Makes sure a booking has exactly one completed payment transaction.

        Checks for an existing one first. The insert runs in a savepoint, so
        a concurrent writer that wins the unique constraint turns our insert
        into an IntegrityError, which counts as "already exists".

        Args:
            booking: Booking instance (vendor, tourist, amount and currency are copied)
            payment_method (str): Recorded payment method
            description (str): Optional ledger description

        Returns:
            tuple: (Transaction, created)
        """
        existing = PaymentHelpers.get_completed_payment(booking.id)
        if existing is not None:
            return existing, False

        reference = PaymentHelpers.generate_payment_reference(booking.id)
        try:
            with transaction.atomic():
                entry = PaymentHelpers.create_transaction(
                    "payment",
                    booking.vendor_id,
                    booking.total_amount,
                    currency=booking.currency,
                    status="completed",
                    booking=booking,
                    tourist_id=booking.tourist_id,
                    reference=reference,
                    payment_method=payment_method,
                    description=description or f"Payment for booking {booking.id}",
                )
        except IntegrityError:
            logger.info(f"Completed payment for booking {booking.id} was recorded concurrently")
            return PaymentHelpers.get_completed_payment(booking.id), False

        if not booking.payment_reference:
            type(booking).objects.filter(pk=booking.pk, payment_reference="").update(
                payment_reference=reference
            )
            booking.payment_reference = reference
        return entry, True


class WalletHelpers:
    """
    Reusable helper methods for wallets.

    The wallet row holds a cached balance that only the crediting methods
    change. get_wallet_stats derives a second balance from the ledger, and
    both are reported.
    """

    @staticmethod
    def _credit(wallet_filter, amount, currency, owner_label):
        from payment.models import Wallet

        wallet, created = Wallet.objects.get_or_create(
            **wallet_filter, defaults={"balance": ZERO, "currency": currency}
        )
        if created:
            logger.info(f"Wallet created for {owner_label} in {currency}")
        elif wallet.currency != currency:
            # no conversion, the amount is added as is
            logger.warning(
                f"Crediting {amount} {currency} to {owner_label} wallet held in {wallet.currency}"
            )

        Wallet.objects.filter(pk=wallet.pk).update(
            balance=F("balance") + Decimal(str(amount)),
            updated_at=timezone.now(),
        )
        wallet.refresh_from_db()
        logger.info(f"Credited {amount} {currency} to {owner_label}, balance now {wallet.balance}")
        return wallet

    @staticmethod
    def credit_wallet(vendor_id, amount, currency=DEFAULT_CURRENCY):
        """
        Adds amount to a vendor's cached wallet balance, creating the wallet if needed.

        Args:
            vendor_id: Vendor primary key
            amount (Decimal): Amount to add
            currency (str): Currency of the amount

        Returns:
            Wallet: The credited wallet

        Raises:
            NotFoundException: If the vendor does not exist
        """
        from vendors.models import Vendor

        if not Vendor.objects.filter(pk=vendor_id).exists():
            raise NotFoundException(VendorMessage.VENDOR_NOT_FOUND)
        return WalletHelpers._credit({"vendor_id": vendor_id}, amount, currency, f"vendor {vendor_id}")

    @staticmethod
    def credit_admin_wallet(amount, currency=DEFAULT_CURRENCY):
        """
        Adds amount to the platform admin's wallet.
        Logs a warning and returns None when no admin account exists.
        """
        admin = get_user_model().objects.get_platform_admin()
        if admin is None:
            logger.warning(f"No admin account found, admin wallet not credited with {amount} {currency}")
            return None
        return WalletHelpers._credit({"user": admin}, amount, currency, f"admin {admin.username}")

    @staticmethod
    def empty_wallet_stats(currency=DEFAULT_CURRENCY):
        return {
            "completed_earnings": ZERO,
            "pending_earnings": ZERO,
            "total_earned": ZERO,
            "total_withdrawn": ZERO,
            "pending_withdrawals": ZERO,
            "current_balance": ZERO,
            "cached_balance": ZERO,
            "currency": currency,
        }

    @staticmethod
    def get_wallet_stats(vendor_id):
        """
        Computes a vendor's earnings and balance from its transactions.

        Earnings are completed payments, split by whether the booking is
        completed. Withdrawals in pending or approved state are held back
        from the balance, pending earnings are added to it.

        Args:
            vendor_id: Vendor primary key

        Returns:
            dict: completed_earnings, pending_earnings, total_earned,
                total_withdrawn, pending_withdrawals, current_balance,
                cached_balance, currency. All zero on a database error.
        """
        from payment.models import Transaction, Wallet

        stats = WalletHelpers.empty_wallet_stats()
        try:
            transactions = Transaction.objects.filter(vendor_id=vendor_id).select_related("booking")
            for entry in transactions:
                amount = entry.amount or ZERO
                if entry.transaction_type == "payment" and entry.status == "completed":
                    if entry.booking is not None and entry.booking.status == "completed":
                        stats["completed_earnings"] += amount
                    else:
                        stats["pending_earnings"] += amount
                elif entry.transaction_type == "withdrawal":
                    if entry.status == "completed":
                        stats["total_withdrawn"] += amount
                    elif entry.status in ("pending", "approved"):
                        stats["pending_withdrawals"] += amount

            wallet = Wallet.objects.filter(vendor_id=vendor_id).first()
            if wallet is not None:
                stats["cached_balance"] = wallet.balance
                stats["currency"] = wallet.currency
        except DatabaseError:
            logger.exception(f"Failed to compute wallet stats for vendor {vendor_id}")
            return WalletHelpers.empty_wallet_stats()

        stats["total_earned"] = stats["completed_earnings"]
        stats["current_balance"] = (
            stats["completed_earnings"]
            - stats["total_withdrawn"]
            - stats["pending_withdrawals"]
            + stats["pending_earnings"]
        )
        return stats
