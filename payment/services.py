import logging
from django.db import DatabaseError, transaction
from bookingsystem.models import Booking
from vendors.models import Vendor
from .models import Transaction
from utils.constants import PaymentMessage
from utils.payment_helpers import PaymentHelpers, WalletHelpers
from utils.validators import PaymentValidators, RoleValidators
from exceptions.handlers import NotFoundException, is_missing_relation_error

logger = logging.getLogger("payment")


def sync_booking_payment(booking):
    """
    Records the payment of a confirmed and paid booking.

    Ensures exactly one completed payment transaction exists. When this call
    creates it, the vendor wallet and the admin wallet are credited with the
    booking amount. Runs in a savepoint: when the ledger tables are not
    migrated yet the step is rolled back with a warning and (None, False)
    is returned. Other database errors propagate.

    Args:
        booking: Booking in confirmed/paid state

    Returns:
        tuple: (Transaction or None, created)
    """
    try:
        with transaction.atomic():
            entry, created = PaymentHelpers.ensure_completed_payment(booking)
            if created:
                WalletHelpers.credit_wallet(booking.vendor_id, booking.total_amount, booking.currency)
                WalletHelpers.credit_admin_wallet(booking.total_amount, booking.currency)
                logger.info(
                    f"Booking {booking.id} paid: transaction {entry.id}, "
                    f"credited {booking.total_amount} {booking.currency}"
                )
            return entry, created
    except DatabaseError as exc:
        if not is_missing_relation_error(exc):
            raise
        logger.warning(f"Ledger tables missing, payment of booking {booking.id} not recorded: {exc}")
        return None, False


def reconcile_paid_bookings(vendor_id=None):
    """
    Backfills completed payment transactions for confirmed and paid bookings.

    Each booking runs in its own savepoint. A failing booking is logged and
    skipped. Wallets are not credited.

    Args:
        vendor_id: Restrict the sweep to one vendor, or None for all

    Returns:
        int: Number of transactions created
    """
    bookings = Booking.objects.filter(status="confirmed", payment_status="paid")
    if vendor_id is not None:
        bookings = bookings.filter(vendor_id=vendor_id)

    created_count = 0
    for booking in bookings.iterator():
        try:
            with transaction.atomic():
                _, created = PaymentHelpers.ensure_completed_payment(
                    booking,
                    payment_method="reconciliation",
                    description=f"Reconciled payment for booking {booking.id}",
                )
        except DatabaseError:
            logger.exception(f"Reconciliation failed for booking {booking.id}")
            continue
        if created:
            created_count += 1

    logger.info(f"Reconciliation created {created_count} transaction(s) for vendor={vendor_id or 'all'}")
    return created_count


def request_withdrawal(vendor, amount, payment_method="", description=""):
    """
    Files a pending withdrawal for a vendor.

    The amount must be positive and not exceed the balance computed by
    get_wallet_stats. The vendor row is locked while the balance is read
    and the withdrawal inserted, so concurrent requests are checked one
    after the other. The cached wallet balance is not changed.
    """
    amount = PaymentValidators.validate_amount(amount)

    with transaction.atomic():
        Vendor.objects.select_for_update().get(pk=vendor.id)
        stats = WalletHelpers.get_wallet_stats(vendor.id)
        amount = PaymentValidators.validate_withdrawal_amount(amount, stats["current_balance"])
        entry = PaymentHelpers.create_transaction(
            "withdrawal",
            vendor.id,
            amount,
            currency=stats["currency"],
            status="pending",
            payment_method=payment_method or "",
            description=description or "",
        )

    logger.info(f"Withdrawal {entry.id} of {amount} requested by vendor {vendor.id}")
    return entry


def set_transaction_status(transaction_id, status, user):
    """
    Admin status change of a withdrawal.

    Raises:
        PermissionDeniedException: If user is not an admin
        NotFoundException: If the transaction does not exist
        InvalidInputException: If the move is not an allowed withdrawal transition
    """
    RoleValidators.validate_admin(user, PaymentMessage.PAYMENT_UNAUTHORIZED)

    with transaction.atomic():
        entry = Transaction.objects.select_for_update().filter(pk=transaction_id).first()
        if entry is None:
            raise NotFoundException(PaymentMessage.TRANSACTION_NOT_FOUND)
        PaymentValidators.validate_status_transition(entry, status)

        previous = entry.status
        entry.status = status
        entry.metadata = {**(entry.metadata or {}), f"{status}_by": user.username}
        entry.save(update_fields=["status", "metadata", "updated_at"])

    logger.info(f"Withdrawal {entry.id} moved from {previous} to {status} by {user}")
    return entry
