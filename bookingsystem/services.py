import logging
from django.db import transaction
from django.utils import timezone
from .models import Booking
from listings.models import Service
from payment.services import sync_booking_payment
from utils.booking_helpers import BookingHelpers
from utils.constants import BookingMessage, ServiceMessage
from utils.payment_helpers import PaymentHelpers
from utils.validators import BookingValidators, RoleValidators
from exceptions.handlers import InvalidInputException, NotFoundException

logger = logging.getLogger("bookingsystem")


def _load(booking_id):
    return Booking.objects.select_related("service", "vendor", "tourist").get(pk=booking_id)


def create_booking(data, user=None):
    """
    Creates a booking for a tourist or a guest.

    Guest contact details are checked before any database access. The amount
    is the service price times the number of guests, currency and vendor
    come from the service.

    Args:
        data (dict): service_id, guests, service_date, special_requests and,
            for guests, guest_name, guest_email, guest_phone
        user: Authenticated tourist, or None/anonymous for a guest booking

    Returns:
        Booking: The created booking with service, vendor and tourist loaded
    """
    BookingValidators.validate_guest_contact(data, user)
    BookingValidators.validate_user_can_book(user)
    guests = BookingValidators.validate_guests(data.get("guests", 1))
    service_date = BookingHelpers.parse_service_date(data.get("service_date"))

    service_id = data.get("service_id") or data.get("service")
    if not service_id:
        raise InvalidInputException(BookingMessage.SERVICE_REQUIRED)
    service = Service.objects.select_related("vendor").filter(pk=service_id).first()
    if service is None:
        raise NotFoundException(ServiceMessage.SERVICE_NOT_FOUND)
    BookingValidators.validate_service_bookable(service)

    tourist = user if user is not None and user.is_authenticated else None
    with transaction.atomic():
        booking = Booking.objects.create(
            service=service,
            vendor=service.vendor,
            tourist=tourist,
            guest_name=str(data.get("guest_name") or "").strip(),
            guest_email=str(data.get("guest_email") or "").strip(),
            guest_phone=str(data.get("guest_phone") or "").strip(),
            booking_date=timezone.now(),
            service_date=service_date,
            guests=guests,
            total_amount=BookingHelpers.calculate_total(service.price, guests),
            currency=service.currency,
            special_requests=data.get("special_requests") or "",
        )

    logger.info(
        f"Booking created: id={booking.id}, service={service.id}, "
        f"tourist={tourist or 'guest'}, guests={guests}, total={booking.total_amount} {booking.currency}"
    )
    return _load(booking.id)


def update_booking_status(booking_id, updates, user=None):
    """
    Updates status and/or payment_status of a booking.

    When the booking ends up confirmed and paid, its completed payment
    transaction is ensured on every call, and wallets are credited only when
    that transaction is created here. Missing ledger tables degrade to a
    warning, the booking update is kept.

    Args:
        booking_id: Booking primary key
        updates (dict): status and/or payment_status
        user: Acting user. None means an internal caller with full access.

    Returns:
        Booking: The updated booking with service, vendor and tourist loaded

    Raises:
        InvalidInputException: For keys or values outside status/payment_status
        NotFoundException: If the booking does not exist
        PermissionDeniedException: If the user may not make this change
    """
    updates = BookingValidators.validate_status_updates(updates)

    with transaction.atomic():
        booking = Booking.objects.select_for_update().filter(pk=booking_id).first()
        if booking is None:
            raise NotFoundException(BookingMessage.BOOKING_NOT_FOUND)
        BookingValidators.validate_user_can_update(booking, user, updates)

        previous = (booking.status, booking.payment_status)
        for field, value in updates.items():
            setattr(booking, field, value)
        booking.save(update_fields=["status", "payment_status", "updated_at"])
        logger.info(
            f"Booking {booking.id} updated by {user or 'system'}: "
            f"{previous[0]}/{previous[1]} -> {booking.status}/{booking.payment_status}"
        )

        if booking.status == "confirmed" and booking.payment_status == "paid":
            sync_booking_payment(booking)

    return _load(booking.id)


def refund_booking(booking_id, user, reason=""):
    """
    Marks a paid booking refunded and writes a completed refund transaction.
    Wallet balances are left untouched.

    Returns:
        tuple: (Booking, Transaction)
    """
    RoleValidators.validate_admin(user)

    with transaction.atomic():
        booking = Booking.objects.select_for_update().filter(pk=booking_id).first()
        if booking is None:
            raise NotFoundException(BookingMessage.BOOKING_NOT_FOUND)
        BookingValidators.validate_refundable(booking)

        booking.payment_status = "refunded"
        booking.save(update_fields=["payment_status", "updated_at"])
        entry = PaymentHelpers.create_transaction(
            "refund",
            booking.vendor_id,
            booking.total_amount,
            currency=booking.currency,
            status="completed",
            booking=booking,
            tourist_id=booking.tourist_id,
            reference=PaymentHelpers.generate_payment_reference(booking.id, prefix="RFD"),
            payment_method="refund",
            description=reason or f"Refund for booking {booking.id}",
        )

    logger.info(f"Booking {booking.id} refunded by {user}")
    return _load(booking.id), entry
