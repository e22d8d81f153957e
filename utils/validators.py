from decimal import Decimal, InvalidOperation
from django.contrib.auth import get_user_model
from utils.constants import (
    AlreadyExistsMessage, UserMessage, VendorMessage, ServiceMessage,
    BookingMessage, PaymentMessage, ReviewMessage, Choices, MAX_PRICE, MAX_POSITIVE_INT,
    WITHDRAWAL_STATUS_TRANSITIONS)
from exceptions.handlers import (
    AlreadyExistsException, PermissionDeniedException, NotFoundException, InvalidInputException)
import logging

User = get_user_model()
logger = logging.getLogger("accounts")


def _choice_values(choices):
    return [value for value, _ in choices]


class UserFieldValidators:
    """
    Reusable validation for user-related fields.
    Eliminates code duplication in serializers.
    """

    @staticmethod
    def validate_email_uniqueness(value, context="registration", exclude_user=None):
        """
        Validates email uniqueness for user registration and updates.
        Only checks against active users.
        """
        queryset = User.objects
        if exclude_user:
            queryset = queryset.exclude(pk=exclude_user.pk)

        if queryset.filter(email__iexact=value, is_active=True).exists():
            logger.error(f"{context.title()} failed - Email already exists: {value}")
            raise AlreadyExistsException(AlreadyExistsMessage.EMAIL_ALREADY_EXISTS)

        return value

    @staticmethod
    def validate_username_uniqueness(value, context="registration"):
        """
        Validates username uniqueness, case-insensitively.
        """
        if User.objects.filter(username__iexact=value).exists():
            logger.error(f"{context.title()} failed - Username already exists: {value}")
            raise AlreadyExistsException(AlreadyExistsMessage.USERNAME_ALREADY_EXISTS)
        return value


class RoleValidators:
    """
    Role checks for service-layer functions that receive the acting user
    explicitly instead of reading it from the request.
    """

    @staticmethod
    def validate_admin(user, message=UserMessage.ADMIN_ROLE_REQUIRED):
        """
        Raises:
            PermissionDeniedException: If user is missing or not an admin
        """
        if not user or not getattr(user, "is_authenticated", False) or user.role != "admin":
            logger.warning(f"Admin-only action attempted by {user}")
            raise PermissionDeniedException(message)
        return user


class VendorValidators:
    """
    Reusable validation logic for vendor accounts.
    """

    @staticmethod
    def get_vendor_for_user(user):
        """
        Returns the vendor profile linked to a vendor user.

        Raises:
            PermissionDeniedException: If user is not a vendor
            NotFoundException: If the vendor profile is missing
        """
        from vendors.models import Vendor

        if not user or not getattr(user, "is_authenticated", False) or user.role != "vendor":
            raise PermissionDeniedException(UserMessage.VENDOR_ROLE_REQUIRED)
        try:
            return Vendor.objects.get(user=user)
        except Vendor.DoesNotExist:
            logger.warning(f"Vendor user {user} has no vendor profile")
            raise NotFoundException(VendorMessage.VENDOR_PROFILE_MISSING)

    @staticmethod
    def validate_vendor_approved(vendor):
        """
        Raises:
            PermissionDeniedException: If the vendor has not been approved
        """
        if vendor.status != "approved":
            raise PermissionDeniedException(VendorMessage.VENDOR_NOT_APPROVED)
        return vendor

    @staticmethod
    def validate_moderation_status(value):
        """
        Validates the status an admin moves a vendor to.
        """
        if value not in ["approved", "rejected", "suspended"]:
            raise InvalidInputException(VendorMessage.INVALID_VENDOR_STATUS)
        return value


class ServiceValidators:
    """
    Reusable validation logic for service listings.
    """

    @staticmethod
    def validate_service_ownership(service_id, vendor_id=None):
        """
        Fetches a service and checks that it belongs to the vendor, if given.

        Args:
            service_id: Service primary key
            vendor_id: Vendor primary key, or None to skip the ownership check

        Returns:
            Service: The fetched service

        Raises:
            NotFoundException: If the service does not exist
            PermissionDeniedException: If the service belongs to another vendor
        """
        from listings.models import Service

        service = (
            Service.objects.select_related("vendor", "category")
            .filter(pk=service_id)
            .first()
        )
        if service is None:
            raise NotFoundException(ServiceMessage.SERVICE_NOT_FOUND)
        if vendor_id is not None and str(service.vendor_id) != str(vendor_id):
            logger.warning(
                f"Vendor {vendor_id} attempted to modify service {service_id} of vendor {service.vendor_id}"
            )
            raise PermissionDeniedException(ServiceMessage.SERVICE_NOT_OWNED)
        return service

    @staticmethod
    def validate_title(value):
        if not value or not str(value).strip():
            raise InvalidInputException(ServiceMessage.TITLE_REQUIRED)
        return str(value).strip()

    @staticmethod
    def validate_price(value):
        """
        Validates a price against the services.price column (12 digits, 2 places).

        Raises:
            InvalidInputException: If value is not a finite decimal between 0
                and MAX_PRICE
        """
        if isinstance(value, bool):
            raise InvalidInputException(ServiceMessage.PRICE_INVALID)
        try:
            price = Decimal(str(value))
            if not price.is_finite() or price < 0 or price > MAX_PRICE:
                raise InvalidInputException(ServiceMessage.PRICE_INVALID)
            return price.quantize(Decimal("0.01"))
        except (InvalidOperation, TypeError, ValueError):
            raise InvalidInputException(ServiceMessage.PRICE_INVALID)

    @staticmethod
    def validate_non_negative_int(value, field):
        """
        Validates an optional whole-number column such as duration_hours.
        Accepts ints and digit strings, rejects booleans, fractions and negatives.
        """
        message = ServiceMessage.NON_NEGATIVE_INT_INVALID.format(field=field)
        if value is None or value == "":
            return None
        if isinstance(value, bool):
            raise InvalidInputException(message)
        if isinstance(value, float):
            if not value.is_integer():
                raise InvalidInputException(message)
            value = int(value)
        try:
            number = value if isinstance(value, int) else int(str(value).strip())
        except (TypeError, ValueError):
            raise InvalidInputException(message)
        if number < 0 or number > MAX_POSITIVE_INT:
            raise InvalidInputException(message)
        return number

    @staticmethod
    def validate_string_list(value, field):
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise InvalidInputException(ServiceMessage.STRING_LIST_INVALID.format(field=field))
        return value

    @staticmethod
    def validate_currency(value):
        code = str(value).strip().upper()
        if len(code) != 3 or not code.isalpha():
            raise InvalidInputException(ServiceMessage.CURRENCY_INVALID)
        return code

    @staticmethod
    def validate_text(value, field, max_length=None):
        if not isinstance(value, str) or (max_length and len(value.strip()) > max_length):
            raise InvalidInputException(
                ServiceMessage.TEXT_INVALID.format(field=field, max_length=max_length or "any")
            )
        return value.strip()

    @staticmethod
    def validate_category(category_id):
        from listings.models import ServiceCategory

        try:
            return ServiceCategory.objects.get(pk=category_id)
        except (ServiceCategory.DoesNotExist, ValueError, TypeError):
            raise InvalidInputException(ServiceMessage.CATEGORY_NOT_FOUND)

    @staticmethod
    def validate_status(value, by_admin=False):
        """
        Validates a service status set through create or update.
        Approval and rejection are left to admin moderation.

        Raises:
            InvalidInputException: If value is not a service status
            PermissionDeniedException: If a non-admin sets approved or rejected
        """
        if value not in _choice_values(Choices.SERVICE_STATUS_CHOICES):
            raise InvalidInputException(ServiceMessage.INVALID_STATUS.format(value=value))
        if not by_admin and value in ["approved", "rejected"]:
            raise PermissionDeniedException(ServiceMessage.STATUS_REQUIRES_ADMIN)
        return value

    @staticmethod
    def validate_moderation_status(value):
        if value not in ["approved", "rejected"]:
            raise InvalidInputException(ServiceMessage.INVALID_MODERATION_STATUS)
        return value


class BookingValidators:
    """
    Reusable validation logic for booking operations.
    Centralizes booking-related validations to reduce redundancy.
    """

    UPDATABLE_FIELDS = ("status", "payment_status")

    @staticmethod
    def validate_guest_contact(data, user=None):
        """
        Validates that a booking without a tourist account carries full guest
        contact details. Runs before any database access.

        Args:
            data (dict): Booking request data
            user: Authenticated user or None

        Raises:
            InvalidInputException: If any guest contact field is missing or blank
        """
        if user is not None and getattr(user, "is_authenticated", False):
            return data
        missing = [
            field
            for field in ("guest_name", "guest_email", "guest_phone")
            if not str(data.get(field) or "").strip()
        ]
        if missing:
            logger.warning(f"Guest booking rejected, missing {', '.join(missing)}")
            raise InvalidInputException(BookingMessage.GUEST_DETAILS_REQUIRED)
        return data

    @staticmethod
    def validate_user_can_book(user):
        """
        Validates that admins and vendors do not create bookings.

        Raises:
            PermissionDeniedException: If user is an admin or vendor
        """
        if user is not None and getattr(user, "is_authenticated", False) and user.role != "tourist":
            logger.warning(f"{user.role} {user} attempted to create a booking.")
            raise PermissionDeniedException(BookingMessage.STAFF_CANNOT_BOOK)

    @staticmethod
    def validate_guests(value):
        try:
            guests = int(value)
        except (TypeError, ValueError):
            raise InvalidInputException(BookingMessage.GUESTS_INVALID)
        if guests < 1:
            raise InvalidInputException(BookingMessage.GUESTS_INVALID)
        return guests

    @staticmethod
    def validate_service_bookable(service):
        if service.status != "approved":
            raise InvalidInputException(ServiceMessage.SERVICE_NOT_BOOKABLE)
        return service

    @staticmethod
    def validate_status_updates(updates):
        """
        Restricts a booking update to status and payment_status with valid values.

        Args:
            updates (dict): Requested changes

        Returns:
            dict: The accepted changes

        Raises:
            InvalidInputException: For unknown keys, empty updates, or invalid values
        """
        if not updates:
            raise InvalidInputException(BookingMessage.UPDATE_EMPTY)
        unknown = set(updates) - set(BookingValidators.UPDATABLE_FIELDS)
        if unknown:
            raise InvalidInputException(BookingMessage.UPDATE_FIELDS_INVALID)

        if "status" in updates and updates["status"] not in _choice_values(Choices.BOOKING_STATUS_CHOICES):
            raise InvalidInputException(BookingMessage.INVALID_STATUS.format(value=updates["status"]))
        if "payment_status" in updates and updates["payment_status"] not in _choice_values(
            Choices.PAYMENT_STATUS_CHOICES
        ):
            raise InvalidInputException(
                BookingMessage.INVALID_PAYMENT_STATUS.format(value=updates["payment_status"])
            )
        return {key: updates[key] for key in BookingValidators.UPDATABLE_FIELDS if key in updates}

    @staticmethod
    def validate_user_can_update(booking, user, updates):
        """
        Admins update any booking, vendors their own, tourists may only cancel theirs.
        A missing user means an internal caller and skips the check.

        Raises:
            PermissionDeniedException: If the user may not apply the updates
        """
        if user is None:
            return
        if user.role == "admin":
            return
        if user.role == "vendor" and booking.vendor.user_id == user.id:
            return
        if user.role == "tourist" and booking.tourist_id == user.id:
            if updates == {"status": "cancelled"}:
                return
            raise PermissionDeniedException(BookingMessage.TOURIST_CAN_ONLY_CANCEL)
        logger.warning(f"User {user} attempted to update booking {booking.id}")
        raise PermissionDeniedException(BookingMessage.FORBIDDEN)

    @staticmethod
    def validate_refundable(booking):
        if booking.payment_status != "paid":
            raise InvalidInputException(BookingMessage.NOT_REFUNDABLE)
        return booking


class ReviewValidators:
    """
    Reusable validation logic for booking reviews.
    """

    @staticmethod
    def validate_rating(value):
        """
        Validates a star rating.

        Raises:
            InvalidInputException: If value is not a whole number from 1 to 5
        """
        if isinstance(value, bool) or isinstance(value, float) and not value.is_integer():
            raise InvalidInputException(ReviewMessage.RATING_INVALID)
        try:
            rating = int(value) if isinstance(value, (int, float)) else int(str(value).strip())
        except (TypeError, ValueError):
            raise InvalidInputException(ReviewMessage.RATING_INVALID)
        if rating < 1 or rating > 5:
            raise InvalidInputException(ReviewMessage.RATING_INVALID)
        return rating

    @staticmethod
    def validate_reviewable(booking, user):
        """
        Validates that user is the tourist of a completed booking.

        Raises:
            PermissionDeniedException: If user is not a tourist or not the booking's tourist
            InvalidInputException: If the booking is not completed
        """
        if not user or not getattr(user, "is_authenticated", False) or user.role != "tourist":
            raise PermissionDeniedException(ReviewMessage.TOURIST_ROLE_REQUIRED)
        if booking.tourist_id != user.id:
            logger.warning(f"User {user} attempted to review booking {booking.id}")
            raise PermissionDeniedException(ReviewMessage.BOOKING_NOT_OWNED)
        if booking.status != "completed":
            raise InvalidInputException(ReviewMessage.BOOKING_NOT_COMPLETED)
        return booking


class PaymentValidators:
    """
    Reusable validation logic for ledger and wallet operations.
    """

    @staticmethod
    def validate_amount(value):
        """
        Validates that an amount is a positive decimal.

        Raises:
            InvalidInputException: If amount is missing, malformed or not positive
        """
        if isinstance(value, bool):
            raise InvalidInputException(PaymentMessage.AMOUNT_NOT_POSITIVE)
        try:
            amount = Decimal(str(value))
            if not amount.is_finite() or amount <= 0:
                raise InvalidInputException(PaymentMessage.AMOUNT_NOT_POSITIVE)
        except (InvalidOperation, TypeError, ValueError):
            raise InvalidInputException(PaymentMessage.AMOUNT_NOT_POSITIVE)
        return amount

    @staticmethod
    def validate_withdrawal_amount(amount, available_balance):
        """
        Validates a withdrawal against the vendor's computed balance.

        Raises:
            InvalidInputException: If the amount exceeds the available balance
        """
        amount = PaymentValidators.validate_amount(amount)
        if amount > Decimal(str(available_balance)):
            raise InvalidInputException(PaymentMessage.INSUFFICIENT_BALANCE)
        return amount

    @staticmethod
    def validate_status_transition(transaction, target_status):
        """
        Validates an admin status change on a withdrawal.

        Raises:
            InvalidInputException: If the transaction is not a withdrawal or
                the move is not allowed from its current status
        """
        if transaction.transaction_type != "withdrawal":
            raise InvalidInputException(PaymentMessage.ONLY_WITHDRAWALS_UPDATABLE)
        allowed = WITHDRAWAL_STATUS_TRANSITIONS.get(transaction.status, [])
        if target_status not in allowed:
            raise InvalidInputException(
                PaymentMessage.INVALID_STATUS_TRANSITION.format(
                    current=transaction.status, target=target_status
                )
            )
        return target_status
