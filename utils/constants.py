from decimal import Decimal

# ---------- ROLE AND STATUS CHOICES ----------

class Choices:
    ROLE_CHOICES = [
        ("tourist", "Tourist"),
        ("vendor", "Vendor"),
        ("admin", "Admin"),
    ]

    VENDOR_STATUS_CHOICES = [
        ("pending", "Pending"),
        ("approved", "Approved"),
        ("rejected", "Rejected"),
        ("suspended", "Suspended"),
    ]

    SERVICE_STATUS_CHOICES = [
        ("draft", "Draft"),
        ("pending", "Pending"),
        ("approved", "Approved"),
        ("rejected", "Rejected"),
        ("inactive", "Inactive"),
    ]

    CATEGORY_KIND_CHOICES = [
        ("hotel", "Hotel"),
        ("tour", "Tour"),
        ("transport", "Transport"),
        ("restaurant", "Restaurant"),
        ("guide", "Guide"),
        ("activity", "Activity"),
        ("rental", "Rental"),
        ("event", "Event"),
        ("agency", "Agency"),
        ("flight", "Flight"),
        ("other", "Other"),
    ]

    REVIEW_STATUS_CHOICES = [
        ("pending", "Pending"),
        ("approved", "Approved"),
        ("rejected", "Rejected"),
    ]

    DELETE_REQUEST_STATUS_CHOICES = [
        ("pending", "Pending"),
        ("approved", "Approved"),
        ("rejected", "Rejected"),
    ]

    BOOKING_STATUS_CHOICES = [
        ("pending", "Pending"),
        ("confirmed", "Confirmed"),
        ("cancelled", "Cancelled"),
        ("completed", "Completed"),
    ]

    PAYMENT_STATUS_CHOICES = [
        ("pending", "Pending"),
        ("paid", "Paid"),
        ("refunded", "Refunded"),
    ]

    TRANSACTION_TYPE_CHOICES = [
        ("payment", "Payment"),
        ("withdrawal", "Withdrawal"),
        ("refund", "Refund"),
    ]

    TRANSACTION_STATUS_CHOICES = [
        ("pending", "Pending"),
        ("approved", "Approved"),
        ("completed", "Completed"),
        ("failed", "Failed"),
        ("rejected", "Rejected"),
    ]


DEFAULT_CURRENCY = "UGX"

# Upper bounds of services.price (12 digits, 2 places) and positive integer columns
MAX_PRICE = Decimal("9999999999.99")
MAX_POSITIVE_INT = 2147483647

# Withdrawal status moves an admin may make: current status -> allowed targets
WITHDRAWAL_STATUS_TRANSITIONS = {
    "pending": ["approved", "rejected", "failed"],
    "approved": ["completed", "failed"],
}

# Substrings of database errors raised when a table has not been migrated yet
MISSING_RELATION_MARKERS = (
    "no such table",
    "does not exist",
    "undefined table",
)


# ---------- USER MESSAGES ----------
class UserMessage:
    INVALID_CREDENTIALS = "Invalid username or password."
    ACCOUNT_INACTIVE = "This account is inactive."
    ADMIN_ROLE_REQUIRED = "Admin role required."
    VENDOR_ROLE_REQUIRED = "Vendor role required."


class GeneralMessage:
    INVALID_INPUT = "Invalid input provided."
    PERMISSION_DENIED = "You do not have permission to perform this action."
    SOMETHING_WENT_WRONG = "Something went wrong. Please try again later."


# ---------- VENDOR CONSTANTS ----------
class VendorMessage:
    VENDOR_NOT_FOUND = "Vendor not found."
    VENDOR_PROFILE_MISSING = "No vendor profile is linked to this account."
    VENDOR_NOT_APPROVED = "Vendor account is not approved yet."
    INVALID_VENDOR_STATUS = "Status must be one of: approved, rejected, suspended."
    VENDOR_CREATE_NOT_ALLOWED = "Vendor profiles are created when a vendor account registers."
    VENDOR_DELETE_NOT_ALLOWED = "Vendor profiles cannot be deleted through the API."


# ---------- SERVICE CONSTANTS ----------
class ServiceMessage:
    SERVICE_NOT_FOUND = "Service not found"
    SERVICE_NOT_OWNED = "Unauthorized: Service does not belong to this vendor"
    ADMIN_REQUIRED_FOR_DELETE = (
        "Unauthorized: Only admins can delete services without vendor context"
    )
    SERVICE_NOT_BOOKABLE = "This service is not available for booking."
    CATEGORY_NOT_FOUND = "Service category not found."
    TITLE_REQUIRED = "Service title is required."
    PRICE_INVALID = "Price must be a number from 0 up to 9999999999.99."
    NON_NEGATIVE_INT_INVALID = "{field} must be a whole number of zero or more."
    STRING_LIST_INVALID = "{field} must be a list of strings."
    CURRENCY_INVALID = "Currency must be a three-letter code."
    TEXT_INVALID = "{field} must be text of at most {max_length} characters."
    INVALID_MODERATION_STATUS = "Status must be approved or rejected."
    DELETE_REQUEST_NOT_FOUND = "Service delete request not found."
    DELETE_REQUEST_ALREADY_REVIEWED = "This delete request has already been reviewed."
    DELETE_REQUEST_REASON_REQUIRED = "A reason is required for a delete request."
    DELETE_REQUEST_ALREADY_PENDING = "A delete request for this service is already pending."
    STATUS_REQUIRES_ADMIN = "Only admins can approve or reject services."
    INVALID_STATUS = "Invalid service status: {value}."


# ---------- REVIEW MESSAGES ----------
class ReviewMessage:
    REVIEW_NOT_FOUND = "Review not found."
    TOURIST_ROLE_REQUIRED = "Only tourists can write reviews."
    BOOKING_NOT_OWNED = "You can only review your own bookings."
    BOOKING_NOT_COMPLETED = "Only completed bookings can be reviewed."
    ALREADY_REVIEWED = "This booking has already been reviewed."
    RATING_INVALID = "Rating must be a whole number from 1 to 5."
    ALREADY_MODERATED = "This review has already been moderated."


# ---------- BOOKING CONSTANTS -------------
class BookingMessage:
    BOOKING_NOT_FOUND = "Booking not found."
    GUEST_DETAILS_REQUIRED = (
        "Guest bookings require guest_name, guest_email and guest_phone."
    )
    GUESTS_INVALID = "Number of guests must be at least 1."
    UPDATE_FIELDS_INVALID = "Only status and payment_status can be updated."
    UPDATE_EMPTY = "Provide status and/or payment_status to update."
    INVALID_STATUS = "Invalid booking status: {value}."
    INVALID_PAYMENT_STATUS = "Invalid payment status: {value}."
    FORBIDDEN = "You do not have the permission for this."
    TOURIST_CAN_ONLY_CANCEL = "Tourists can only cancel their bookings."
    STAFF_CANNOT_BOOK = "Admin and vendor accounts cannot create bookings."
    NOT_REFUNDABLE = "Only paid bookings can be refunded."
    SERVICE_REQUIRED = "service_id is required."
    SERVICE_DATE_INVALID = "service_date must be an ISO 8601 date or datetime."
    UPDATE_NOT_ALLOWED = "Bookings can only be changed through update-status."
    DELETE_NOT_ALLOWED = "Bookings cannot be deleted."


# ----------- PAYMENT CONSTANTS -------------
class PaymentMessage:
    TRANSACTION_NOT_FOUND = "Transaction not found."
    AMOUNT_NOT_POSITIVE = "Amount must be greater than zero."
    INSUFFICIENT_BALANCE = "Withdrawal amount exceeds the available balance."
    ONLY_WITHDRAWALS_UPDATABLE = "Only withdrawal transactions can change status."
    INVALID_STATUS_TRANSITION = "Cannot move a withdrawal from {current} to {target}."
    PAYMENT_UNAUTHORIZED = "You are not authorized to modify transactions."


# ---------- UNIQUE FIELD CONFLICTS ----------
class AlreadyExistsMessage:
    EMAIL_ALREADY_EXISTS = "Email already exists."
    USERNAME_ALREADY_EXISTS = "Username already exists."
