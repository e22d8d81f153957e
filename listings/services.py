import logging
from django.db import transaction
from django.utils import timezone
from bookingsystem.models import Booking
from .models import Review, Service, ServiceDeleteRequest
from utils.constants import DEFAULT_CURRENCY, BookingMessage, ReviewMessage, ServiceMessage
from utils.service_helpers import ServiceHelpers
from utils.validators import RoleValidators, ReviewValidators, ServiceValidators, VendorValidators
from exceptions.handlers import (
    AlreadyExistsException,
    InvalidInputException,
    NotFoundException,
    PermissionDeniedException,
)

logger = logging.getLogger("listings")

TEXT_FIELD_LIMITS = {"title": 200, "location": 255}


def _clean_basic_fields(basic, by_admin=False):
    """
    Validates whitelisted column values. Every value is checked before any
    of them is set, so a bad key leaves the instance untouched.
    """
    cleaned = {}
    for key, value in basic.items():
        if key == "title":
            value = ServiceValidators.validate_title(value)
            value = ServiceValidators.validate_text(value, key, max_length=TEXT_FIELD_LIMITS[key])
        elif key == "price":
            value = ServiceValidators.validate_price(value)
        elif key == "status":
            value = ServiceValidators.validate_status(value, by_admin=by_admin)
        elif key == "currency":
            value = ServiceValidators.validate_currency(value)
        elif key in ("duration_hours", "max_capacity"):
            value = ServiceValidators.validate_non_negative_int(value, key)
        elif key in ("images", "amenities"):
            value = ServiceValidators.validate_string_list(value, key)
        elif key in ("description", "location"):
            value = ServiceValidators.validate_text(value, key, max_length=TEXT_FIELD_LIMITS.get(key))
        elif key == "category_id":
            # resolved by the caller before the attribute whitelist is chosen
            continue
        cleaned[key] = value
    return cleaned


def _apply_basic_fields(service, basic, by_admin=False):
    """Validates and sets whitelisted column values on a service instance."""
    for key, value in _clean_basic_fields(basic, by_admin=by_admin).items():
        setattr(service, key, value)


def _reload(service_id):
    return Service.objects.select_related("vendor", "category", "approved_by").get(pk=service_id)


def create_service(vendor, data, user=None):
    """
    Creates a service for an approved vendor.

    Basic fields go to the model columns, category attributes to the
    attributes JSON, unknown keys are dropped. A new service waits for
    admin moderation unless the vendor saves it as a draft.
    """
    VendorValidators.validate_vendor_approved(vendor)
    category = ServiceValidators.validate_category(data.get("category_id"))
    basic, attributes, _ = ServiceHelpers.split_updates(category.kind, data)

    service = Service(
        vendor=vendor,
        category=category,
        currency=DEFAULT_CURRENCY,
        status="pending",
    )
    basic.setdefault("title", "")
    _apply_basic_fields(service, basic, by_admin=bool(user and user.role == "admin"))
    service.attributes = attributes

    with transaction.atomic():
        service.save()

    logger.info(f"Service {service.id} created by vendor {vendor.id} with status {service.status}")
    return _reload(service.id)


def update_service(service_id, vendor_id, updates, user=None):
    """
    Applies whitelisted changes to a service.

    Args:
        service_id: Service primary key
        vendor_id: Owning vendor, or None for an admin edit
        updates (dict): Requested changes. Keys outside the whitelist of the
            service's category kind are dropped silently.
        user: Acting user, used to allow admin-only status values

    Returns:
        Service: The updated service with vendor and category loaded

    Raises:
        NotFoundException: If the service does not exist
        PermissionDeniedException: If vendor_id does not own the service
    """
    with transaction.atomic():
        service = ServiceValidators.validate_service_ownership(service_id, vendor_id)
        if vendor_id is None and user is not None:
            RoleValidators.validate_admin(user)

        if updates.get("category_id") is not None:
            service.category = ServiceValidators.validate_category(updates["category_id"])

        basic, attributes, dropped = ServiceHelpers.split_updates(service.category.kind, updates)
        by_admin = vendor_id is None or bool(user and user.role == "admin")
        _apply_basic_fields(service, basic, by_admin=by_admin)
        if attributes:
            service.attributes = {**(service.attributes or {}), **attributes}
        service.updated_at = timezone.now()
        service.save()

    logger.info(
        f"Service {service.id} updated: fields={sorted(basic) + sorted(attributes)}, dropped={dropped}"
    )
    return _reload(service.id)


def delete_service(service_id, vendor_id=None, user=None):
    """
    Deletes a service. With a vendor the service must belong to it,
    without one only an admin may delete.
    """
    if vendor_id is None:
        if not user or getattr(user, "role", None) != "admin":
            logger.warning(f"Service {service_id} delete without vendor context by {user}")
            raise PermissionDeniedException(ServiceMessage.ADMIN_REQUIRED_FOR_DELETE)

    with transaction.atomic():
        service = ServiceValidators.validate_service_ownership(service_id, vendor_id)
        service.delete()

    logger.info(f"Service {service_id} deleted by {user or f'vendor {vendor_id}'}")


def moderate_service(service_id, status, user):
    """Admin approval or rejection of a service."""
    RoleValidators.validate_admin(user)
    status = ServiceValidators.validate_moderation_status(status)

    with transaction.atomic():
        service = ServiceValidators.validate_service_ownership(service_id)
        service.status = status
        if status == "approved":
            service.approved_at = timezone.now()
            service.approved_by = user
        else:
            service.approved_at = None
            service.approved_by = None
        service.save(update_fields=["status", "approved_at", "approved_by", "updated_at"])

    logger.info(f"Service {service_id} {status} by {user}")
    return _reload(service.id)


def create_delete_request(service_id, vendor, reason):
    """
    Files a vendor's request to remove one of its services.

    Raises:
        InvalidInputException: If no reason is given
        AlreadyExistsException: If a pending request already exists
    """
    if not reason or not str(reason).strip():
        raise InvalidInputException(ServiceMessage.DELETE_REQUEST_REASON_REQUIRED)

    with transaction.atomic():
        service = ServiceValidators.validate_service_ownership(service_id, vendor.id)
        if ServiceDeleteRequest.objects.filter(service=service, status="pending").exists():
            raise AlreadyExistsException(ServiceMessage.DELETE_REQUEST_ALREADY_PENDING)
        delete_request = ServiceDeleteRequest.objects.create(
            service=service,
            service_title=service.title,
            vendor=vendor,
            reason=str(reason).strip(),
        )

    logger.info(f"Delete request {delete_request.id} filed for service {service.id} by vendor {vendor.id}")
    return delete_request


def review_delete_request(request_id, status, user, admin_notes=""):
    """
    Approves or rejects a pending delete request. Approval deletes the
    service, the request itself is kept with its service reference cleared.
    """
    RoleValidators.validate_admin(user)
    status = ServiceValidators.validate_moderation_status(status)

    with transaction.atomic():
        delete_request = (
            ServiceDeleteRequest.objects.select_for_update()
            .filter(pk=request_id)
            .first()
        )
        if delete_request is None:
            raise NotFoundException(ServiceMessage.DELETE_REQUEST_NOT_FOUND)
        if delete_request.status != "pending":
            raise InvalidInputException(ServiceMessage.DELETE_REQUEST_ALREADY_REVIEWED)

        delete_request.status = status
        delete_request.admin_notes = admin_notes or ""
        delete_request.reviewed_at = timezone.now()
        delete_request.reviewed_by = user
        delete_request.save()

        if status == "approved" and delete_request.service_id:
            service_id = delete_request.service_id
            Service.objects.filter(pk=service_id).delete()
            logger.info(f"Service {service_id} deleted through request {delete_request.id}")

    logger.info(f"Delete request {request_id} {status} by {user}")
    delete_request.refresh_from_db()
    return delete_request


def create_review(booking_id, user, rating, comment=""):
    """
    Records a tourist's review of one of their completed bookings.

    Args:
        booking_id: Booking primary key
        user: Acting tourist
        rating: Whole number from 1 to 5
        comment (str): Optional free text

    Returns:
        Review: The pending review

    Raises:
        NotFoundException: If the booking does not exist
        PermissionDeniedException: If user is not the booking's tourist
        InvalidInputException: If the rating is malformed or the booking is not completed
        AlreadyExistsException: If the booking already has a review
    """
    rating = ReviewValidators.validate_rating(rating)

    with transaction.atomic():
        booking = (
            Booking.objects.select_for_update()
            .filter(pk=booking_id)
            .first()
        )
        if booking is None:
            raise NotFoundException(BookingMessage.BOOKING_NOT_FOUND)
        ReviewValidators.validate_reviewable(booking, user)
        if Review.objects.filter(booking=booking).exists():
            raise AlreadyExistsException(ReviewMessage.ALREADY_REVIEWED)
        review = Review.objects.create(
            booking=booking,
            service_id=booking.service_id,
            vendor_id=booking.vendor_id,
            tourist=user,
            rating=rating,
            comment=str(comment or "").strip(),
        )

    logger.info(f"Review {review.id} of booking {booking_id} filed by {user}")
    return review


def moderate_review(review_id, status, user, admin_notes=""):
    """Admin approval or rejection of a pending review."""
    RoleValidators.validate_admin(user)
    status = ServiceValidators.validate_moderation_status(status)

    with transaction.atomic():
        review = Review.objects.select_for_update().filter(pk=review_id).first()
        if review is None:
            raise NotFoundException(ReviewMessage.REVIEW_NOT_FOUND)
        if review.status != "pending":
            raise InvalidInputException(ReviewMessage.ALREADY_MODERATED)

        review.status = status
        review.admin_notes = admin_notes or ""
        review.reviewed_at = timezone.now()
        review.reviewed_by = user
        review.save()

    logger.info(f"Review {review_id} {status} by {user}")
    return review
