import logging
from django.db import transaction
from django.utils import timezone
from .models import Vendor
from utils.constants import VendorMessage
from utils.validators import RoleValidators, VendorValidators
from exceptions.handlers import NotFoundException

logger = logging.getLogger("vendors")


def set_vendor_status(vendor_id, status, user):
    """
    Moves a vendor to approved, rejected or suspended.

    Approval stamps approved_at and approved_by. Any other status clears
    them, so a re-approved vendor carries the latest approval.

    Raises:
        PermissionDeniedException: If user is not an admin
        InvalidInputException: If status is not a moderation status
        NotFoundException: If the vendor does not exist
    """
    RoleValidators.validate_admin(user)
    status = VendorValidators.validate_moderation_status(status)

    with transaction.atomic():
        vendor = Vendor.objects.select_for_update().filter(pk=vendor_id).first()
        if vendor is None:
            raise NotFoundException(VendorMessage.VENDOR_NOT_FOUND)

        previous = vendor.status
        vendor.status = status
        if status == "approved":
            vendor.approved_at = timezone.now()
            vendor.approved_by = user
        else:
            vendor.approved_at = None
            vendor.approved_by = None
        vendor.save(update_fields=["status", "approved_at", "approved_by", "updated_at"])

    logger.info(f"Vendor {vendor.id} moved from {previous} to {status} by {user}")
    return vendor
