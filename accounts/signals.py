import logging
from django.db.models.signals import post_save
from django.dispatch import receiver
from django.contrib.auth import get_user_model

User = get_user_model()
logger = logging.getLogger("accounts")


@receiver(post_save, sender=User)
def create_vendor_profile(sender, instance, created, **kwargs):
    """
    Create a pending vendor profile when a vendor account is registered.
    """
    if created and instance.role == "vendor":
        from vendors.models import Vendor

        Vendor.objects.get_or_create(
            user=instance,
            defaults={
                "business_name": instance.full_name,
                "business_email": instance.email or "",
                "business_phone": instance.phone or "",
            },
        )
        logger.info(f"Vendor profile created for {instance.username}")
