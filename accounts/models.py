from django.db import models
from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.utils import timezone
from utils.constants import Choices


class CustomUserManager(BaseUserManager):
    """
    Custom user manager that handles user creation without setting is_staff/is_superuser.
    Staff and superuser status are derived from the role instead.
    """

    def create_user(self, username, email=None, password=None, **extra_fields):
        """
        Create and save a user with the given username, email, and password.
        Validation is handled by serializers, this method focuses on user creation.
        """
        if not username:
            raise ValueError("The given username must be set")
        email = self.normalize_email(email)
        username = self.model.normalize_username(username)
        extra_fields.setdefault("role", "tourist")

        user = self.model(username=username, email=email, **extra_fields)
        user.set_password(password)
        user.save()
        return user

    def create_superuser(self, username, email=None, password=None, **extra_fields):
        """
        Create and save an admin with the given username, email, and password.
        """
        extra_fields.setdefault("is_active", True)
        extra_fields["role"] = "admin"

        return self.create_user(username, email, password, **extra_fields)

    def get_platform_admin(self):
        """
        Returns the admin account that owns the platform wallet.
        The earliest active admin wins when several exist.
        """
        return (
            self.filter(role="admin", is_active=True)
            .order_by("date_joined", "id")
            .first()
        )


class User(AbstractUser):
    """
    Custom user model for tourists, vendors and admins.

    Provides:
    - Extended user fields (email, phone, role)
    - Role-based access control through the role field
    - Staff and superuser status derived from the role

    Vendors additionally own a Vendor profile (see vendors.models.Vendor).
    """
    email = models.EmailField()
    phone = models.CharField(max_length=20, blank=True)
    role = models.CharField(max_length=20, choices=Choices.ROLE_CHOICES, default="tourist")
    created_at = models.DateTimeField(default=timezone.now)

    REQUIRED_FIELDS = ["email"]
    USERNAME_FIELD = "username"

    objects = CustomUserManager()

    class Meta:
        db_table = "users"

    @property
    def is_staff(self):
        """
        Returns True if user can reach the admin site.
        """
        return self.role == "admin"

    @property
    def is_superuser(self):
        """
        Returns True if user has superuser privileges based on role.
        """
        return self.role == "admin"

    @property
    def is_admin(self):
        return self.role == "admin"

    @property
    def is_vendor(self):
        return self.role == "vendor"

    @property
    def is_tourist(self):
        return self.role == "tourist"

    @property
    def full_name(self):
        return self.get_full_name() or self.username

    def __str__(self):
        return f"{self.username} ({self.role})"
