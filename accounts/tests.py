from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APITestCase
from rest_framework import status
from django.contrib.auth import get_user_model
from vendors.models import Vendor

User = get_user_model()

PASSWORD = "Kampala-Trails-2024"


class UserModelTest(TestCase):
    """Test cases for the User model and its manager."""

    def test_create_user_defaults_to_tourist(self):
        """Test that a user without a role becomes a tourist."""
        user = User.objects.create_user("traveller", "traveller@example.com", PASSWORD)
        self.assertEqual(user.role, "tourist")
        self.assertTrue(user.is_tourist)
        self.assertFalse(user.is_staff)
        self.assertTrue(user.check_password(PASSWORD))

    def test_create_superuser_is_admin(self):
        """Test that superusers get the admin role and derived staff flags."""
        admin = User.objects.create_superuser("root", "root@example.com", PASSWORD)
        self.assertEqual(admin.role, "admin")
        self.assertTrue(admin.is_staff)
        self.assertTrue(admin.is_superuser)

    def test_platform_admin_is_earliest_active_admin(self):
        """Test that the platform admin is the first active admin."""
        first = User.objects.create_superuser("first_admin", "a1@example.com", PASSWORD)
        User.objects.create_superuser("second_admin", "a2@example.com", PASSWORD)
        self.assertEqual(User.objects.get_platform_admin(), first)

        first.is_active = False
        first.save(update_fields=["is_active"])
        self.assertEqual(User.objects.get_platform_admin().username, "second_admin")

    def test_platform_admin_missing(self):
        """Test that no admin yields None."""
        User.objects.create_user("traveller", "traveller@example.com", PASSWORD)
        self.assertIsNone(User.objects.get_platform_admin())

    def test_vendor_user_gets_vendor_profile(self):
        """Test that registering a vendor user creates a pending vendor profile."""
        user = User.objects.create_user(
            "safari_co", "safari@example.com", PASSWORD, role="vendor", first_name="Safari"
        )
        vendor = Vendor.objects.get(user=user)
        self.assertEqual(vendor.status, "pending")
        self.assertEqual(vendor.business_email, "safari@example.com")


class RegistrationAPITest(APITestCase):
    """Test cases for the registration API."""

    def test_register_tourist(self):
        """Test tourist self-registration."""
        response = self.client.post(
            reverse("register"),
            {
                "username": "traveller",
                "email": "traveller@example.com",
                "password": PASSWORD,
                "phone": "+256700000001",
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["user"]["role"], "tourist")
        self.assertTrue(User.objects.filter(username="traveller").exists())

    def test_register_vendor_with_business_name(self):
        """Test that a vendor registration names the vendor profile."""
        response = self.client.post(
            reverse("register"),
            {
                "username": "nile_tours",
                "email": "nile@example.com",
                "password": PASSWORD,
                "role": "vendor",
                "business_name": "Nile Tours Ltd",
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        vendor = Vendor.objects.get(user__username="nile_tours")
        self.assertEqual(vendor.business_name, "Nile Tours Ltd")
        self.assertEqual(vendor.status, "pending")

    def test_register_admin_is_rejected(self):
        """Test that admin accounts cannot self-register."""
        response = self.client.post(
            reverse("register"),
            {
                "username": "sneaky",
                "email": "sneaky@example.com",
                "password": PASSWORD,
                "role": "admin",
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(User.objects.filter(username="sneaky").exists())

    def test_register_duplicate_username(self):
        """Test that a taken username is a conflict."""
        User.objects.create_user("traveller", "first@example.com", PASSWORD)
        response = self.client.post(
            reverse("register"),
            {"username": "Traveller", "email": "second@example.com", "password": PASSWORD},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(response.data["success"])


class LoginAndProfileAPITest(APITestCase):
    """Test cases for login and the profile endpoint."""

    def setUp(self):
        self.user = User.objects.create_user(
            "traveller", "traveller@example.com", PASSWORD, first_name="Amina"
        )

    def test_login_returns_tokens(self):
        """Test that valid credentials return a JWT pair and the user."""
        response = self.client.post(
            reverse("login"), {"username": "traveller", "password": PASSWORD}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("access", response.data["tokens"])
        self.assertIn("refresh", response.data["tokens"])
        self.assertEqual(response.data["user"]["username"], "traveller")

    def test_login_with_wrong_password(self):
        """Test that invalid credentials are rejected."""
        response = self.client.post(
            reverse("login"), {"username": "traveller", "password": "wrong-password"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_profile_with_bearer_token(self):
        """Test that the access token authenticates the profile endpoint."""
        login = self.client.post(
            reverse("login"), {"username": "traveller", "password": PASSWORD}, format="json"
        )
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {login.data['tokens']['access']}")
        response = self.client.get(reverse("profile"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["first_name"], "Amina")

    def test_profile_update(self):
        """Test that the user can change contact details but not the role."""
        self.client.force_authenticate(self.user)
        response = self.client.patch(
            reverse("profile"), {"phone": "+256700000009", "role": "admin"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.phone, "+256700000009")
        self.assertEqual(self.user.role, "tourist")

    def test_profile_requires_authentication(self):
        """Test that anonymous users cannot read a profile."""
        response = self.client.get(reverse("profile"))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
