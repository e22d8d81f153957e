from rest_framework import serializers
from django.contrib.auth import authenticate
from django.contrib.auth.password_validation import validate_password
from .models import User
from utils.constants import UserMessage
from utils.validators import UserFieldValidators
from exceptions.handlers import InvalidInputException


class RegistrationSerializer(serializers.ModelSerializer):
    """
    Serializer for tourist and vendor self-registration.

    Handles:
    - Field validation for all registration fields
    - Duplicate email and username checking
    - Role restriction (admin accounts cannot self-register)
    - Business name for vendor registrations
    """
    password = serializers.CharField(write_only=True, min_length=8)
    role = serializers.ChoiceField(choices=["tourist", "vendor"], default="tourist")
    business_name = serializers.CharField(required=False, allow_blank=True, write_only=True)

    class Meta:
        model = User
        fields = [
            "username", "email", "phone", "password",
            "first_name", "last_name", "role", "business_name",
        ]

    def validate_email(self, value):
        return UserFieldValidators.validate_email_uniqueness(value)

    def validate_username(self, value):
        return UserFieldValidators.validate_username_uniqueness(value)

    def validate_password(self, value):
        validate_password(value)
        return value

    def create(self, validated_data):
        business_name = validated_data.pop("business_name", "")
        password = validated_data.pop("password")
        username = validated_data.pop("username")
        email = validated_data.pop("email", None)
        user = User.objects.create_user(username, email, password, **validated_data)
        if user.is_vendor and business_name:
            # The vendor profile is created by the post_save signal
            user.vendor_profile.business_name = business_name
            user.vendor_profile.save(update_fields=["business_name", "updated_at"])
        return user


class UserSerializer(serializers.ModelSerializer):
    """
    Serializer for user profile data display.

    Exposes basic profile fields plus the system-managed role,
    timestamps and active flag as read-only values.
    """

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "phone",
            "first_name",
            "last_name",
            "role",
            "is_active",
            "created_at",
            "last_login",
        ]
        read_only_fields = ["role", "created_at", "last_login", "is_active"]


class UserSummarySerializer(serializers.ModelSerializer):
    """Compact user representation nested inside bookings and transactions."""

    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = ["id", "username", "full_name", "email", "phone"]


class LoginSerializer(serializers.Serializer):
    """
    Serializer for user authentication and login validation.

    Authenticates the username/password pair with Django's authenticate
    function and rejects inactive accounts.
    """

    username = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate(self, data):
        username = data.get("username")
        password = data.get("password")

        if not (username and password):
            raise serializers.ValidationError(UserMessage.INVALID_CREDENTIALS)

        user = authenticate(username=username, password=password)
        if not user:
            raise serializers.ValidationError(UserMessage.INVALID_CREDENTIALS)
        if not user.is_active:
            raise InvalidInputException(UserMessage.ACCOUNT_INACTIVE)
        data["user"] = user
        return data


class UpdateProfileSerializer(serializers.ModelSerializer):
    """
    Serializer for user profile updates.
    Email uniqueness is checked against every other active user.
    """

    class Meta:
        model = User
        fields = ["first_name", "last_name", "email", "phone"]

    def validate_email(self, value):
        return UserFieldValidators.validate_email_uniqueness(
            value, context="profile update", exclude_user=self.instance
        )
