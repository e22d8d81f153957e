from django.apps import AppConfig


class BookingsystemConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "bookingsystem"
