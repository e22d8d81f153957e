from django.contrib import admin
from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ['id', 'service', 'vendor', 'tourist', 'guest_name', 'guests',
                    'total_amount', 'currency', 'status', 'payment_status', 'created_at']
    list_filter = ['status', 'payment_status', 'currency', 'created_at']
    search_fields = ['id', 'tourist__username', 'guest_name', 'guest_email', 'vendor__business_name']
    readonly_fields = ['created_at', 'updated_at']
    ordering = ['-created_at']
