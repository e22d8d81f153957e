from django.contrib import admin
from .models import Vendor


@admin.register(Vendor)
class VendorAdmin(admin.ModelAdmin):
    list_display = ["business_name", "user", "business_email", "status", "approved_at", "created_at"]
    list_filter = ["status", "created_at"]
    search_fields = ["business_name", "business_email", "user__username"]
    readonly_fields = ["approved_at", "approved_by", "created_at", "updated_at"]
    ordering = ["-created_at"]
