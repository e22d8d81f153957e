from django.contrib import admin
from .models import Review, Service, ServiceCategory, ServiceDeleteRequest


@admin.register(ServiceCategory)
class ServiceCategoryAdmin(admin.ModelAdmin):
    list_display = ["name", "kind", "created_at"]
    list_filter = ["kind"]
    search_fields = ["name"]


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ["title", "vendor", "category", "price", "currency", "status", "created_at"]
    list_filter = ["status", "category", "created_at"]
    search_fields = ["title", "vendor__business_name", "location"]
    readonly_fields = ["approved_at", "approved_by", "created_at", "updated_at"]
    ordering = ["-created_at"]


@admin.register(ServiceDeleteRequest)
class ServiceDeleteRequestAdmin(admin.ModelAdmin):
    list_display = ["service_title", "vendor", "status", "requested_at", "reviewed_at"]
    list_filter = ["status", "requested_at"]
    search_fields = ["service_title", "vendor__business_name"]
    ordering = ["-requested_at"]


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ["booking", "service", "tourist", "rating", "status", "created_at"]
    list_filter = ["status", "rating", "created_at"]
    search_fields = ["service__title", "tourist__username", "comment"]
    readonly_fields = ["reviewed_at", "reviewed_by", "created_at", "updated_at"]
    ordering = ["-created_at"]
