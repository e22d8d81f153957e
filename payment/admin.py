from django.contrib import admin
from .models import Transaction, Wallet


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ["reference", "transaction_type", "status", "amount", "currency",
                    "vendor", "booking", "payment_method", "created_at"]
    list_filter = ["transaction_type", "status", "payment_method", "created_at"]
    search_fields = ["reference", "vendor__business_name", "booking__id"]
    readonly_fields = ["created_at", "updated_at"]
    ordering = ["-created_at"]


@admin.register(Wallet)
class WalletAdmin(admin.ModelAdmin):
    list_display = ["vendor", "user", "balance", "currency", "updated_at"]
    search_fields = ["vendor__business_name", "user__username"]
    readonly_fields = ["balance", "created_at", "updated_at"]
