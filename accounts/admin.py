"""
Django admin configuration for accounts.
"""
from django.contrib import admin

from accounts.infrastructure.models import AdminApiKey, Customer


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    """Admin interface for Customer model."""

    list_display = ["email", "organization_name", "stripe_customer_id", "is_active", "created_at"]
    list_filter = ["is_active"]
    search_fields = ["email", "organization_name", "stripe_customer_id"]
    readonly_fields = ["created_at", "updated_at"]


@admin.register(AdminApiKey)
class AdminApiKeyAdmin(admin.ModelAdmin):
    """Admin interface for admin API keys. Keys are minted by ``create_admin_key``."""

    list_display = ["name", "key_prefix", "is_active", "created_at", "last_used_at"]
    list_filter = ["is_active"]
    readonly_fields = ["id", "key_prefix", "key_hash", "created_at", "last_used_at"]

    def has_add_permission(self, request):
        return False
