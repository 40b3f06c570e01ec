"""
Django admin configuration for licenses app.
"""
from django.contrib import admin
from django.utils.html import format_html

from licenses.infrastructure.models import License


@admin.register(License)
class LicenseAdmin(admin.ModelAdmin):
    """
    Admin interface for License model.

    Lifecycle changes go through the admin API so they are audited;
    this screen is read-only.
    """

    list_display = [
        "key_hint",
        "customer",
        "tier",
        "status_display",
        "expires_at",
        "validation_count",
        "last_validated_at",
        "created_at",
    ]
    list_filter = ["status", "tier", "expires_at", "created_at"]
    search_fields = ["key_hint", "customer__email", "customer__organization_name", "hostname"]
    readonly_fields = [
        "id",
        "key_hash",
        "key_hint",
        "customer",
        "subscription",
        "tier",
        "status",
        "expires_at",
        "revoked_at",
        "revoked_reason",
        "suspension_reason",
        "suspension_source",
        "last_validated_at",
        "validation_count",
        "instance_id",
        "hostname",
        "version",
        "created_at",
        "updated_at",
    ]
    fieldsets = (
        (
            "Basic Information",
            {
                "fields": ("id", "key_hint", "key_hash", "customer", "subscription", "tier", "notes"),
            },
        ),
        (
            "Lifecycle",
            {
                "fields": (
                    "status",
                    "expires_at",
                    "revoked_at",
                    "revoked_reason",
                    "suspension_reason",
                    "suspension_source",
                    "version",
                ),
            },
        ),
        (
            "Telemetry",
            {
                "fields": ("last_validated_at", "validation_count", "instance_id", "hostname"),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
                "classes": ("collapse",),
            },
        ),
    )

    def status_display(self, obj):
        """Display status with color coding."""
        colors = {
            "active": "green",
            "suspended": "orange",
            "revoked": "red",
            "expired": "gray",
        }
        color = colors.get(obj.status, "black")
        return format_html(
            '<span style="color: {}; font-weight: bold;">{}</span>',
            color,
            obj.status.upper(),
        )

    status_display.short_description = "Status"

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def get_queryset(self, request):
        """Optimize queryset."""
        return super().get_queryset(request).select_related("customer", "subscription")
