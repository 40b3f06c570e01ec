"""
Django admin configuration for billing app.
"""
from django.contrib import admin

from billing.infrastructure.models import BillingEventRecord, Subscription


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    """Admin interface for Subscription model. State comes from the billing provider."""

    list_display = [
        "external_id",
        "customer",
        "tier",
        "status",
        "billing_cycle",
        "current_period_end",
        "cancel_at_period_end",
    ]
    list_filter = ["status", "tier", "billing_cycle", "cancel_at_period_end"]
    search_fields = ["external_id", "external_customer_id", "customer__email"]
    readonly_fields = [field.name for field in Subscription._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def get_queryset(self, request):
        """Optimize queryset."""
        return super().get_queryset(request).select_related("customer")


@admin.register(BillingEventRecord)
class BillingEventRecordAdmin(admin.ModelAdmin):
    """Admin interface for the billing event log."""

    list_display = ["event_id", "event_type", "status", "attempts", "received_at", "processed_at"]
    list_filter = ["status", "event_type"]
    search_fields = ["event_id"]
    readonly_fields = [field.name for field in BillingEventRecord._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
