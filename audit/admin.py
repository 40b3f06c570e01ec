"""
Django admin configuration for the audit trail.
"""
from django.contrib import admin

from audit.infrastructure.models import AuditLogEntry


@admin.register(AuditLogEntry)
class AuditLogEntryAdmin(admin.ModelAdmin):
    """Read-only view of the audit trail."""

    list_display = ["created_at", "action", "entity_type", "entity_id", "actor_type", "actor_id"]
    list_filter = ["action", "entity_type", "actor_type"]
    search_fields = ["entity_id", "actor_id", "ip_address"]
    date_hierarchy = "created_at"

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
