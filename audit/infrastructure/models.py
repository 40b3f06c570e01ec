"""
Django models for the audit trail.
"""
import uuid

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models

ENTITY_TYPE_CHOICES = [
    ("customer", "Customer"),
    ("license", "License"),
    ("subscription", "Subscription"),
    ("admin", "Admin"),
]

ACTOR_TYPE_CHOICES = [
    ("customer", "Customer"),
    ("admin", "Admin"),
    ("system", "System"),
    ("billing_provider", "Billing provider"),
]


class AuditLogEntry(models.Model):
    """
    Immutable audit trail row.

    Saving an existing row or deleting one raises.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    entity_type = models.CharField(max_length=20, choices=ENTITY_TYPE_CHOICES)
    entity_id = models.UUIDField(db_index=True)
    action = models.CharField(max_length=64, db_index=True)
    actor_type = models.CharField(max_length=20, choices=ACTOR_TYPE_CHOICES)
    actor_id = models.CharField(max_length=255, null=True, blank=True)
    details = models.JSONField(default=dict, encoder=DjangoJSONEncoder)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = "audit_log_entries"
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["entity_type", "entity_id"]),
        ]

    def __str__(self):
        return f"{self.action} {self.entity_type}:{self.entity_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise PermissionError("Audit log entries are append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PermissionError("Audit log entries are append-only")
