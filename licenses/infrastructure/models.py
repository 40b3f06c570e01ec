"""
License model.

Only the hash of a key is stored; the plaintext is shown once at issue.
"""
import uuid

from django.db import models
from django.utils import timezone

TIER_CHOICES = [
    ("community", "Community"),
    ("team", "Team"),
    ("enterprise", "Enterprise"),
]

STATUS_CHOICES = [
    ("active", "Active"),
    ("suspended", "Suspended"),
    ("revoked", "Revoked"),
    ("expired", "Expired"),
]

SUSPENSION_SOURCE_CHOICES = [
    ("admin", "Admin"),
    ("billing_provider", "Billing provider"),
    ("system", "System"),
]


class License(models.Model):
    """
    A license issued to one customer for one tier.

    Never deleted; revoked and expired rows are kept for the audit trail.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    key_hash = models.CharField(
        max_length=64, unique=True, help_text="SHA-256 of the normalized license key"
    )
    key_hint = models.CharField(max_length=64, help_text="Non-secret rendering for display")
    customer = models.ForeignKey(
        "accounts.Customer", on_delete=models.PROTECT, related_name="licenses"
    )
    subscription = models.OneToOneField(
        "billing.Subscription",
        on_delete=models.PROTECT,
        related_name="license",
        null=True,
        blank=True,
    )
    tier = models.CharField(max_length=20, choices=TIER_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="active")
    expires_at = models.DateTimeField(null=True, blank=True)
    revoked_at = models.DateTimeField(null=True, blank=True)
    revoked_reason = models.TextField(null=True, blank=True)
    suspension_reason = models.TextField(null=True, blank=True)
    suspension_source = models.CharField(
        max_length=20, choices=SUSPENSION_SOURCE_CHOICES, null=True, blank=True
    )
    last_validated_at = models.DateTimeField(null=True, blank=True)
    validation_count = models.PositiveIntegerField(default=0)
    instance_id = models.UUIDField(null=True, blank=True)
    hostname = models.CharField(max_length=255, null=True, blank=True)
    notes = models.TextField(null=True, blank=True)
    version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "licenses"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"]),
            models.Index(fields=["status", "expires_at"]),
            models.Index(fields=["customer", "status"]),
        ]

    def __str__(self):
        return f"{self.key_hint} ({self.status})"
