"""
Billing models.
"""
import uuid

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone

SUBSCRIPTION_STATUS_CHOICES = [
    ("active", "Active"),
    ("trialing", "Trialing"),
    ("past_due", "Past due"),
    ("canceled", "Canceled"),
    ("incomplete", "Incomplete"),
]

PAID_TIER_CHOICES = [
    ("team", "Team"),
    ("enterprise", "Enterprise"),
]

BILLING_CYCLE_CHOICES = [
    ("monthly", "Monthly"),
    ("yearly", "Yearly"),
]

BILLING_EVENT_STATUS_CHOICES = [
    ("received", "Received"),
    ("processed", "Processed"),
    ("ignored", "Ignored"),
    ("failed", "Failed"),
]


class Subscription(models.Model):
    """A subscription mirrored from the billing provider."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    customer = models.ForeignKey(
        "accounts.Customer", on_delete=models.PROTECT, related_name="subscriptions"
    )
    external_id = models.CharField(
        max_length=255, unique=True, help_text="Billing provider subscription id"
    )
    external_customer_id = models.CharField(max_length=255, null=True, blank=True)
    tier = models.CharField(max_length=20, choices=PAID_TIER_CHOICES)
    status = models.CharField(max_length=20, choices=SUBSCRIPTION_STATUS_CHOICES, default="active")
    billing_cycle = models.CharField(max_length=10, choices=BILLING_CYCLE_CHOICES)
    current_period_start = models.DateTimeField(null=True, blank=True)
    current_period_end = models.DateTimeField(null=True, blank=True)
    cancel_at_period_end = models.BooleanField(default=False)
    canceled_at = models.DateTimeField(null=True, blank=True)
    price_id = models.CharField(max_length=255, null=True, blank=True)
    product_id = models.CharField(max_length=255, null=True, blank=True)
    last_event_at = models.DateTimeField(
        null=True, blank=True, help_text="Provider timestamp of the last applied event"
    )
    version = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "subscriptions"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["customer", "status"]),
            models.Index(fields=["current_period_end"]),
        ]

    def __str__(self):
        return f"{self.external_id} ({self.status})"


class BillingEventRecord(models.Model):
    """
    One received billing webhook event.

    ``event_id`` is unique, so a redelivered event finds its earlier row.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event_id = models.CharField(max_length=255, unique=True)
    event_type = models.CharField(max_length=100, db_index=True)
    status = models.CharField(
        max_length=20, choices=BILLING_EVENT_STATUS_CHOICES, default="received", db_index=True
    )
    payload = models.JSONField(encoder=DjangoJSONEncoder, default=dict)
    error = models.TextField(null=True, blank=True)
    attempts = models.PositiveIntegerField(default=0)
    received_at = models.DateTimeField(default=timezone.now)
    processed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "billing_events"
        ordering = ["-received_at"]

    def __str__(self):
        return f"{self.event_type} {self.event_id} ({self.status})"
