"""
Django models for accounts.
"""
import hashlib
import secrets
import uuid
from typing import Tuple

from django.db import models
from django.utils import timezone


class Customer(models.Model):
    """
    A paying (or community) customer.

    The integer primary key is embedded in license keys, so it must fit
    in 32 bits.
    """

    email = models.EmailField(unique=True)
    first_name = models.CharField(max_length=100, blank=True, default="")
    last_name = models.CharField(max_length=100, blank=True, default="")
    organization_name = models.CharField(max_length=255, blank=True, null=True)
    stripe_customer_id = models.CharField(max_length=255, blank=True, null=True, unique=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "customers"
        ordering = ["-created_at"]

    def __str__(self):
        return self.email


def hash_admin_key(raw_key: str) -> str:
    """One-way hash used to store and look up admin API keys."""
    return hashlib.sha256(raw_key.encode()).hexdigest()


class AdminApiKey(models.Model):
    """
    Credential for the administrative API.

    Only the hash is stored; the raw key is returned once by ``generate``.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100)
    key_prefix = models.CharField(max_length=8, editable=False)
    key_hash = models.CharField(max_length=64, unique=True, editable=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    last_used_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "admin_api_keys"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.name} - {self.key_prefix}..."

    @classmethod
    def generate(cls, name: str) -> Tuple["AdminApiKey", str]:
        """
        Create and persist a new key.

        Args:
            name: Label for the key holder

        Returns:
            Tuple of (saved model, raw key)
        """
        raw_key = secrets.token_urlsafe(32)
        api_key = cls.objects.create(
            name=name,
            key_prefix=raw_key[:8],
            key_hash=hash_admin_key(raw_key),
        )
        return api_key, raw_key

    def mark_used(self) -> None:
        """Record last use without touching other columns."""
        now = timezone.now()
        AdminApiKey.objects.filter(pk=self.pk).update(last_used_at=now)
        self.last_used_at = now
