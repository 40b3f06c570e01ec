"""
Pytest configuration and shared fixtures.
"""

import hashlib
import hmac
import time
import uuid

import pytest
from asgiref.sync import async_to_sync
from django.apps import apps
from django.core.cache import cache

from accounts.infrastructure.models import AdminApiKey, Customer
from accounts.infrastructure.repositories.django_customer_directory import DjangoCustomerDirectory
from audit.infrastructure.repositories.django_audit_sink import DjangoAuditSink
from billing.infrastructure.repositories.django_billing_event_log import DjangoBillingEventLog
from billing.infrastructure.repositories.django_subscription_repository import (
    DjangoSubscriptionRepository,
)
from billing.ports.customer_notifier import CustomerNotifier
from core.domain.value_objects import Actor, LicenseTier
from licenses.application.commands.issue_license import IssueLicenseCommand
from licenses.application.handlers.issue_license_handler import IssueLicenseHandler
from licenses.domain.key_codec import LicenseKeyCodec
from licenses.infrastructure.repositories.django_license_repository import DjangoLicenseRepository
from licenses.infrastructure.signing import SigningContext


@pytest.fixture(autouse=True)
def clear_cache():
    """Rate limit counters and cached statuses must not leak between tests."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def signing_context(monkeypatch):
    """Throwaway keypair, installed as the process signing context."""
    context = SigningContext.generate()
    monkeypatch.setattr(apps.get_app_config("licenses"), "signing_context", context)
    return context


@pytest.fixture
def codec(signing_context):
    """Fixture for LicenseKeyCodec over the test keypair."""
    return LicenseKeyCodec(signing_context)


@pytest.fixture
def license_repository():
    """Fixture for LicenseRepository."""
    return DjangoLicenseRepository()


@pytest.fixture
def customer_directory():
    """Fixture for CustomerDirectory."""
    return DjangoCustomerDirectory()


@pytest.fixture
def audit_sink():
    """Fixture for AuditSink."""
    return DjangoAuditSink()


@pytest.fixture
def subscription_repository():
    """Fixture for SubscriptionRepository."""
    return DjangoSubscriptionRepository()


@pytest.fixture
def billing_event_log():
    """Fixture for BillingEventLog."""
    return DjangoBillingEventLog()


@pytest.fixture
def customer(db):
    """Fixture for a Customer saved in database."""
    unique_id = uuid.uuid4().hex[:8]
    return Customer.objects.create(
        email=f"ada-{unique_id}@example.com",
        first_name="Ada",
        last_name="Lovelace",
        organization_name="Analytical Engines Ltd",
    )


@pytest.fixture
def admin_key(db):
    """Fixture for an active admin API key; returns (model, raw key)."""
    return AdminApiKey.generate("test-suite")


@pytest.fixture
def issuer(license_repository, customer_directory, audit_sink, codec):
    """Fixture for IssueLicenseHandler."""
    return IssueLicenseHandler(
        license_repository=license_repository,
        customer_directory=customer_directory,
        audit_sink=audit_sink,
        codec=codec,
    )


@pytest.fixture
def issue_license(issuer, customer):
    """Issue a license for ``customer``; returns IssuedLicenseDTO."""

    def _issue(tier=LicenseTier.COMMUNITY, expires_at=None, subscription_id=None, customer_id=None):
        return async_to_sync(issuer.handle)(
            IssueLicenseCommand(
                customer_id=customer_id or customer.id,
                tier=tier,
                expires_at=expires_at,
                subscription_id=subscription_id,
                actor=Actor.system(),
            )
        )

    return _issue


class RecordingNotifier(CustomerNotifier):
    """CustomerNotifier that keeps what it was asked to send."""

    def __init__(self):
        self.license_keys = []
        self.payment_failures = []

    async def send_license_key(self, customer, license_key, tier):
        self.license_keys.append((customer.id, license_key, tier))

    async def send_payment_failed(self, customer):
        self.payment_failures.append(customer.id)


@pytest.fixture
def notifier():
    """Fixture for a recording CustomerNotifier."""
    return RecordingNotifier()


@pytest.fixture
def sign_stripe_payload(settings):
    """Build a ``Stripe-Signature`` header for a payload, as Stripe does."""

    def _sign(payload: bytes, secret: str = None, timestamp: int = None) -> str:
        secret = secret or settings.STRIPE_WEBHOOK_SECRET
        timestamp = timestamp or int(time.time())
        signed = f"{timestamp}.".encode() + payload
        digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
        return f"t={timestamp},v1={digest}"

    return _sign


@pytest.fixture
def api_client():
    """Fixture for DRF API client."""
    from rest_framework.test import APIClient

    return APIClient()
