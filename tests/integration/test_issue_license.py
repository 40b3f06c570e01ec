"""
Integration tests for IssueLicenseHandler.
"""
from datetime import timedelta

import pytest
from asgiref.sync import async_to_sync
from django.utils import timezone

from audit.infrastructure.models import AuditLogEntry as AuditLogEntryModel
from billing.domain.subscription import Subscription, SubscriptionState
from core.domain.exceptions import (
    CustomerNotFoundError,
    DuplicateLicenseKeyError,
    SubscriptionAlreadyLicensedError,
    ValidationError,
)
from core.domain.value_objects import BillingCycle, LicenseStatus, LicenseTier, SubscriptionStatus
from licenses.application.commands.issue_license import IssueLicenseCommand
from licenses.application.handlers.issue_license_handler import (
    MAX_KEY_GENERATION_ATTEMPTS,
    IssueLicenseHandler,
)
from licenses.domain.key_codec import KEY_PATTERN, decode_license_key, hash_license_key
from licenses.domain.license import License
from licenses.infrastructure.models import License as LicenseModel


class CollidingRepository:
    """Wraps a repository so the first ``collisions`` inserts report a duplicate key."""

    def __init__(self, inner, collisions):
        self.inner = inner
        self.collisions = collisions
        self.attempts = 0

    async def add(self, license):
        self.attempts += 1
        if self.attempts <= self.collisions:
            raise DuplicateLicenseKeyError()
        return await self.inner.add(license)


class RepeatingCodec:
    """Wraps a codec so the first ``repeats`` encodes return an already issued key."""

    def __init__(self, inner, key, repeats=1):
        self.inner = inner
        self.key = key
        self.repeats = repeats
        self.encodes = 0

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def encode(self, payload):
        self.encodes += 1
        if self.encodes <= self.repeats:
            return self.key
        return self.inner.encode(payload)


@pytest.mark.django_db
@pytest.mark.integration
class TestIssueLicense:
    """Integration tests for license issuance."""

    def test_issue_community_license(self, issue_license, codec, customer):
        result = issue_license()

        assert KEY_PATTERN.match(result.license_key)
        assert codec.verify(result.license_key)
        assert result.license.status == LicenseStatus.ACTIVE
        assert result.license.tier == LicenseTier.COMMUNITY
        payload = decode_license_key(result.license_key)
        assert payload.customer_id == customer.id
        assert payload.expires_at is None

    def test_plaintext_key_is_not_stored(self, issue_license):
        result = issue_license()

        model = LicenseModel.objects.get(id=result.license.id)
        assert model.key_hash == hash_license_key(result.license_key)
        stored = [str(value) for value in vars(model).values()]
        assert result.license_key not in stored

    def test_expiry_is_encoded_and_stored(self, issue_license):
        expires_at = timezone.now() + timedelta(days=365)

        result = issue_license(tier=LicenseTier.ENTERPRISE, expires_at=expires_at)

        assert decode_license_key(result.license_key).expires_at == expires_at.date()
        assert LicenseModel.objects.get(id=result.license.id).expires_at == expires_at

    def test_issue_writes_audit_entry(self, issue_license, customer):
        result = issue_license(tier=LicenseTier.TEAM)

        entry = AuditLogEntryModel.objects.get(entity_id=result.license.id, action="license.created")
        assert entry.actor_type == "system"
        assert entry.details == {"tier": "team", "customerId": customer.id}

    def test_past_expiry_is_rejected(self, issue_license):
        with pytest.raises(ValidationError):
            issue_license(expires_at=timezone.now() - timedelta(minutes=1))
        assert LicenseModel.objects.count() == 0

    def test_unknown_customer(self, issue_license):
        with pytest.raises(CustomerNotFoundError):
            issue_license(customer_id=999_999)

    def test_collision_is_retried_with_fresh_nonce(
        self, license_repository, customer_directory, audit_sink, codec, customer
    ):
        repository = CollidingRepository(license_repository, collisions=2)
        handler = IssueLicenseHandler(repository, customer_directory, audit_sink, codec)

        result = async_to_sync(handler.handle)(
            IssueLicenseCommand(customer_id=customer.id, tier=LicenseTier.TEAM)
        )

        assert repository.attempts == 3
        assert LicenseModel.objects.filter(id=result.license.id).exists()

    def test_persistent_collisions_give_up(
        self, license_repository, customer_directory, audit_sink, codec, customer
    ):
        repository = CollidingRepository(license_repository, collisions=MAX_KEY_GENERATION_ATTEMPTS)
        handler = IssueLicenseHandler(repository, customer_directory, audit_sink, codec)

        with pytest.raises(DuplicateLicenseKeyError):
            async_to_sync(handler.handle)(
                IssueLicenseCommand(customer_id=customer.id, tier=LicenseTier.TEAM)
            )
        assert repository.attempts == MAX_KEY_GENERATION_ATTEMPTS

    def test_duplicate_key_hash_is_rejected_by_the_database(
        self, issue_license, license_repository, customer
    ):
        issued = issue_license()
        duplicate = License.create(
            key_hash=issued.license.key_hash,
            key_hint=issued.license.key_hint,
            customer_id=customer.id,
            tier=LicenseTier.TEAM,
        )

        with pytest.raises(DuplicateLicenseKeyError):
            async_to_sync(license_repository.add)(duplicate)

        assert LicenseModel.objects.count() == 1

    def test_stored_collision_is_regenerated(
        self, issue_license, license_repository, customer_directory, audit_sink, codec, customer
    ):
        existing = issue_license()
        repeating = RepeatingCodec(codec, existing.license_key)
        handler = IssueLicenseHandler(license_repository, customer_directory, audit_sink, repeating)

        result = async_to_sync(handler.handle)(
            IssueLicenseCommand(customer_id=customer.id, tier=LicenseTier.COMMUNITY)
        )

        assert repeating.encodes == 2
        assert result.license_key != existing.license_key
        assert LicenseModel.objects.count() == 2

    def test_one_license_per_subscription(self, issue_license, customer, subscription_repository):
        subscription, _ = async_to_sync(subscription_repository.get_or_create)(
            Subscription.create(
                customer_id=customer.id,
                external_id="sub_issue_test",
                tier=LicenseTier.TEAM,
                billing_cycle=BillingCycle.MONTHLY,
                state=SubscriptionState(status=SubscriptionStatus.ACTIVE),
            )
        )
        issue_license(tier=LicenseTier.TEAM, subscription_id=subscription.id)

        with pytest.raises(SubscriptionAlreadyLicensedError):
            issue_license(tier=LicenseTier.TEAM, subscription_id=subscription.id)
