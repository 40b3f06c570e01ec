"""
Django implementation of LicenseRepository port.

This adapter converts between domain entities and Django ORM models.
Lifecycle writes are single UPDATE statements filtered on the state the
caller read, so two racing writers can never both win.
"""
import uuid
from datetime import datetime
from typing import List, Optional

from asgiref.sync import sync_to_async
from django.db import IntegrityError, transaction
from django.db.models import F, Q

from core.domain.exceptions import DuplicateLicenseKeyError, SubscriptionAlreadyLicensedError
from core.domain.value_objects import ActorType, LicenseStatus, LicenseTier
from licenses.domain.license import License
from licenses.infrastructure.models import License as LicenseModel
from licenses.ports.license_repository import LicenseRepository


class DjangoLicenseRepository(LicenseRepository):
    """
    Django ORM implementation of LicenseRepository.
    """

    def _to_domain(self, model: LicenseModel) -> License:
        """
        Convert Django model to domain entity.

        Args:
            model: Django License model

        Returns:
            License domain entity
        """
        return License(
            id=model.id,
            key_hash=model.key_hash,
            key_hint=model.key_hint,
            customer_id=model.customer_id,
            tier=LicenseTier(model.tier),
            status=LicenseStatus(model.status),
            subscription_id=model.subscription_id,
            expires_at=model.expires_at,
            revoked_at=model.revoked_at,
            revoked_reason=model.revoked_reason,
            suspension_reason=model.suspension_reason,
            suspension_source=(
                ActorType(model.suspension_source) if model.suspension_source else None
            ),
            last_validated_at=model.last_validated_at,
            validation_count=model.validation_count,
            instance_id=model.instance_id,
            hostname=model.hostname,
            notes=model.notes,
            version=model.version,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    @staticmethod
    def _lifecycle_fields(license: License) -> dict:
        return {
            "status": license.status.value,
            "expires_at": license.expires_at,
            "revoked_at": license.revoked_at,
            "revoked_reason": license.revoked_reason,
            "suspension_reason": license.suspension_reason,
            "suspension_source": (
                license.suspension_source.value if license.suspension_source else None
            ),
        }

    @sync_to_async
    def add(self, license: License) -> License:
        try:
            with transaction.atomic():
                model = LicenseModel.objects.create(
                    id=license.id,
                    key_hash=license.key_hash,
                    key_hint=license.key_hint,
                    customer_id=license.customer_id,
                    subscription_id=license.subscription_id,
                    tier=license.tier.value,
                    notes=license.notes,
                    version=license.version,
                    created_at=license.created_at,
                    updated_at=license.updated_at,
                    **self._lifecycle_fields(license),
                )
        except IntegrityError as e:
            if LicenseModel.objects.filter(key_hash=license.key_hash).exists():
                raise DuplicateLicenseKeyError() from e
            if (
                license.subscription_id
                and LicenseModel.objects.filter(subscription_id=license.subscription_id).exists()
            ):
                raise SubscriptionAlreadyLicensedError() from e
            raise
        return self._to_domain(model)

    @sync_to_async
    def find_by_id(self, license_id: uuid.UUID) -> Optional[License]:
        model = LicenseModel.objects.filter(id=license_id).first()
        return self._to_domain(model) if model else None

    @sync_to_async
    def find_by_key_hash(self, key_hash: str) -> Optional[License]:
        model = LicenseModel.objects.filter(key_hash=key_hash).first()
        return self._to_domain(model) if model else None

    @sync_to_async
    def find_by_subscription(self, subscription_id: uuid.UUID) -> Optional[License]:
        model = LicenseModel.objects.filter(subscription_id=subscription_id).first()
        return self._to_domain(model) if model else None

    @sync_to_async
    def save_transition(self, updated: License, expected: License) -> Optional[License]:
        rows = LicenseModel.objects.filter(
            id=expected.id,
            status=expected.status.value,
            version=expected.version,
        ).update(
            **self._lifecycle_fields(updated),
            updated_at=updated.updated_at,
            version=F("version") + 1,
        )
        if not rows:
            return None
        return self._to_domain(LicenseModel.objects.get(id=expected.id))

    @sync_to_async
    def expire_if_overdue(self, license_id: uuid.UUID, now: datetime) -> bool:
        rows = LicenseModel.objects.filter(
            id=license_id,
            status=LicenseStatus.ACTIVE.value,
            expires_at__isnull=False,
            expires_at__lte=now,
        ).update(
            status=LicenseStatus.EXPIRED.value,
            updated_at=now,
            version=F("version") + 1,
        )
        return rows > 0

    @sync_to_async
    def record_validation(
        self,
        license_id: uuid.UUID,
        instance_id: uuid.UUID,
        hostname: str,
        now: datetime,
    ) -> bool:
        rows = (
            LicenseModel.objects.filter(id=license_id, status=LicenseStatus.ACTIVE.value)
            .filter(Q(expires_at__isnull=True) | Q(expires_at__gt=now))
            .update(
                validation_count=F("validation_count") + 1,
                last_validated_at=now,
                instance_id=instance_id,
                hostname=hostname,
            )
        )
        return rows > 0

    @sync_to_async
    def find_overdue(self, now: datetime, limit: int = 500) -> List[License]:
        models = LicenseModel.objects.filter(
            status=LicenseStatus.ACTIVE.value,
            expires_at__isnull=False,
            expires_at__lte=now,
        ).order_by("expires_at")[:limit]
        return [self._to_domain(model) for model in models]
