"""
License domain entity.

This is the core domain entity representing a license.
It contains business logic and is independent of infrastructure.
"""
import dataclasses
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from core.domain.exceptions import InvalidLicenseStatusError, ValidationError
from core.domain.value_objects import ActorType, LicenseStatus, LicenseTier


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LicenseState:
    """
    The mutable part of a license that lifecycle transitions act on.

    ``suspension_source`` records who suspended the license, so a billing
    recovery never lifts a suspension an administrator imposed.
    """

    status: LicenseStatus
    expires_at: Optional[datetime] = None
    suspension_reason: Optional[str] = None
    suspension_source: Optional[ActorType] = None


@dataclass(frozen=True)
class License:
    """
    License domain entity.

    Immutable; every transition returns a new instance. ``version``
    increases with each persisted transition and is what concurrent
    writers compare against.
    """

    id: uuid.UUID
    key_hash: str
    key_hint: str
    customer_id: int
    tier: LicenseTier
    status: LicenseStatus
    created_at: datetime
    updated_at: datetime
    subscription_id: Optional[uuid.UUID] = None
    expires_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None
    revoked_reason: Optional[str] = None
    suspension_reason: Optional[str] = None
    suspension_source: Optional[ActorType] = None
    last_validated_at: Optional[datetime] = None
    validation_count: int = 0
    instance_id: Optional[uuid.UUID] = None
    hostname: Optional[str] = None
    notes: Optional[str] = None
    version: int = 1

    def __post_init__(self):
        """Validate license entity."""
        if not self.key_hash or len(self.key_hash) != 64:
            raise ValueError("Key hash must be a SHA-256 hex digest")
        if self.customer_id is None:
            raise ValueError("Customer ID is required")

    @classmethod
    def create(
        cls,
        key_hash: str,
        key_hint: str,
        customer_id: int,
        tier: LicenseTier,
        expires_at: Optional[datetime] = None,
        notes: Optional[str] = None,
        subscription_id: Optional[uuid.UUID] = None,
        license_id: Optional[uuid.UUID] = None,
    ) -> "License":
        """
        Create a new, active License entity.

        Args:
            key_hash: Hash of the normalized key
            key_hint: Non-secret rendering of the key
            customer_id: Owning customer
            tier: Entitlement tier
            expires_at: Optional expiration datetime
            notes: Free-text notes
            subscription_id: Subscription this license is sold through
            license_id: Optional UUID (generated if not provided)

        Returns:
            License entity instance
        """
        now = _utcnow()
        return cls(
            id=license_id or uuid.uuid4(),
            key_hash=key_hash,
            key_hint=key_hint,
            customer_id=customer_id,
            tier=tier,
            status=LicenseStatus.ACTIVE,
            subscription_id=subscription_id,
            expires_at=expires_at,
            notes=notes,
            created_at=now,
            updated_at=now,
        )

    @property
    def state(self) -> LicenseState:
        return LicenseState(
            status=self.status,
            expires_at=self.expires_at,
            suspension_reason=self.suspension_reason,
            suspension_source=self.suspension_source,
        )

    def with_state(self, state: LicenseState) -> "License":
        """Copy of this license carrying ``state``."""
        return dataclasses.replace(
            self,
            status=state.status,
            expires_at=state.expires_at,
            suspension_reason=state.suspension_reason,
            suspension_source=state.suspension_source,
            updated_at=_utcnow(),
        )

    def is_past_expiry(self, current_time: Optional[datetime] = None) -> bool:
        """True once ``expires_at`` has been reached."""
        if self.expires_at is None:
            return False
        return self.expires_at <= (current_time or _utcnow())

    def is_valid(self, current_time: Optional[datetime] = None) -> bool:
        """
        Check if license currently grants entitlement.

        Args:
            current_time: Current time (defaults to now)

        Returns:
            True if license is active and not past its expiry
        """
        return self.status == LicenseStatus.ACTIVE and not self.is_past_expiry(current_time)

    def revoke(self, reason: str, current_time: Optional[datetime] = None) -> "License":
        """
        Terminally revoke the license.

        Raises:
            InvalidLicenseStatusError: If already revoked
        """
        if self.status == LicenseStatus.REVOKED:
            raise InvalidLicenseStatusError("License is already revoked")
        now = current_time or _utcnow()
        return dataclasses.replace(
            self,
            status=LicenseStatus.REVOKED,
            revoked_at=now,
            revoked_reason=reason,
            updated_at=now,
        )

    def suspend(self, reason: str, source: ActorType) -> "License":
        """
        Suspend an active license.

        Raises:
            InvalidLicenseStatusError: If the license is not active
        """
        if self.status != LicenseStatus.ACTIVE:
            raise InvalidLicenseStatusError(
                f"Only active licenses can be suspended (status is {self.status})"
            )
        return self.with_state(
            LicenseState(
                status=LicenseStatus.SUSPENDED,
                expires_at=self.expires_at,
                suspension_reason=reason,
                suspension_source=source,
            )
        )

    def reactivate(self) -> "License":
        """
        Lift a suspension.

        Raises:
            InvalidLicenseStatusError: If the license is not suspended
        """
        if self.status != LicenseStatus.SUSPENDED:
            raise InvalidLicenseStatusError("Only suspended licenses can be reactivated")
        return self.with_state(LicenseState(status=LicenseStatus.ACTIVE, expires_at=self.expires_at))

    def extend(self, new_expires_at: datetime, current_time: Optional[datetime] = None) -> "License":
        """
        Move the expiry forward; an expired license becomes active again.

        Raises:
            InvalidLicenseStatusError: If the license is revoked
            ValidationError: If the new expiry is not in the future
        """
        if self.status == LicenseStatus.REVOKED:
            raise InvalidLicenseStatusError("Revoked licenses cannot be extended")
        if new_expires_at <= (current_time or _utcnow()):
            raise ValidationError("Expiration date must be in the future")

        status = LicenseStatus.ACTIVE if self.status == LicenseStatus.EXPIRED else self.status
        return self.with_state(
            LicenseState(
                status=status,
                expires_at=new_expires_at,
                suspension_reason=self.suspension_reason,
                suspension_source=self.suspension_source,
            )
        )
