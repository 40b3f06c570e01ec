"""
ValidateLicenseHandler.

Answers "is this key entitled, and to what?" for a self-hosted
deployment. Every failure is reported as not entitled.
"""
import logging
from datetime import datetime, timezone

from accounts.ports.customer_directory import CustomerDirectory
from audit.domain.audit_entry import AuditLogEntry
from audit.ports.audit_sink import AuditSink
from core.domain.events import EventBus
from core.domain.exceptions import ConcurrentUpdateError, LicenseError, LicenseErrorReason
from core.domain.value_objects import Actor, ActorType, AuditEntityType, LicenseStatus
from core.infrastructure.events import event_bus as default_event_bus
from core.metrics import license_validations_total
from licenses.application.commands.validate_license import ValidateLicenseCommand
from licenses.application.dto.license_dto import EntitlementSnapshotDTO
from licenses.domain.events import LicenseExpired
from licenses.domain.key_codec import LicenseKeyCodec, hash_license_key
from licenses.domain.license import License
from licenses.domain.tiers import get_tier
from licenses.ports.license_repository import LicenseRepository

logger = logging.getLogger(__name__)

VALIDATION_ATTEMPTS = 2

_STATUS_REASONS = {
    LicenseStatus.REVOKED: LicenseErrorReason.REVOKED,
    LicenseStatus.SUSPENDED: LicenseErrorReason.SUSPENDED,
    LicenseStatus.EXPIRED: LicenseErrorReason.EXPIRED,
}


class ValidateLicenseHandler:
    """
    Handler for ValidateLicenseCommand.

    Checks run in a fixed order: key shape and checksum, lookup by hash,
    revoked, suspended, expired, then the expiry clock. A key whose
    expiry has passed is moved to expired as a side effect.

    Args:
        license_repository: License persistence
        customer_directory: Supplies the organization name
        audit_sink: Receives ``license.validated`` and ``license.expired``
        codec: Key codec bound to the process signing context
        verify_checksum: Re-derive and compare the checksum before lookup
        event_bus: Receives ``LicenseExpired``
    """

    def __init__(
        self,
        license_repository: LicenseRepository,
        customer_directory: CustomerDirectory,
        audit_sink: AuditSink,
        codec: LicenseKeyCodec,
        verify_checksum: bool = True,
        event_bus: EventBus = None,
    ):
        self.license_repository = license_repository
        self.customer_directory = customer_directory
        self.audit_sink = audit_sink
        self.codec = codec
        self.verify_checksum = verify_checksum
        self.event_bus = event_bus or default_event_bus

    async def handle(self, command: ValidateLicenseCommand) -> EntitlementSnapshotDTO:
        """
        Handle validate license command.

        Args:
            command: ValidateLicenseCommand

        Returns:
            EntitlementSnapshotDTO for an entitled key

        Raises:
            LicenseError: With the reason the key is not entitled
        """
        try:
            snapshot = await self._validate(command)
        except LicenseError as e:
            license_validations_total.labels(outcome=e.reason.name.lower()).inc()
            logger.info(
                "License validation rejected",
                extra={"reason": e.code, "instance_id": str(command.instance_id)},
            )
            raise
        license_validations_total.labels(outcome="valid").inc()
        return snapshot

    async def _validate(self, command: ValidateLicenseCommand) -> EntitlementSnapshotDTO:
        if self.codec.decode(command.license_key) is None:
            raise LicenseError(LicenseErrorReason.NOT_FOUND)
        if self.verify_checksum and not self.codec.verify(command.license_key):
            raise LicenseError(LicenseErrorReason.NOT_FOUND)

        key_hash = hash_license_key(command.license_key)
        license = await self.license_repository.find_by_key_hash(key_hash)
        if license is None:
            raise LicenseError(LicenseErrorReason.NOT_FOUND)

        now = datetime.now(timezone.utc)
        license = await self._record(license, command, now)

        await self.audit_sink.record(
            AuditLogEntry.create(
                entity_type=AuditEntityType.LICENSE,
                entity_id=license.id,
                action="license.validated",
                actor=Actor(
                    actor_type=ActorType.CUSTOMER,
                    actor_id=str(license.customer_id),
                    ip_address=command.ip_address,
                    user_agent=command.user_agent,
                ),
                details={"instanceId": str(command.instance_id), "hostname": command.hostname},
            )
        )

        customer = await self.customer_directory.find_by_id(license.customer_id)
        definition = get_tier(license.tier)
        return EntitlementSnapshotDTO(
            valid=True,
            tier=license.tier.value,
            expires_at=license.expires_at,
            limits=definition.limits,
            features=definition.features,
            organization=customer.display_name if customer else None,
            validated_at=now,
        )

    async def _record(
        self, license: License, command: ValidateLicenseCommand, now: datetime
    ) -> License:
        """
        Apply the status checks and record the validation.

        Both writes are conditional on the row still being active. When one
        matches nothing a concurrent transition won, so the row is re-read
        and the checks run again against what it left behind.

        Returns:
            The license as it was when the validation was recorded

        Raises:
            LicenseError: With the reason the persisted license is not entitled
            ConcurrentUpdateError: If the row kept changing underneath
        """
        for _ in range(VALIDATION_ATTEMPTS):
            self._raise_for_status(license)
            if license.is_past_expiry(now):
                if await self._expire(license, now):
                    raise LicenseError(LicenseErrorReason.EXPIRED)
            elif await self.license_repository.record_validation(
                license.id, command.instance_id, command.hostname, now
            ):
                return license

            license = await self.license_repository.find_by_id(license.id)
            if license is None:
                raise LicenseError(LicenseErrorReason.NOT_FOUND)

        self._raise_for_status(license)
        if license.is_past_expiry(now):
            raise LicenseError(LicenseErrorReason.EXPIRED)
        raise ConcurrentUpdateError(f"License {license.id} was modified concurrently")

    @staticmethod
    def _raise_for_status(license: License) -> None:
        reason = _STATUS_REASONS.get(license.status)
        if reason is not None:
            raise LicenseError(reason)

    async def _expire(self, license: License, now: datetime) -> bool:
        if not await self.license_repository.expire_if_overdue(license.id, now):
            return False
        await self.audit_sink.record(
            AuditLogEntry.create(
                entity_type=AuditEntityType.LICENSE,
                entity_id=license.id,
                action="license.expired",
                actor=Actor.system(),
                details={"expiresAt": license.expires_at.isoformat()},
            )
        )
        await self.event_bus.publish(
            LicenseExpired(
                aggregate_id=str(license.id),
                license_id=license.id,
                key_hash=license.key_hash,
            )
        )
        logger.info("License expired on validation", extra={"license_id": str(license.id)})
        return True
