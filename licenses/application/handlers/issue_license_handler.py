"""
IssueLicenseHandler.

Mints a key, persists the license by the key's hash and hands the
plaintext back exactly once.
"""
import logging
from datetime import datetime, timezone

from accounts.ports.customer_directory import CustomerDirectory
from audit.domain.audit_entry import AuditLogEntry
from audit.ports.audit_sink import AuditSink
from core.domain.events import EventBus
from core.domain.exceptions import (
    CustomerNotFoundError,
    DuplicateLicenseKeyError,
    ValidationError,
)
from core.domain.value_objects import AuditEntityType
from core.infrastructure.events import event_bus as default_event_bus
from core.metrics import licenses_issued_total
from licenses.application.commands.issue_license import IssueLicenseCommand
from licenses.application.dto.license_dto import IssuedLicenseDTO
from licenses.domain.events import LicenseIssued
from licenses.domain.key_codec import (
    LicenseKeyCodec,
    LicenseKeyPayload,
    hash_license_key,
    key_hint,
)
from licenses.domain.license import License
from licenses.ports.license_repository import LicenseRepository

logger = logging.getLogger(__name__)

MAX_KEY_GENERATION_ATTEMPTS = 5


class IssueLicenseHandler:
    """
    Handler for IssueLicenseCommand.

    Args:
        license_repository: Where licenses are persisted
        customer_directory: Used to check the customer exists
        audit_sink: Receives ``license.created``
        codec: Key codec bound to the process signing context
        event_bus: Receives ``LicenseIssued``
    """

    def __init__(
        self,
        license_repository: LicenseRepository,
        customer_directory: CustomerDirectory,
        audit_sink: AuditSink,
        codec: LicenseKeyCodec,
        event_bus: EventBus = None,
    ):
        self.license_repository = license_repository
        self.customer_directory = customer_directory
        self.audit_sink = audit_sink
        self.codec = codec
        self.event_bus = event_bus or default_event_bus

    async def handle(self, command: IssueLicenseCommand) -> IssuedLicenseDTO:
        """
        Handle issue license command.

        A key hash collision on insert is retried with a fresh nonce.

        Args:
            command: IssueLicenseCommand

        Returns:
            IssuedLicenseDTO with the persisted license and plaintext key

        Raises:
            CustomerNotFoundError: If the customer does not exist
            ValidationError: If the expiry is in the past or the customer id
                cannot be encoded
            DuplicateLicenseKeyError: If every generation attempt collided
            SubscriptionAlreadyLicensedError: If the subscription already
                has a license
        """
        now = datetime.now(timezone.utc)
        if command.expires_at is not None and command.expires_at <= now:
            raise ValidationError("Expiration date must be in the future")

        customer = await self.customer_directory.find_by_id(command.customer_id)
        if customer is None:
            raise CustomerNotFoundError(f"Customer {command.customer_id} not found")

        for attempt in range(1, MAX_KEY_GENERATION_ATTEMPTS + 1):
            try:
                payload = LicenseKeyPayload(
                    customer_id=command.customer_id,
                    tier=command.tier,
                    created_at=now.date(),
                    expires_at=command.expires_at.date() if command.expires_at else None,
                )
            except ValueError as e:
                raise ValidationError(str(e)) from e

            license_key = self.codec.encode(payload)
            license = License.create(
                key_hash=hash_license_key(license_key),
                key_hint=key_hint(license_key),
                customer_id=command.customer_id,
                tier=command.tier,
                expires_at=command.expires_at,
                notes=command.notes,
                subscription_id=command.subscription_id,
            )
            try:
                saved = await self.license_repository.add(license)
                break
            except DuplicateLicenseKeyError:
                logger.warning(
                    "License key collision, regenerating",
                    extra={"attempt": attempt, "customer_id": command.customer_id},
                )
                if attempt == MAX_KEY_GENERATION_ATTEMPTS:
                    raise

        await self.audit_sink.record(
            AuditLogEntry.create(
                entity_type=AuditEntityType.LICENSE,
                entity_id=saved.id,
                action="license.created",
                actor=command.actor,
                details={"tier": saved.tier.value, "customerId": saved.customer_id},
            )
        )
        await self.event_bus.publish(
            LicenseIssued(
                aggregate_id=str(saved.id),
                license_id=saved.id,
                key_hash=saved.key_hash,
                customer_id=saved.customer_id,
                tier=saved.tier,
                subscription_id=saved.subscription_id,
            )
        )
        licenses_issued_total.labels(tier=saved.tier.value).inc()
        logger.info(
            "License issued",
            extra={
                "license_id": str(saved.id),
                "customer_id": saved.customer_id,
                "tier": saved.tier.value,
                "subscription_id": str(saved.subscription_id) if saved.subscription_id else None,
            },
        )
        return IssuedLicenseDTO(license=saved, license_key=license_key)
