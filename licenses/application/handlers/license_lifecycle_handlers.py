"""
Administrative license lifecycle handlers.

Each handler loads the license, applies the entity transition and
persists it with a compare-and-set on (status, version). Losing the
race once triggers a re-read and a second attempt against fresh state.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Tuple

from audit.domain.audit_entry import AuditLogEntry
from audit.ports.audit_sink import AuditSink
from core.domain.events import DomainEvent, EventBus
from core.domain.exceptions import ConcurrentUpdateError, LicenseNotFoundError
from core.domain.value_objects import Actor, ActorType, AuditEntityType
from core.infrastructure.events import event_bus as default_event_bus
from licenses.application.commands.license_lifecycle import (
    ExtendLicenseCommand,
    ReactivateLicenseCommand,
    RevokeLicenseCommand,
    SuspendLicenseCommand,
)
from licenses.application.dto.license_dto import LicenseDetailDTO
from licenses.domain.events import (
    LicenseExtended,
    LicenseReactivated,
    LicenseRevoked,
    LicenseSuspended,
)
from licenses.domain.license import License
from licenses.ports.license_repository import LicenseRepository

logger = logging.getLogger(__name__)

CAS_ATTEMPTS = 2

# (updated license, audit details, event)
Transition = Tuple[License, Dict, DomainEvent]


class LicenseTransitionHandler:
    """
    Shared load, transition and persist loop.

    Args:
        license_repository: License persistence
        audit_sink: Receives one entry per applied transition
        event_bus: Receives one event per applied transition
    """

    action: str = ""

    def __init__(
        self,
        license_repository: LicenseRepository,
        audit_sink: AuditSink,
        event_bus: EventBus = None,
    ):
        self.license_repository = license_repository
        self.audit_sink = audit_sink
        self.event_bus = event_bus or default_event_bus

    async def _apply(
        self,
        license_id,
        actor: Actor,
        transition: Callable[[License], Transition],
    ) -> LicenseDetailDTO:
        for attempt in range(1, CAS_ATTEMPTS + 1):
            current = await self.license_repository.find_by_id(license_id)
            if current is None:
                raise LicenseNotFoundError(f"License {license_id} not found")

            updated, details, event = transition(current)
            saved = await self.license_repository.save_transition(updated, current)
            if saved is not None:
                break
            logger.warning(
                "License changed concurrently, retrying",
                extra={"license_id": str(license_id), "action": self.action, "attempt": attempt},
            )
        else:
            raise ConcurrentUpdateError(f"License {license_id} was modified concurrently")

        await self.audit_sink.record(
            AuditLogEntry.create(
                entity_type=AuditEntityType.LICENSE,
                entity_id=saved.id,
                action=self.action,
                actor=actor,
                details=details,
            )
        )
        await self.event_bus.publish(event)
        logger.info(
            "License transition applied",
            extra={
                "license_id": str(saved.id),
                "action": self.action,
                "status": saved.status.value,
                "actor_type": actor.actor_type.value,
            },
        )
        return LicenseDetailDTO.from_entity(saved)


class RevokeLicenseHandler(LicenseTransitionHandler):
    """Handler for RevokeLicenseCommand. Revocation is terminal."""

    action = "license.revoked"

    async def handle(self, command: RevokeLicenseCommand) -> LicenseDetailDTO:
        def transition(license: License) -> Transition:
            return (
                license.revoke(command.reason),
                {"reason": command.reason, "previousStatus": license.status.value},
                LicenseRevoked(
                    aggregate_id=str(license.id),
                    license_id=license.id,
                    key_hash=license.key_hash,
                    reason=command.reason,
                ),
            )

        return await self._apply(command.license_id, command.actor, transition)


class SuspendLicenseHandler(LicenseTransitionHandler):
    """Handler for SuspendLicenseCommand."""

    action = "license.suspended"

    async def handle(self, command: SuspendLicenseCommand) -> LicenseDetailDTO:
        def transition(license: License) -> Transition:
            return (
                license.suspend(command.reason, source=ActorType.ADMIN),
                {"reason": command.reason},
                LicenseSuspended(
                    aggregate_id=str(license.id),
                    license_id=license.id,
                    key_hash=license.key_hash,
                    reason=command.reason,
                ),
            )

        return await self._apply(command.license_id, command.actor, transition)


class ReactivateLicenseHandler(LicenseTransitionHandler):
    """Handler for ReactivateLicenseCommand."""

    action = "license.reactivated"

    async def handle(self, command: ReactivateLicenseCommand) -> LicenseDetailDTO:
        def transition(license: License) -> Transition:
            return (
                license.reactivate(),
                {"previousReason": license.suspension_reason},
                LicenseReactivated(
                    aggregate_id=str(license.id),
                    license_id=license.id,
                    key_hash=license.key_hash,
                ),
            )

        return await self._apply(command.license_id, command.actor, transition)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class ExtendLicenseHandler(LicenseTransitionHandler):
    """Handler for ExtendLicenseCommand."""

    action = "license.extended"

    async def handle(self, command: ExtendLicenseCommand) -> LicenseDetailDTO:
        now = datetime.now(timezone.utc)

        def transition(license: License) -> Transition:
            return (
                license.extend(command.expires_at, now),
                {
                    "oldExpiry": _isoformat(license.expires_at),
                    "newExpiry": _isoformat(command.expires_at),
                },
                LicenseExtended(
                    aggregate_id=str(license.id),
                    license_id=license.id,
                    key_hash=license.key_hash,
                    expires_at=command.expires_at,
                ),
            )

        return await self._apply(command.license_id, command.actor, transition)
