"""
ExpireOverdueLicensesHandler.

Validation already expires an overdue license on contact; the sweep
catches licenses nobody has validated since their expiry passed.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List
from uuid import UUID

from audit.domain.audit_entry import AuditLogEntry
from audit.ports.audit_sink import AuditSink
from core.domain.events import EventBus
from core.domain.value_objects import Actor, AuditEntityType
from core.infrastructure.events import event_bus as default_event_bus
from licenses.application.commands.expire_licenses import ExpireOverdueLicensesCommand
from licenses.domain.events import LicenseExpired
from licenses.ports.license_repository import LicenseRepository

logger = logging.getLogger(__name__)


@dataclass
class ExpirySweepResult:
    """Outcome of one sweep."""

    found: int = 0
    expired: List[UUID] = field(default_factory=list)


class ExpireOverdueLicensesHandler:
    """Handler for ExpireOverdueLicensesCommand."""

    def __init__(
        self,
        license_repository: LicenseRepository,
        audit_sink: AuditSink,
        event_bus: EventBus = None,
    ):
        self.license_repository = license_repository
        self.audit_sink = audit_sink
        self.event_bus = event_bus or default_event_bus

    async def handle(self, command: ExpireOverdueLicensesCommand) -> ExpirySweepResult:
        """
        Expire one batch of overdue licenses.

        Each license goes through the same conditional update validation
        uses, so a license reactivated or extended after it was read is
        left alone.

        Args:
            command: ExpireOverdueLicensesCommand

        Returns:
            ExpirySweepResult; ``expired`` is empty on a dry run
        """
        now = command.now or datetime.now(timezone.utc)
        overdue = await self.license_repository.find_overdue(now, limit=command.batch_size)
        result = ExpirySweepResult(found=len(overdue))
        if command.dry_run:
            return result

        for license in overdue:
            if not await self.license_repository.expire_if_overdue(license.id, now):
                continue
            await self.audit_sink.record(
                AuditLogEntry.create(
                    entity_type=AuditEntityType.LICENSE,
                    entity_id=license.id,
                    action="license.expired",
                    actor=Actor.system(),
                    details={"expiresAt": license.expires_at.isoformat(), "source": "sweep"},
                )
            )
            await self.event_bus.publish(
                LicenseExpired(
                    aggregate_id=str(license.id),
                    license_id=license.id,
                    key_hash=license.key_hash,
                )
            )
            result.expired.append(license.id)

        logger.info(
            "Expiry sweep finished",
            extra={"found": result.found, "expired": len(result.expired)},
        )
        return result
