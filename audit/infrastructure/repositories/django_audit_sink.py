"""
Django implementation of the AuditSink port.
"""
import logging
import uuid
from typing import List

from asgiref.sync import sync_to_async

from audit.domain.audit_entry import AuditLogEntry
from audit.infrastructure.models import AuditLogEntry as AuditLogEntryModel
from audit.ports.audit_sink import AuditSink
from core.domain.value_objects import ActorType, AuditEntityType

logger = logging.getLogger(__name__)


class DjangoAuditSink(AuditSink):
    """Writes audit entries as rows; never updates them."""

    def _to_domain(self, model: AuditLogEntryModel) -> AuditLogEntry:
        return AuditLogEntry(
            id=model.id,
            entity_type=AuditEntityType(model.entity_type),
            entity_id=model.entity_id,
            action=model.action,
            actor_type=ActorType(model.actor_type),
            actor_id=model.actor_id,
            details=model.details,
            ip_address=model.ip_address,
            user_agent=model.user_agent,
            created_at=model.created_at,
        )

    @sync_to_async
    def record(self, entry: AuditLogEntry) -> AuditLogEntry:
        model = AuditLogEntryModel.objects.create(
            id=entry.id,
            entity_type=entry.entity_type.value,
            entity_id=entry.entity_id,
            action=entry.action,
            actor_type=entry.actor_type.value,
            actor_id=entry.actor_id,
            details=entry.details,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
        )
        logger.info(
            "Audit: %s",
            entry.action,
            extra={
                "audit_id": str(entry.id),
                "entity_type": entry.entity_type.value,
                "entity_id": str(entry.entity_id),
                "actor_type": entry.actor_type.value,
            },
        )
        return self._to_domain(model)

    @sync_to_async
    def list_for_entity(self, entity_id: uuid.UUID) -> List[AuditLogEntry]:
        models = AuditLogEntryModel.objects.filter(entity_id=entity_id).order_by("created_at")
        return [self._to_domain(model) for model in models]
