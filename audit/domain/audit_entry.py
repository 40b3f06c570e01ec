"""
Audit log entry domain entity.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from core.domain.value_objects import Actor, ActorType, AuditEntityType


@dataclass(frozen=True)
class AuditLogEntry:
    """
    One write-once audit record.

    Entries are never updated or deleted once recorded.
    """

    id: uuid.UUID
    entity_type: AuditEntityType
    entity_id: uuid.UUID
    action: str
    actor_type: ActorType
    actor_id: Optional[str]
    details: Dict[str, Any] = field(default_factory=dict)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.action or "." not in self.action:
            raise ValueError(f"Audit action must look like 'entity.verb': {self.action!r}")

    @classmethod
    def create(
        cls,
        entity_type: AuditEntityType,
        entity_id: uuid.UUID,
        action: str,
        actor: Actor,
        details: Optional[Dict[str, Any]] = None,
    ) -> "AuditLogEntry":
        """
        Create an entry for an action performed by ``actor``.

        Args:
            entity_type: Kind of record acted on
            entity_id: Id of the record acted on
            action: Dotted action name, e.g. ``license.revoked``
            actor: Who acted; carries the network metadata
            details: Free-form JSON-serializable context

        Returns:
            AuditLogEntry instance
        """
        return cls(
            id=uuid.uuid4(),
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            actor_type=actor.actor_type,
            actor_id=actor.actor_id,
            details=details or {},
            ip_address=actor.ip_address,
            user_agent=actor.user_agent,
            created_at=datetime.now(timezone.utc),
        )
