"""
Audit sink port.
"""
import uuid
from abc import ABC, abstractmethod
from typing import List

from audit.domain.audit_entry import AuditLogEntry


class AuditSink(ABC):
    """Append-only destination for audit entries."""

    @abstractmethod
    async def record(self, entry: AuditLogEntry) -> AuditLogEntry:
        """
        Append an entry.

        Args:
            entry: Entry to record

        Returns:
            The recorded entry
        """

    @abstractmethod
    async def list_for_entity(self, entity_id: uuid.UUID) -> List[AuditLogEntry]:
        """
        Entries for one entity, oldest first.

        Args:
            entity_id: Id of the audited record

        Returns:
            List of entries
        """
