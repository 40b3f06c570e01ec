"""
Billing event log port.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from billing.domain.billing_event_record import BillingEventRecord, BillingEventStatus


class BillingEventLog(ABC):
    """Durable record of received billing events, keyed by provider event id."""

    @abstractmethod
    async def record_received(
        self, event_id: str, event_type: str, payload: Dict[str, Any]
    ) -> Tuple[BillingEventRecord, bool]:
        """
        Log a delivery and count the attempt.

        Returns:
            Tuple of the record and whether this is the first delivery
        """

    @abstractmethod
    async def mark(
        self, event_id: str, status: BillingEventStatus, error: Optional[str] = None
    ) -> None:
        """Set the processing outcome of an event."""

    @abstractmethod
    async def get(self, event_id: str) -> Optional[BillingEventRecord]:
        """Find a record by provider event id."""

    @abstractmethod
    async def list_failed(self, limit: int = 100) -> List[BillingEventRecord]:
        """Failed records, oldest first."""
