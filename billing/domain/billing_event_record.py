"""
Billing event record.

One row per provider event id. The log makes redelivery a no-op and
keeps the payload of failed events so they can be replayed.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class BillingEventStatus(Enum):
    """Processing state of a received billing event."""

    RECEIVED = "received"
    PROCESSED = "processed"
    IGNORED = "ignored"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value

    @property
    def is_final(self) -> bool:
        """Processed and ignored events are never handled again."""
        return self in (BillingEventStatus.PROCESSED, BillingEventStatus.IGNORED)


@dataclass(frozen=True)
class BillingEventRecord:
    """Read model of one logged billing event."""

    event_id: str
    event_type: str
    status: BillingEventStatus
    payload: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    attempts: int = 0
    received_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None
