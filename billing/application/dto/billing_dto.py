"""
Billing DTOs.
"""
import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from billing.domain.billing_event_record import BillingEventStatus


@dataclass
class ReconciliationResult:
    """
    What reconciling one billing event changed.

    ``actions`` holds the audit actions written, in order; an empty list
    means the event was a no-op.
    """

    event_type: str
    subscription_id: Optional[uuid.UUID] = None
    license_id: Optional[uuid.UUID] = None
    actions: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.actions)


@dataclass
class WebhookOutcome:
    """Result of processing one verified webhook delivery."""

    event_id: str
    event_type: str
    status: BillingEventStatus
    duplicate: bool = False
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status == BillingEventStatus.FAILED
