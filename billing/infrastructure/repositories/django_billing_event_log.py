"""
Django implementation of the BillingEventLog port.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from asgiref.sync import sync_to_async
from django.db import IntegrityError, transaction
from django.db.models import F

from billing.domain.billing_event_record import BillingEventRecord, BillingEventStatus
from billing.infrastructure.models import BillingEventRecord as BillingEventRecordModel
from billing.ports.billing_event_log import BillingEventLog


class DjangoBillingEventLog(BillingEventLog):
    """Stores billing events as rows keyed by provider event id."""

    def _to_domain(self, model: BillingEventRecordModel) -> BillingEventRecord:
        return BillingEventRecord(
            event_id=model.event_id,
            event_type=model.event_type,
            status=BillingEventStatus(model.status),
            payload=model.payload,
            error=model.error,
            attempts=model.attempts,
            received_at=model.received_at,
            processed_at=model.processed_at,
        )

    @sync_to_async
    def record_received(
        self, event_id: str, event_type: str, payload: Dict[str, Any]
    ) -> Tuple[BillingEventRecord, bool]:
        try:
            with transaction.atomic():
                _, created = BillingEventRecordModel.objects.get_or_create(
                    event_id=event_id,
                    defaults={"event_type": event_type, "payload": payload},
                )
        except IntegrityError:
            created = False
        BillingEventRecordModel.objects.filter(event_id=event_id).update(
            attempts=F("attempts") + 1
        )
        return self._to_domain(BillingEventRecordModel.objects.get(event_id=event_id)), created

    @sync_to_async
    def mark(
        self, event_id: str, status: BillingEventStatus, error: Optional[str] = None
    ) -> None:
        BillingEventRecordModel.objects.filter(event_id=event_id).update(
            status=status.value,
            error=error,
            processed_at=datetime.now(timezone.utc),
        )

    @sync_to_async
    def get(self, event_id: str) -> Optional[BillingEventRecord]:
        model = BillingEventRecordModel.objects.filter(event_id=event_id).first()
        return self._to_domain(model) if model else None

    @sync_to_async
    def list_failed(self, limit: int = 100) -> List[BillingEventRecord]:
        models = BillingEventRecordModel.objects.filter(
            status=BillingEventStatus.FAILED.value
        ).order_by("received_at")[:limit]
        return [self._to_domain(model) for model in models]
