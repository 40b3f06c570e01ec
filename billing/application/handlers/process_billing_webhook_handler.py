"""
ProcessBillingWebhookHandler.

Entry point for billing provider webhooks. Signature verification is
the only failure the provider ever sees; everything after it is logged,
recorded in the billing event log and acknowledged.
"""
import logging
from typing import Any, Dict

from billing.application.dto.billing_dto import WebhookOutcome
from billing.application.handlers.subscription_reconciler import SubscriptionReconciler
from billing.domain.billing_event_record import BillingEventStatus
from billing.ports.billing_event_log import BillingEventLog
from billing.ports.billing_gateway import BillingGateway
from core.domain.exceptions import NotFoundError
from core.metrics import billing_events_total

logger = logging.getLogger(__name__)


class ProcessBillingWebhookHandler:
    """
    Verifies, logs and reconciles billing webhook deliveries.

    Args:
        gateway: Provider signature check and event translation
        event_log: Durable per-event record used for idempotency and replay
        reconciler: Applies translated events
    """

    def __init__(
        self,
        gateway: BillingGateway,
        event_log: BillingEventLog,
        reconciler: SubscriptionReconciler,
    ):
        self.gateway = gateway
        self.event_log = event_log
        self.reconciler = reconciler

    async def handle(self, payload: bytes, signature: str) -> WebhookOutcome:
        """
        Handle one webhook delivery.

        Args:
            payload: Raw request body
            signature: Provider signature header

        Returns:
            WebhookOutcome; a failed outcome still means "acknowledge"

        Raises:
            WebhookSignatureError: If the delivery does not verify. Nothing
                has been recorded or changed in that case.
        """
        event = self.gateway.construct_event(payload, signature)
        event_id = str(event.get("id", ""))
        event_type = str(event.get("type", ""))
        logger.info("Billing webhook received", extra={"event_id": event_id, "event_type": event_type})

        try:
            record, _ = await self.event_log.record_received(event_id, event_type, event)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error(
                "Could not record billing event",
                extra={"event_id": event_id, "event_type": event_type},
                exc_info=True,
            )
            billing_events_total.labels(event_type=event_type, outcome="failed").inc()
            return WebhookOutcome(
                event_id=event_id,
                event_type=event_type,
                status=BillingEventStatus.FAILED,
                error=str(e),
            )

        if record.status.is_final:
            logger.info(
                "Duplicate billing event acknowledged",
                extra={"event_id": event_id, "status": record.status.value},
            )
            billing_events_total.labels(event_type=event_type, outcome="duplicate").inc()
            return WebhookOutcome(
                event_id=event_id, event_type=event_type, status=record.status, duplicate=True
            )

        return await self._process(event_id, event_type, event)

    async def reprocess(self, event_id: str) -> WebhookOutcome:
        """
        Replay a logged event from its stored payload.

        Args:
            event_id: Provider event id

        Returns:
            WebhookOutcome of the replay

        Raises:
            NotFoundError: If no event with that id was logged
        """
        record = await self.event_log.get(event_id)
        if record is None:
            raise NotFoundError(f"Billing event {event_id} not found")
        if record.status.is_final:
            return WebhookOutcome(
                event_id=event_id, event_type=record.event_type, status=record.status, duplicate=True
            )
        return await self._process(event_id, record.event_type, record.payload)

    async def _process(self, event_id: str, event_type: str, event: Dict[str, Any]) -> WebhookOutcome:
        try:
            billing_event = await self.gateway.translate(event)
            if billing_event is None:
                status = BillingEventStatus.IGNORED
            else:
                result = await self.reconciler.handle(billing_event)
                status = BillingEventStatus.PROCESSED if result.changed else BillingEventStatus.IGNORED
            await self.event_log.mark(event_id, status)
        except Exception as e:  # pylint: disable=broad-exception-caught
            # The provider must still get a 200; the stored payload is replayed later.
            logger.error(
                "Billing event processing failed",
                extra={"event_id": event_id, "event_type": event_type},
                exc_info=True,
            )
            await self._mark_failed(event_id, str(e))
            billing_events_total.labels(event_type=event_type, outcome="failed").inc()
            return WebhookOutcome(
                event_id=event_id,
                event_type=event_type,
                status=BillingEventStatus.FAILED,
                error=str(e),
            )

        billing_events_total.labels(event_type=event_type, outcome=status.value).inc()
        return WebhookOutcome(event_id=event_id, event_type=event_type, status=status)

    async def _mark_failed(self, event_id: str, error: str) -> None:
        try:
            await self.event_log.mark(event_id, BillingEventStatus.FAILED, error=error)
        except Exception:  # pylint: disable=broad-exception-caught
            logger.error("Could not mark billing event failed", extra={"event_id": event_id}, exc_info=True)
