"""
Event handlers for domain events.

These handlers run after a license transition has been persisted and
take care of side effects: dropping cached public status, counting
transitions and logging.
"""

import logging

from core.domain.events import DomainEvent, EventHandler
from core.metrics import license_transitions_total
from licenses.domain.events import (
    LicenseExpired,
    LicenseExtended,
    LicenseIssued,
    LicenseReactivated,
    LicenseRevoked,
    LicenseSuspended,
)

logger = logging.getLogger(__name__)

LICENSE_EVENTS = (
    LicenseIssued,
    LicenseExpired,
    LicenseSuspended,
    LicenseReactivated,
    LicenseRevoked,
    LicenseExtended,
)

# Events after which a cached public status may be stale
STATUS_CHANGING_EVENTS = (
    LicenseExpired,
    LicenseSuspended,
    LicenseReactivated,
    LicenseRevoked,
    LicenseExtended,
)


class EventLogHandler(EventHandler):
    """Writes every license event to the structured log."""

    async def handle(self, event: DomainEvent) -> None:
        logger.info(
            "Domain event: %s - %s",
            event.event_type,
            event.aggregate_id,
            extra={
                "event_id": str(event.event_id),
                "event_type": event.event_type,
                "aggregate_id": event.aggregate_id,
                "occurred_at": event.occurred_at.isoformat(),
            },
        )


class LicenseCacheInvalidationHandler(EventHandler):
    """
    Event handler for cache invalidation.

    License events carry the key hash, so the cached status entry can be
    dropped without a lookup.
    """

    async def handle(self, event: DomainEvent) -> None:
        """
        Handle domain event for cache invalidation.

        Args:
            event: License domain event
        """
        from licenses.application.services.license_cache_service import LicenseCacheService

        await LicenseCacheService().invalidate_status(event.key_hash)


class LicenseTransitionMetricsHandler(EventHandler):
    """Counts license transitions by event type."""

    async def handle(self, event: DomainEvent) -> None:
        license_transitions_total.labels(transition=event.event_type).inc()


def register_event_handlers():
    """Register all event handlers with the event bus."""
    from core.infrastructure.events import event_bus

    log_handler = EventLogHandler()
    metrics_handler = LicenseTransitionMetricsHandler()
    cache_handler = LicenseCacheInvalidationHandler()

    for event_type in LICENSE_EVENTS:
        event_bus.subscribe(event_type, log_handler)
        event_bus.subscribe(event_type, metrics_handler)

    for event_type in STATUS_CHANGING_EVENTS:
        event_bus.subscribe(event_type, cache_handler)

    logger.info("Event handlers registered")
