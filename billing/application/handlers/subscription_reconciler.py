"""
SubscriptionReconciler.

Applies billing events to subscriptions and the licenses sold through
them. Events arrive at least once and in any order, so every path is a
lookup, a pure transition and a compare-and-set; a transition that
yields the stored state is a no-op.
"""
import dataclasses
import logging
import typing
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Optional, Tuple, Type

from accounts.ports.customer_directory import CustomerDirectory
from audit.domain.audit_entry import AuditLogEntry
from audit.ports.audit_sink import AuditSink
from billing.application.dto.billing_dto import ReconciliationResult
from billing.domain.events import (
    BillingEvent,
    CheckoutCompleted,
    PaymentFailed,
    PaymentSucceeded,
    SubscriptionDeleted,
    SubscriptionUpdated,
)
from billing.domain.subscription import Subscription, SubscriptionState
from billing.domain.transitions import license_transition, subscription_transition
from billing.ports.customer_notifier import CustomerNotifier
from billing.ports.subscription_repository import SubscriptionRepository
from core.domain.events import DomainEvent, EventBus
from core.domain.exceptions import (
    ConcurrentUpdateError,
    InvalidBillingEventError,
    SubscriptionAlreadyLicensedError,
)
from core.domain.value_objects import Actor, AuditEntityType, LicenseStatus, SubscriptionStatus
from core.infrastructure.events import event_bus as default_event_bus
from licenses.application.commands.issue_license import IssueLicenseCommand
from licenses.application.handlers.issue_license_handler import IssueLicenseHandler
from licenses.domain.events import (
    LicenseExpired,
    LicenseExtended,
    LicenseReactivated,
    LicenseSuspended,
)
from licenses.domain.license import License
from licenses.ports.license_repository import LicenseRepository

logger = logging.getLogger(__name__)

CAS_ATTEMPTS = 3

SUBSCRIPTION_ACTIONS: Dict[Type, str] = {
    SubscriptionUpdated: "subscription.updated",
    SubscriptionDeleted: "subscription.canceled",
    PaymentFailed: "subscription.past_due",
    PaymentSucceeded: "subscription.reactivated",
}


def _without_clock(state: SubscriptionState) -> SubscriptionState:
    # Moving only last_event_at is bookkeeping, not an auditable change.
    return dataclasses.replace(state, last_event_at=None)


def _license_change(before: License, after: License) -> Optional[Tuple[str, DomainEvent]]:
    """Audit action and domain event describing a billing-driven license change."""
    common = {
        "aggregate_id": str(after.id),
        "license_id": after.id,
        "key_hash": after.key_hash,
    }
    if after.status != before.status:
        if after.status == LicenseStatus.SUSPENDED:
            return "license.suspended", LicenseSuspended(reason=after.suspension_reason, **common)
        if after.status == LicenseStatus.ACTIVE:
            return "license.reactivated", LicenseReactivated(**common)
        if after.status == LicenseStatus.EXPIRED:
            return "license.expired", LicenseExpired(**common)
    if after.expires_at != before.expires_at:
        return "license.expiry_scheduled", LicenseExtended(expires_at=after.expires_at, **common)
    return None


class SubscriptionReconciler:
    """
    Handler for billing events.

    Dispatches on the event class. Construction fails if any member of
    ``BillingEvent`` has no handler.

    Args:
        subscription_repository: Subscription persistence
        license_repository: License persistence
        customer_directory: Resolves customers for notifications
        audit_sink: Receives one entry per applied transition
        issuer: Issues the license for a completed checkout
        notifier: Sends the key and payment-failed messages
        event_bus: Receives license events for billing-driven transitions

    Raises:
        TypeError: If the dispatch table does not cover ``BillingEvent``
    """

    def __init__(
        self,
        subscription_repository: SubscriptionRepository,
        license_repository: LicenseRepository,
        customer_directory: CustomerDirectory,
        audit_sink: AuditSink,
        issuer: IssueLicenseHandler,
        notifier: CustomerNotifier,
        event_bus: EventBus = None,
    ):
        self.subscription_repository = subscription_repository
        self.license_repository = license_repository
        self.customer_directory = customer_directory
        self.audit_sink = audit_sink
        self.issuer = issuer
        self.notifier = notifier
        self.event_bus = event_bus or default_event_bus

        self._handlers: Dict[Type, Callable[..., Awaitable[ReconciliationResult]]] = {
            CheckoutCompleted: self._on_checkout_completed,
            SubscriptionUpdated: self._on_subscription_event,
            SubscriptionDeleted: self._on_subscription_event,
            PaymentFailed: self._on_subscription_event,
            PaymentSucceeded: self._on_subscription_event,
        }
        missing = set(typing.get_args(BillingEvent)) - set(self._handlers)
        if missing:
            names = ", ".join(sorted(event_type.__name__ for event_type in missing))
            raise TypeError(f"No reconciler handler for billing events: {names}")

    async def handle(self, event: BillingEvent) -> ReconciliationResult:
        """
        Reconcile one billing event.

        Args:
            event: Translated billing event

        Returns:
            ReconciliationResult listing the audit actions written

        Raises:
            TypeError: If ``event`` is not a billing event
            InvalidBillingEventError: If the event refers to an unknown customer
            ConcurrentUpdateError: If a compare-and-set kept losing
        """
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Not a billing event: {type(event).__name__}")
        return await handler(event, datetime.now(timezone.utc))

    async def _audit(self, entity_type, entity_id, action: str, event: BillingEvent, details=None):
        await self.audit_sink.record(
            AuditLogEntry.create(
                entity_type=entity_type,
                entity_id=entity_id,
                action=action,
                actor=Actor.billing_provider(),
                details={
                    "eventId": event.event_id,
                    "externalSubscriptionId": event.external_subscription_id,
                    **(details or {}),
                },
            )
        )

    async def _on_checkout_completed(
        self, event: CheckoutCompleted, now: datetime
    ) -> ReconciliationResult:
        result = ReconciliationResult(event_type=type(event).__name__)

        customer = await self.customer_directory.find_by_id(event.customer_id)
        if customer is None:
            raise InvalidBillingEventError(f"Checkout for unknown customer {event.customer_id}")

        subscription, created = await self.subscription_repository.get_or_create(
            Subscription.create(
                customer_id=event.customer_id,
                external_id=event.external_subscription_id,
                tier=event.tier,
                billing_cycle=event.billing_cycle,
                state=subscription_transition(None, event, now),
                external_customer_id=event.external_customer_id,
                price_id=event.price_id,
                product_id=event.product_id,
            )
        )
        result.subscription_id = subscription.id
        if not created:
            logger.info(
                "Subscription already exists",
                extra={"external_subscription_id": event.external_subscription_id},
            )

        existing = await self.license_repository.find_by_subscription(subscription.id)
        if existing is not None:
            result.license_id = existing.id
            return result

        try:
            issued = await self.issuer.handle(
                IssueLicenseCommand(
                    customer_id=subscription.customer_id,
                    tier=subscription.tier,
                    subscription_id=subscription.id,
                    actor=Actor.billing_provider(),
                )
            )
        except SubscriptionAlreadyLicensedError:
            logger.info(
                "Concurrent delivery already licensed subscription",
                extra={"subscription_id": str(subscription.id)},
            )
            return result

        result.license_id = issued.license.id
        result.actions.append("license.created")
        await self._audit(
            AuditEntityType.SUBSCRIPTION,
            subscription.id,
            "subscription.created",
            event,
            {"tier": subscription.tier.value, "licenseId": str(issued.license.id)},
        )
        result.actions.append("subscription.created")

        await self.notifier.send_license_key(customer, issued.license_key, subscription.tier)
        logger.info(
            "Subscription licensed",
            extra={
                "subscription_id": str(subscription.id),
                "license_id": str(issued.license.id),
                "tier": subscription.tier.value,
            },
        )
        return result

    async def _on_subscription_event(self, event: BillingEvent, now: datetime) -> ReconciliationResult:
        result = ReconciliationResult(event_type=type(event).__name__)

        before, after = await self._transition_subscription(event, now)
        if after is None:
            logger.warning(
                "Subscription not found for %s",
                type(event).__name__,
                extra={"external_subscription_id": event.external_subscription_id},
            )
            return result
        result.subscription_id = after.id

        subscription_changed = _without_clock(after.state) != _without_clock(before.state)
        if subscription_changed:
            action = SUBSCRIPTION_ACTIONS[type(event)]
            await self._audit(
                AuditEntityType.SUBSCRIPTION,
                after.id,
                action,
                event,
                {"status": after.status.value, "previousStatus": before.status.value},
            )
            result.actions.append(action)

        before_license, after_license = await self._transition_license(event, now, after)
        if after_license is not None:
            result.license_id = after_license.id
        change = _license_change(before_license, after_license) if after_license else None
        if change is not None:
            action, domain_event = change
            await self._audit(
                AuditEntityType.LICENSE,
                after_license.id,
                action,
                event,
                {
                    "status": after_license.status.value,
                    "expiresAt": (
                        after_license.expires_at.isoformat() if after_license.expires_at else None
                    ),
                },
            )
            await self.event_bus.publish(domain_event)
            result.actions.append(action)

        if isinstance(event, PaymentFailed) and (
            "license.suspended" in result.actions
            or (before.status != after.status and after.status == SubscriptionStatus.PAST_DUE)
        ):
            customer = await self.customer_directory.find_by_id(after.customer_id)
            if customer is not None:
                await self.notifier.send_payment_failed(customer)

        logger.info(
            "Billing event reconciled",
            extra={
                "event_id": event.event_id,
                "event_type": result.event_type,
                "subscription_id": str(after.id),
                "actions": result.actions,
            },
        )
        return result

    async def _transition_subscription(
        self, event: BillingEvent, now: datetime
    ) -> Tuple[Optional[Subscription], Optional[Subscription]]:
        for _ in range(CAS_ATTEMPTS):
            current = await self.subscription_repository.find_by_external_id(
                event.external_subscription_id
            )
            if current is None:
                return None, None
            state = subscription_transition(current.state, event, now)
            if state == current.state:
                return current, current
            saved = await self.subscription_repository.save_transition(current, state)
            if saved is not None:
                return current, saved
        raise ConcurrentUpdateError(
            f"Subscription {event.external_subscription_id} was modified concurrently"
        )

    async def _transition_license(
        self, event: BillingEvent, now: datetime, subscription: Subscription
    ) -> Tuple[Optional[License], Optional[License]]:
        for _ in range(CAS_ATTEMPTS):
            current = await self.license_repository.find_by_subscription(subscription.id)
            if current is None:
                return None, None
            state = license_transition(current.state, event, now, subscription.state)
            if state == current.state:
                return current, current
            saved = await self.license_repository.save_transition(current.with_state(state), current)
            if saved is not None:
                return current, saved
        raise ConcurrentUpdateError(
            f"License for subscription {subscription.id} was modified concurrently"
        )
