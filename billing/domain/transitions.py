"""
Pure billing state transitions.

Both functions take the current state and an event and return the next
state; they never do I/O and know nothing about the provider SDK.
Returning a state equal to the input means "nothing to do", which is how
duplicate and out-of-order deliveries become no-ops.

Rules:
    * A canceled subscription is terminal.
    * An update or payment event older than the last applied event is ignored.
    * A revoked license is never touched by billing.
    * License changes follow the subscription's stored state after the
      event, not the event alone, so deliveries can arrive in any order.
    * Recovery lifts only a suspension the billing provider imposed.
"""
import dataclasses
from datetime import datetime
from typing import Callable, Dict, Optional, Type

from billing.domain.events import (
    BillingEvent,
    CheckoutCompleted,
    PaymentFailed,
    PaymentSucceeded,
    SubscriptionDeleted,
    SubscriptionUpdated,
)
from billing.domain.subscription import SubscriptionState
from core.domain.value_objects import ActorType, LicenseStatus, SubscriptionStatus
from licenses.domain.license import LicenseState

PAYMENT_FAILED_REASON = "payment failed"


def _latest(current: Optional[datetime], candidate: datetime) -> datetime:
    if current is None or candidate > current:
        return candidate
    return current


def _is_stale(current: SubscriptionState, event: BillingEvent) -> bool:
    return current.last_event_at is not None and event.occurred_at < current.last_event_at


# Subscription transitions


def _subscription_on_checkout(
    current: SubscriptionState, event: CheckoutCompleted, now: datetime
) -> SubscriptionState:
    # Redelivered checkout; the subscription already exists.
    return current


def _subscription_on_updated(
    current: SubscriptionState, event: SubscriptionUpdated, now: datetime
) -> SubscriptionState:
    if _is_stale(current, event):
        return current
    return SubscriptionState(
        status=event.status,
        current_period_start=event.current_period_start or current.current_period_start,
        current_period_end=event.current_period_end or current.current_period_end,
        cancel_at_period_end=event.cancel_at_period_end,
        canceled_at=event.canceled_at or current.canceled_at,
        last_event_at=_latest(current.last_event_at, event.occurred_at),
    )


def _subscription_on_deleted(
    current: SubscriptionState, event: SubscriptionDeleted, now: datetime
) -> SubscriptionState:
    return dataclasses.replace(
        current,
        status=SubscriptionStatus.CANCELED,
        canceled_at=now,
        last_event_at=_latest(current.last_event_at, event.occurred_at),
    )


def _subscription_on_payment_failed(
    current: SubscriptionState, event: PaymentFailed, now: datetime
) -> SubscriptionState:
    if _is_stale(current, event):
        return current
    return dataclasses.replace(
        current,
        status=SubscriptionStatus.PAST_DUE,
        last_event_at=_latest(current.last_event_at, event.occurred_at),
    )


def _subscription_on_payment_succeeded(
    current: SubscriptionState, event: PaymentSucceeded, now: datetime
) -> SubscriptionState:
    if _is_stale(current, event):
        return current
    # A routine renewal only moves the event clock.
    status = current.status
    if status == SubscriptionStatus.PAST_DUE:
        status = SubscriptionStatus.ACTIVE
    return dataclasses.replace(
        current,
        status=status,
        last_event_at=_latest(current.last_event_at, event.occurred_at),
    )


SUBSCRIPTION_TRANSITIONS: Dict[Type, Callable] = {
    CheckoutCompleted: _subscription_on_checkout,
    SubscriptionUpdated: _subscription_on_updated,
    SubscriptionDeleted: _subscription_on_deleted,
    PaymentFailed: _subscription_on_payment_failed,
    PaymentSucceeded: _subscription_on_payment_succeeded,
}


def subscription_transition(
    current: Optional[SubscriptionState], event: BillingEvent, now: datetime
) -> Optional[SubscriptionState]:
    """
    Next subscription state after ``event``.

    Args:
        current: Stored state, or None when the subscription is unknown
        event: Billing event to apply
        now: Processing time

    Returns:
        The next state; None when there is no subscription to track

    Raises:
        TypeError: If ``event`` is not a billing event
    """
    transition = SUBSCRIPTION_TRANSITIONS.get(type(event))
    if transition is None:
        raise TypeError(f"Not a billing event: {type(event).__name__}")

    if current is None:
        if isinstance(event, CheckoutCompleted):
            return SubscriptionState(
                status=SubscriptionStatus.ACTIVE,
                current_period_start=event.current_period_start,
                current_period_end=event.current_period_end,
                last_event_at=event.occurred_at,
            )
        return None

    if current.status == SubscriptionStatus.CANCELED:
        return current
    return transition(current, event, now)


# License transitions

ENTITLED_SUBSCRIPTION_STATUSES = frozenset({SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING})


def _recover(current: LicenseState, subscription: SubscriptionState) -> LicenseState:
    if current.status != LicenseStatus.SUSPENDED:
        return current
    if current.suspension_source != ActorType.BILLING_PROVIDER:
        return current
    if subscription.status not in ENTITLED_SUBSCRIPTION_STATUSES:
        return current
    return LicenseState(status=LicenseStatus.ACTIVE, expires_at=current.expires_at)


def _license_on_checkout(
    current: LicenseState, event: CheckoutCompleted, now: datetime, subscription: SubscriptionState
) -> LicenseState:
    # Issuance is not a transition of an existing license.
    return current


def _license_on_updated(
    current: LicenseState, event: SubscriptionUpdated, now: datetime, subscription: SubscriptionState
) -> LicenseState:
    state = _recover(current, subscription)
    if not subscription.cancel_at_period_end or subscription.current_period_end is None:
        return state
    if state.status == LicenseStatus.EXPIRED:
        return state
    # Soft expiry: status is left alone.
    return dataclasses.replace(state, expires_at=subscription.current_period_end)


def _license_on_deleted(
    current: LicenseState, event: SubscriptionDeleted, now: datetime, subscription: SubscriptionState
) -> LicenseState:
    if current.status == LicenseStatus.EXPIRED:
        return current
    return LicenseState(status=LicenseStatus.EXPIRED, expires_at=now)


def _license_on_payment_failed(
    current: LicenseState, event: PaymentFailed, now: datetime, subscription: SubscriptionState
) -> LicenseState:
    if current.status != LicenseStatus.ACTIVE:
        return current
    if subscription.status != SubscriptionStatus.PAST_DUE:
        return current
    return dataclasses.replace(
        current,
        status=LicenseStatus.SUSPENDED,
        suspension_reason=PAYMENT_FAILED_REASON,
        suspension_source=ActorType.BILLING_PROVIDER,
    )


def _license_on_payment_succeeded(
    current: LicenseState, event: PaymentSucceeded, now: datetime, subscription: SubscriptionState
) -> LicenseState:
    return _recover(current, subscription)


LICENSE_TRANSITIONS: Dict[Type, Callable] = {
    CheckoutCompleted: _license_on_checkout,
    SubscriptionUpdated: _license_on_updated,
    SubscriptionDeleted: _license_on_deleted,
    PaymentFailed: _license_on_payment_failed,
    PaymentSucceeded: _license_on_payment_succeeded,
}


def license_transition(
    current: LicenseState,
    event: BillingEvent,
    now: datetime,
    subscription: SubscriptionState,
) -> LicenseState:
    """
    Next state of a subscription's license after ``event``.

    Args:
        current: Stored license state
        event: Billing event to apply
        now: Processing time; becomes the expiry on cancellation
        subscription: The subscription's state once ``event`` was applied

    Returns:
        The next license state

    Raises:
        TypeError: If ``event`` is not a billing event
    """
    transition = LICENSE_TRANSITIONS.get(type(event))
    if transition is None:
        raise TypeError(f"Not a billing event: {type(event).__name__}")
    if current.status == LicenseStatus.REVOKED:
        return current
    return transition(current, event, now, subscription)
