"""
Billing events.

Provider-neutral facts translated from billing webhooks. ``BillingEvent``
is the closed set the reconciler must handle; adding a member without a
handler fails at reconciler construction.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from core.domain.value_objects import BillingCycle, LicenseTier, SubscriptionStatus


@dataclass(frozen=True, kw_only=True)
class BillingEventBase:
    """
    Fields every billing event carries.

    ``event_id`` is the provider's delivery id and ``occurred_at`` the
    provider's event timestamp, not the time we received it.
    """

    event_id: str
    occurred_at: datetime
    external_subscription_id: str


@dataclass(frozen=True, kw_only=True)
class CheckoutCompleted(BillingEventBase):
    """A customer paid for a new subscription."""

    customer_id: int
    tier: LicenseTier
    billing_cycle: BillingCycle
    external_customer_id: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    price_id: Optional[str] = None
    product_id: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class SubscriptionUpdated(BillingEventBase):
    """The provider reports the subscription's current status and period."""

    status: SubscriptionStatus
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    canceled_at: Optional[datetime] = None


@dataclass(frozen=True, kw_only=True)
class SubscriptionDeleted(BillingEventBase):
    """The subscription ended."""

    canceled_at: Optional[datetime] = None


@dataclass(frozen=True, kw_only=True)
class PaymentFailed(BillingEventBase):
    """A renewal invoice could not be collected."""

    invoice_id: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class PaymentSucceeded(BillingEventBase):
    """A renewal invoice was paid."""

    invoice_id: Optional[str] = None


BillingEvent = Union[
    CheckoutCompleted,
    SubscriptionUpdated,
    SubscriptionDeleted,
    PaymentFailed,
    PaymentSucceeded,
]
