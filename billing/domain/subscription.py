"""
Subscription domain entity.
"""
import dataclasses
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from core.domain.value_objects import BillingCycle, LicenseTier, SubscriptionStatus


@dataclass(frozen=True)
class SubscriptionState:
    """The part of a subscription that billing events change."""

    status: SubscriptionStatus
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    canceled_at: Optional[datetime] = None
    last_event_at: Optional[datetime] = None


@dataclass(frozen=True)
class Subscription:
    """
    A customer's paid subscription as last reported by the billing provider.

    ``external_id`` is the provider's subscription id and is unique.
    """

    id: uuid.UUID
    customer_id: int
    external_id: str
    external_customer_id: Optional[str]
    tier: LicenseTier
    status: SubscriptionStatus
    billing_cycle: BillingCycle
    created_at: datetime
    updated_at: datetime
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    canceled_at: Optional[datetime] = None
    price_id: Optional[str] = None
    product_id: Optional[str] = None
    last_event_at: Optional[datetime] = None
    version: int = 1

    def __post_init__(self):
        if not self.external_id:
            raise ValueError("External subscription id is required")
        if not self.tier.is_paid:
            raise ValueError(f"Subscriptions are only sold for paid tiers, not {self.tier}")

    @classmethod
    def create(
        cls,
        customer_id: int,
        external_id: str,
        tier: LicenseTier,
        billing_cycle: BillingCycle,
        state: SubscriptionState,
        external_customer_id: Optional[str] = None,
        price_id: Optional[str] = None,
        product_id: Optional[str] = None,
    ) -> "Subscription":
        """
        Create a new Subscription entity.

        Args:
            customer_id: Owning customer
            external_id: Provider subscription id
            tier: Paid tier the subscription grants
            billing_cycle: Monthly or yearly
            state: Initial lifecycle state
            external_customer_id: Provider customer id
            price_id: Provider price id
            product_id: Provider product id

        Returns:
            Subscription entity instance
        """
        now = datetime.now(timezone.utc)
        return cls(
            id=uuid.uuid4(),
            customer_id=customer_id,
            external_id=external_id,
            external_customer_id=external_customer_id,
            tier=tier,
            billing_cycle=billing_cycle,
            price_id=price_id,
            product_id=product_id,
            created_at=now,
            updated_at=now,
            **dataclasses.asdict(state),
        )

    @property
    def state(self) -> SubscriptionState:
        return SubscriptionState(
            status=self.status,
            current_period_start=self.current_period_start,
            current_period_end=self.current_period_end,
            cancel_at_period_end=self.cancel_at_period_end,
            canceled_at=self.canceled_at,
            last_event_at=self.last_event_at,
        )

    def is_active(self) -> bool:
        """Active or trialing subscriptions keep their license entitled."""
        return self.status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING)
