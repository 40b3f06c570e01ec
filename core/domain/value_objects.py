"""
Value objects for the domain.

Value objects are immutable objects that are defined by their attributes
rather than their identity. They have no identity and are compared by value.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class LicenseTier(Enum):
    """Entitlement level printed as the first segment of every key."""

    COMMUNITY = "community"
    TEAM = "team"
    ENTERPRISE = "enterprise"

    @property
    def is_paid(self) -> bool:
        """Paid tiers are sold through subscriptions."""
        return self is not LicenseTier.COMMUNITY

    def __str__(self) -> str:
        """Return tier as string."""
        return self.value


class LicenseStatus(Enum):
    """License status value object."""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    REVOKED = "revoked"
    EXPIRED = "expired"

    def __str__(self) -> str:
        """Return status as string."""
        return self.value


class SubscriptionStatus(Enum):
    """Canonical subscription lifecycle state mirrored from the billing provider."""

    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"

    def __str__(self) -> str:
        """Return status as string."""
        return self.value


class BillingCycle(Enum):
    """Billing cycle of a subscription."""

    MONTHLY = "monthly"
    YEARLY = "yearly"

    def __str__(self) -> str:
        return self.value


class ActorType(Enum):
    """Who performed a state-changing action."""

    CUSTOMER = "customer"
    ADMIN = "admin"
    SYSTEM = "system"
    BILLING_PROVIDER = "billing_provider"

    def __str__(self) -> str:
        return self.value


class AuditEntityType(Enum):
    """Kind of record an audit entry refers to."""

    CUSTOMER = "customer"
    LICENSE = "license"
    SUBSCRIPTION = "subscription"
    ADMIN = "admin"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Actor:
    """
    The party on whose behalf an operation runs.

    Carries the optional network metadata that ends up on audit entries.
    """

    actor_type: ActorType
    actor_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    @classmethod
    def system(cls) -> "Actor":
        return cls(actor_type=ActorType.SYSTEM)

    @classmethod
    def billing_provider(cls) -> "Actor":
        return cls(actor_type=ActorType.BILLING_PROVIDER)

    @classmethod
    def admin(
        cls,
        admin_id: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> "Actor":
        return cls(
            actor_type=ActorType.ADMIN,
            actor_id=admin_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
