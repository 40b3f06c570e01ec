"""
Tier definitions.

Each tier bounds resource limits and feature flags returned to a
deployment that validates a key. ``UNLIMITED`` (-1) means no cap.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict

from core.domain.value_objects import BillingCycle, LicenseTier

UNLIMITED = -1


@dataclass(frozen=True)
class TierLimits:
    """Resource limits of a tier."""

    max_users: int
    max_instances: int
    max_concurrent_sessions: int

    def allows(self, limit: int, requested: int) -> bool:
        """True when ``requested`` fits under ``limit``."""
        return limit == UNLIMITED or requested <= limit


@dataclass(frozen=True)
class TierFeatures:
    """Feature flags of a tier."""

    sso: bool = False
    audit_logs: bool = False
    custom_branding: bool = False
    priority_support: bool = False
    api_access: bool = False
    multi_tenant: bool = False


@dataclass(frozen=True)
class TierDefinition:
    """Everything a tier grants and costs."""

    tier: LicenseTier
    limits: TierLimits
    features: TierFeatures
    monthly_price: Decimal
    yearly_price: Decimal

    def price(self, cycle: BillingCycle) -> Decimal:
        """List price for one billing cycle."""
        return self.monthly_price if cycle is BillingCycle.MONTHLY else self.yearly_price


TIERS: Dict[LicenseTier, TierDefinition] = {
    LicenseTier.COMMUNITY: TierDefinition(
        tier=LicenseTier.COMMUNITY,
        limits=TierLimits(max_users=5, max_instances=10, max_concurrent_sessions=3),
        features=TierFeatures(api_access=True),
        monthly_price=Decimal("0"),
        yearly_price=Decimal("0"),
    ),
    LicenseTier.TEAM: TierDefinition(
        tier=LicenseTier.TEAM,
        limits=TierLimits(
            max_users=UNLIMITED, max_instances=UNLIMITED, max_concurrent_sessions=20
        ),
        features=TierFeatures(audit_logs=True, custom_branding=True, api_access=True),
        monthly_price=Decimal("99"),
        yearly_price=Decimal("990"),
    ),
    LicenseTier.ENTERPRISE: TierDefinition(
        tier=LicenseTier.ENTERPRISE,
        limits=TierLimits(
            max_users=UNLIMITED, max_instances=UNLIMITED, max_concurrent_sessions=UNLIMITED
        ),
        features=TierFeatures(
            sso=True,
            audit_logs=True,
            custom_branding=True,
            priority_support=True,
            api_access=True,
            multi_tenant=True,
        ),
        monthly_price=Decimal("299"),
        yearly_price=Decimal("2990"),
    ),
}


def get_tier(tier: LicenseTier) -> TierDefinition:
    """Definition for ``tier``."""
    return TIERS[tier]
