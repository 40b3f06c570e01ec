"""
License DTOs for API responses.
"""
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

from licenses.domain.license import License
from licenses.domain.tiers import TierFeatures, TierLimits


@dataclass
class IssuedLicenseDTO:
    """
    Result of issuing a license.

    ``license_key`` is the only copy of the plaintext key that will
    ever exist outside the customer's hands.
    """

    license: License
    license_key: str


@dataclass
class EntitlementSnapshotDTO:
    """What a successful validation grants."""

    valid: bool
    tier: str
    expires_at: Optional[datetime]
    limits: TierLimits
    features: TierFeatures
    organization: Optional[str]
    validated_at: datetime

    def limits_dict(self) -> Dict[str, int]:
        return {
            "maxUsers": self.limits.max_users,
            "maxInstances": self.limits.max_instances,
            "maxConcurrentSessions": self.limits.max_concurrent_sessions,
        }

    def features_dict(self) -> Dict[str, bool]:
        return {
            "sso": self.features.sso,
            "auditLogs": self.features.audit_logs,
            "customBranding": self.features.custom_branding,
            "prioritySupport": self.features.priority_support,
            "apiAccess": self.features.api_access,
            "multiTenant": self.features.multi_tenant,
        }


@dataclass
class LicenseStatusDTO:
    """Public status of a key."""

    valid: bool
    tier: str
    status: str
    expires_at: Optional[datetime]


@dataclass
class LicenseDetailDTO:
    """Administrative view of a license. Never includes the key."""

    id: uuid.UUID
    key_hint: str
    customer_id: int
    tier: str
    status: str
    subscription_id: Optional[uuid.UUID]
    expires_at: Optional[datetime]
    revoked_at: Optional[datetime]
    revoked_reason: Optional[str]
    suspension_reason: Optional[str]
    last_validated_at: Optional[datetime]
    validation_count: int
    instance_id: Optional[uuid.UUID]
    hostname: Optional[str]
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, license: License) -> "LicenseDetailDTO":
        return cls(
            id=license.id,
            key_hint=license.key_hint,
            customer_id=license.customer_id,
            tier=license.tier.value,
            status=license.status.value,
            subscription_id=license.subscription_id,
            expires_at=license.expires_at,
            revoked_at=license.revoked_at,
            revoked_reason=license.revoked_reason,
            suspension_reason=license.suspension_reason,
            last_validated_at=license.last_validated_at,
            validation_count=license.validation_count,
            instance_id=license.instance_id,
            hostname=license.hostname,
            notes=license.notes,
            created_at=license.created_at,
            updated_at=license.updated_at,
        )
