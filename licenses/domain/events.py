"""
License domain events.

Published after the corresponding transition has been persisted.
``key_hash`` lets subscribers drop cached status without a lookup.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from core.domain.events import DomainEvent
from core.domain.value_objects import LicenseTier


@dataclass(frozen=True, kw_only=True)
class LicenseEvent(DomainEvent):
    """Common shape of license events."""

    license_id: uuid.UUID
    key_hash: str


@dataclass(frozen=True, kw_only=True)
class LicenseIssued(LicenseEvent):
    """A new license was minted."""

    customer_id: int
    tier: LicenseTier
    subscription_id: Optional[uuid.UUID] = None


@dataclass(frozen=True, kw_only=True)
class LicenseExpired(LicenseEvent):
    """A license passed its expiry or lost its subscription."""


@dataclass(frozen=True, kw_only=True)
class LicenseSuspended(LicenseEvent):
    """A license was suspended."""

    reason: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class LicenseReactivated(LicenseEvent):
    """A suspension was lifted."""


@dataclass(frozen=True, kw_only=True)
class LicenseRevoked(LicenseEvent):
    """A license was terminally revoked."""

    reason: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class LicenseExtended(LicenseEvent):
    """A license's expiry moved."""

    expires_at: Optional[datetime] = None
