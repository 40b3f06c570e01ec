"""
IssueLicenseCommand.

Command to mint a new license key for a customer.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from core.domain.value_objects import Actor, LicenseTier


@dataclass
class IssueLicenseCommand:
    """Command to issue a license."""

    customer_id: int
    tier: LicenseTier
    expires_at: Optional[datetime] = None
    notes: Optional[str] = None
    subscription_id: Optional[uuid.UUID] = None
    actor: Actor = field(default_factory=Actor.system)
