"""
Administrative license lifecycle commands.
"""
import uuid
from dataclasses import dataclass
from datetime import datetime

from core.domain.value_objects import Actor


@dataclass
class RevokeLicenseCommand:
    """Command to terminally revoke a license."""

    license_id: uuid.UUID
    reason: str
    actor: Actor


@dataclass
class SuspendLicenseCommand:
    """Command to suspend an active license."""

    license_id: uuid.UUID
    reason: str
    actor: Actor


@dataclass
class ReactivateLicenseCommand:
    """Command to lift a suspension."""

    license_id: uuid.UUID
    actor: Actor


@dataclass
class ExtendLicenseCommand:
    """Command to move a license's expiry forward."""

    license_id: uuid.UUID
    expires_at: datetime
    actor: Actor
