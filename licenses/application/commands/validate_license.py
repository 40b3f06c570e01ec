"""
ValidateLicenseCommand.

Sent by a self-hosted deployment at startup and periodically.
"""
import uuid
from dataclasses import dataclass
from typing import Optional


@dataclass
class ValidateLicenseCommand:
    """Command to validate a presented license key."""

    license_key: str
    instance_id: uuid.UUID
    hostname: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
