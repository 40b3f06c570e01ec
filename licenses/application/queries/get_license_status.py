"""
License status queries.
"""
import uuid
from dataclasses import dataclass


@dataclass
class GetLicenseStatusQuery:
    """Public status lookup by key."""

    license_key: str


@dataclass
class GetLicenseQuery:
    """Administrative lookup by id."""

    license_id: uuid.UUID
