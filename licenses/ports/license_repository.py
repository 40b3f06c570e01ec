"""
License repository port (interface).

Every mutation is a conditional update: callers say what they expect
the row to look like and learn whether they won.
"""
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from licenses.domain.license import License


class LicenseRepository(ABC):
    """
    Abstract repository for License entities.
    """

    @abstractmethod
    async def add(self, license: License) -> License:
        """
        Persist a new license.

        Args:
            license: License entity to insert

        Returns:
            Saved license entity

        Raises:
            DuplicateLicenseKeyError: If the key hash already exists
            SubscriptionAlreadyLicensedError: If the subscription already
                has a license
        """

    @abstractmethod
    async def find_by_id(self, license_id: uuid.UUID) -> Optional[License]:
        """
        Find a license by ID.

        Args:
            license_id: License UUID

        Returns:
            License entity or None if not found
        """

    @abstractmethod
    async def find_by_key_hash(self, key_hash: str) -> Optional[License]:
        """
        Find a license by the hash of its key.

        Args:
            key_hash: Hash of the normalized key

        Returns:
            License entity or None if not found
        """

    @abstractmethod
    async def find_by_subscription(self, subscription_id: uuid.UUID) -> Optional[License]:
        """
        Find the license sold through a subscription.

        Args:
            subscription_id: Subscription UUID

        Returns:
            License entity or None if not found
        """

    @abstractmethod
    async def save_transition(self, updated: License, expected: License) -> Optional[License]:
        """
        Compare-and-set a lifecycle transition.

        Writes the lifecycle fields of ``updated`` only if the stored row
        still has ``expected``'s status and version.

        Args:
            updated: License carrying the new state
            expected: License as it was read

        Returns:
            The stored license after the write, or None if the row changed
        """

    @abstractmethod
    async def expire_if_overdue(self, license_id: uuid.UUID, now: datetime) -> bool:
        """
        Move an active license whose expiry has passed to expired.

        Args:
            license_id: License UUID
            now: Reference time

        Returns:
            True if this call performed the transition
        """

    @abstractmethod
    async def record_validation(
        self,
        license_id: uuid.UUID,
        instance_id: uuid.UUID,
        hostname: str,
        now: datetime,
    ) -> bool:
        """
        Atomically bump validation telemetry of an active license.

        Args:
            license_id: License UUID
            instance_id: Calling deployment's instance id
            hostname: Calling deployment's hostname
            now: Validation time

        Returns:
            False if the license was no longer active
        """

    @abstractmethod
    async def find_overdue(self, now: datetime, limit: int = 500) -> List[License]:
        """
        Active licenses whose expiry has passed.

        Args:
            now: Reference time
            limit: Maximum number of licenses

        Returns:
            List of license entities
        """
