"""
Subscription repository port (interface).
"""
from abc import ABC, abstractmethod
from typing import Optional, Tuple

from billing.domain.subscription import Subscription, SubscriptionState


class SubscriptionRepository(ABC):
    """Abstract repository for Subscription entities."""

    @abstractmethod
    async def get_or_create(self, subscription: Subscription) -> Tuple[Subscription, bool]:
        """
        Insert ``subscription`` unless one with its external id exists.

        Args:
            subscription: Subscription to insert

        Returns:
            Tuple of the stored subscription and whether it was created
        """

    @abstractmethod
    async def find_by_external_id(self, external_id: str) -> Optional[Subscription]:
        """
        Find a subscription by the provider's id.

        Args:
            external_id: Provider subscription id

        Returns:
            Subscription or None if not found
        """

    @abstractmethod
    async def save_transition(
        self, expected: Subscription, state: SubscriptionState
    ) -> Optional[Subscription]:
        """
        Persist ``state`` if the row still has ``expected.version``.

        Args:
            expected: Subscription as it was read
            state: New lifecycle state

        Returns:
            The updated subscription, or None if another writer got there first
        """
