"""
Customer notifier port.
"""
from abc import ABC, abstractmethod

from accounts.domain.customer import Customer
from core.domain.value_objects import LicenseTier


class CustomerNotifier(ABC):
    """Sends billing-driven messages to customers."""

    @abstractmethod
    async def send_license_key(self, customer: Customer, license_key: str, tier: LicenseTier) -> None:
        """
        Deliver a freshly issued key. Called at most once per license.

        Args:
            customer: Recipient
            license_key: Plaintext key
            tier: Tier the key grants
        """

    @abstractmethod
    async def send_payment_failed(self, customer: Customer) -> None:
        """
        Tell the customer a renewal payment failed and the license is suspended.

        Args:
            customer: Recipient
        """
