"""
Customer directory port.
"""
from abc import ABC, abstractmethod
from typing import Optional

from accounts.domain.customer import Customer


class CustomerDirectory(ABC):
    """Lookup of customers by id."""

    @abstractmethod
    async def find_by_id(self, customer_id: int) -> Optional[Customer]:
        """
        Find a customer by ID.

        Args:
            customer_id: Customer primary key

        Returns:
            Customer or None if not found
        """
