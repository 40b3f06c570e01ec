"""
Customer domain entity.

Customers are owned by the customer-facing side of the product; this
service only reads the fields it needs to issue keys and notify.
"""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Customer:
    """Read model of a customer."""

    id: int
    email: str
    first_name: str
    last_name: str
    organization_name: Optional[str]
    stripe_customer_id: Optional[str]
    is_active: bool

    @property
    def display_name(self) -> str:
        """Organization when set, otherwise the person's name."""
        if self.organization_name:
            return self.organization_name
        return f"{self.first_name} {self.last_name}".strip() or self.email
