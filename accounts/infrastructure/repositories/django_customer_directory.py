"""
Django implementation of the CustomerDirectory port.
"""
from typing import Optional

from asgiref.sync import sync_to_async

from accounts.domain.customer import Customer
from accounts.infrastructure.models import Customer as CustomerModel
from accounts.ports.customer_directory import CustomerDirectory


class DjangoCustomerDirectory(CustomerDirectory):
    """Reads customers from the ORM."""

    def _to_domain(self, model: CustomerModel) -> Customer:
        return Customer(
            id=model.id,
            email=model.email,
            first_name=model.first_name,
            last_name=model.last_name,
            organization_name=model.organization_name,
            stripe_customer_id=model.stripe_customer_id,
            is_active=model.is_active,
        )

    @sync_to_async
    def find_by_id(self, customer_id: int) -> Optional[Customer]:
        model = CustomerModel.objects.filter(id=customer_id).first()
        return self._to_domain(model) if model else None
