"""
Django implementation of SubscriptionRepository port.
"""
import dataclasses
from datetime import datetime, timezone
from typing import Optional, Tuple

from asgiref.sync import sync_to_async
from django.db import IntegrityError, transaction
from django.db.models import F

from billing.domain.subscription import Subscription, SubscriptionState
from billing.infrastructure.models import Subscription as SubscriptionModel
from billing.ports.subscription_repository import SubscriptionRepository
from core.domain.value_objects import BillingCycle, LicenseTier, SubscriptionStatus


class DjangoSubscriptionRepository(SubscriptionRepository):
    """
    Django ORM implementation of SubscriptionRepository.
    """

    def _to_domain(self, model: SubscriptionModel) -> Subscription:
        """
        Convert Django model to domain entity.

        Args:
            model: Django Subscription model

        Returns:
            Subscription domain entity
        """
        return Subscription(
            id=model.id,
            customer_id=model.customer_id,
            external_id=model.external_id,
            external_customer_id=model.external_customer_id,
            tier=LicenseTier(model.tier),
            status=SubscriptionStatus(model.status),
            billing_cycle=BillingCycle(model.billing_cycle),
            current_period_start=model.current_period_start,
            current_period_end=model.current_period_end,
            cancel_at_period_end=model.cancel_at_period_end,
            canceled_at=model.canceled_at,
            price_id=model.price_id,
            product_id=model.product_id,
            last_event_at=model.last_event_at,
            version=model.version,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    @staticmethod
    def _state_fields(state: SubscriptionState) -> dict:
        fields = dataclasses.asdict(state)
        fields["status"] = state.status.value
        return fields

    @sync_to_async
    def get_or_create(self, subscription: Subscription) -> Tuple[Subscription, bool]:
        defaults = {
            "id": subscription.id,
            "customer_id": subscription.customer_id,
            "external_customer_id": subscription.external_customer_id,
            "tier": subscription.tier.value,
            "billing_cycle": subscription.billing_cycle.value,
            "price_id": subscription.price_id,
            "product_id": subscription.product_id,
            "version": subscription.version,
            "created_at": subscription.created_at,
            "updated_at": subscription.updated_at,
            **self._state_fields(subscription.state),
        }
        try:
            with transaction.atomic():
                model, created = SubscriptionModel.objects.get_or_create(
                    external_id=subscription.external_id, defaults=defaults
                )
        except IntegrityError:
            # A concurrent delivery inserted the same external id first.
            model = SubscriptionModel.objects.get(external_id=subscription.external_id)
            created = False
        return self._to_domain(model), created

    @sync_to_async
    def find_by_external_id(self, external_id: str) -> Optional[Subscription]:
        model = SubscriptionModel.objects.filter(external_id=external_id).first()
        return self._to_domain(model) if model else None

    @sync_to_async
    def save_transition(
        self, expected: Subscription, state: SubscriptionState
    ) -> Optional[Subscription]:
        rows = SubscriptionModel.objects.filter(id=expected.id, version=expected.version).update(
            **self._state_fields(state),
            updated_at=datetime.now(timezone.utc),
            version=F("version") + 1,
        )
        if not rows:
            return None
        return self._to_domain(SubscriptionModel.objects.get(id=expected.id))
