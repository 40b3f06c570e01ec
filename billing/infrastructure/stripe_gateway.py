"""
Stripe billing gateway.

Verifies Stripe webhook signatures and translates Stripe event payloads
into billing events. Stripe moved the subscription period bounds onto
subscription items and the invoice's subscription id under
``parent.subscription_details`` in its 2025 API versions; both shapes
are read here so the reconciler never sees the difference.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

import stripe
from asgiref.sync import sync_to_async
from django.conf import settings

from billing.domain.events import (
    BillingEvent,
    CheckoutCompleted,
    PaymentFailed,
    PaymentSucceeded,
    SubscriptionDeleted,
    SubscriptionUpdated,
)
from billing.ports.billing_gateway import BillingGateway
from core.domain.exceptions import InvalidBillingEventError, WebhookSignatureError
from core.domain.value_objects import BillingCycle, LicenseTier, SubscriptionStatus

logger = logging.getLogger(__name__)

STRIPE_STATUS_MAP = {
    "active": SubscriptionStatus.ACTIVE,
    "trialing": SubscriptionStatus.TRIALING,
    "past_due": SubscriptionStatus.PAST_DUE,
    "unpaid": SubscriptionStatus.PAST_DUE,
    "paused": SubscriptionStatus.PAST_DUE,
    "canceled": SubscriptionStatus.CANCELED,
    "incomplete": SubscriptionStatus.INCOMPLETE,
    "incomplete_expired": SubscriptionStatus.CANCELED,
}


def _from_timestamp(value) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def _object_id(value) -> Optional[str]:
    """Stripe references are either an id string or an expanded object."""
    if isinstance(value, dict):
        return value.get("id")
    return value


def _first_item(subscription: Dict[str, Any]) -> Dict[str, Any]:
    items = (subscription.get("items") or {}).get("data") or []
    return items[0] if items else {}


def subscription_period(subscription: Dict[str, Any]) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Current period bounds of a Stripe subscription, from either payload shape."""
    item = _first_item(subscription)
    start = subscription.get("current_period_start") or item.get("current_period_start")
    end = subscription.get("current_period_end") or item.get("current_period_end")
    return _from_timestamp(start), _from_timestamp(end)


def invoice_subscription_id(invoice: Dict[str, Any]) -> Optional[str]:
    """Subscription id an invoice bills, from either payload shape."""
    subscription = invoice.get("subscription")
    if subscription:
        return _object_id(subscription)
    details = (invoice.get("parent") or {}).get("subscription_details") or {}
    return _object_id(details.get("subscription"))


def map_subscription_status(status: str) -> SubscriptionStatus:
    """
    Map a Stripe subscription status onto the canonical set.

    Raises:
        InvalidBillingEventError: For a status Stripe does not document
    """
    try:
        return STRIPE_STATUS_MAP[status]
    except KeyError as e:
        raise InvalidBillingEventError(f"Unknown subscription status: {status!r}") from e


class StripeBillingGateway(BillingGateway):
    """
    BillingGateway for Stripe.

    Args:
        api_key: Stripe secret key; defaults to ``STRIPE_SECRET_KEY``
        webhook_secret: Endpoint signing secret; defaults to
            ``STRIPE_WEBHOOK_SECRET``
    """

    def __init__(self, api_key: str = None, webhook_secret: str = None):
        self.api_key = api_key or settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET
        self._translators: Dict[str, Callable] = {
            "checkout.session.completed": self._checkout_completed,
            "customer.subscription.created": self._subscription_updated,
            "customer.subscription.updated": self._subscription_updated,
            "customer.subscription.deleted": self._subscription_deleted,
            "invoice.payment_failed": self._payment_failed,
            "invoice.payment_succeeded": self._payment_succeeded,
            "invoice.paid": self._payment_succeeded,
        }

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        if not self.webhook_secret:
            logger.error("STRIPE_WEBHOOK_SECRET is not configured; rejecting webhook")
            raise WebhookSignatureError("Webhook secret not configured")
        if not signature:
            raise WebhookSignatureError("Missing webhook signature")

        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.warning("Stripe webhook signature verification failed: %s", e)
            raise WebhookSignatureError() from e
        except ValueError as e:
            raise WebhookSignatureError("Invalid webhook payload") from e

        return json.loads(payload)

    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        """Fetch a subscription from the Stripe API as a plain dict."""
        return stripe.Subscription.retrieve(subscription_id, api_key=self.api_key).to_dict()

    async def translate(self, event: Dict[str, Any]) -> Optional[BillingEvent]:
        event_type = event.get("type")
        translator = self._translators.get(event_type)
        if translator is None:
            logger.debug("Unhandled webhook event: %s", event_type)
            return None

        try:
            obj = event["data"]["object"]
            event_id = event["id"]
        except (KeyError, TypeError) as e:
            raise InvalidBillingEventError(f"Malformed {event_type} event") from e

        occurred_at = _from_timestamp(event.get("created")) or datetime.now(timezone.utc)
        return await translator(event_id, occurred_at, obj)

    async def _checkout_completed(self, event_id, occurred_at, session) -> CheckoutCompleted:
        metadata = session.get("metadata") or {}
        subscription = session.get("subscription")
        if not subscription or not metadata.get("customerId") or not metadata.get("tier"):
            raise InvalidBillingEventError(
                f"Checkout session {session.get('id')} is missing subscription metadata"
            )

        try:
            customer_id = int(metadata["customerId"])
            tier = LicenseTier(metadata["tier"])
            billing_cycle = BillingCycle(metadata.get("billingCycle", "monthly"))
        except ValueError as e:
            raise InvalidBillingEventError(f"Invalid checkout metadata: {metadata}") from e
        if not tier.is_paid:
            raise InvalidBillingEventError(f"Checkout for unpaid tier {tier}")

        if not isinstance(subscription, dict):
            subscription = await sync_to_async(self.retrieve_subscription)(subscription)

        start, end = subscription_period(subscription)
        price = _first_item(subscription).get("price") or {}
        return CheckoutCompleted(
            event_id=event_id,
            occurred_at=occurred_at,
            external_subscription_id=subscription["id"],
            external_customer_id=_object_id(session.get("customer")),
            customer_id=customer_id,
            tier=tier,
            billing_cycle=billing_cycle,
            current_period_start=start,
            current_period_end=end,
            price_id=price.get("id"),
            product_id=_object_id(price.get("product")),
        )

    async def _subscription_updated(self, event_id, occurred_at, subscription) -> SubscriptionUpdated:
        start, end = subscription_period(subscription)
        return SubscriptionUpdated(
            event_id=event_id,
            occurred_at=occurred_at,
            external_subscription_id=subscription["id"],
            status=map_subscription_status(subscription.get("status")),
            current_period_start=start,
            current_period_end=end,
            cancel_at_period_end=bool(subscription.get("cancel_at_period_end")),
            canceled_at=_from_timestamp(subscription.get("canceled_at")),
        )

    async def _subscription_deleted(self, event_id, occurred_at, subscription) -> SubscriptionDeleted:
        return SubscriptionDeleted(
            event_id=event_id,
            occurred_at=occurred_at,
            external_subscription_id=subscription["id"],
            canceled_at=_from_timestamp(subscription.get("canceled_at")),
        )

    async def _payment_failed(self, event_id, occurred_at, invoice) -> Optional[PaymentFailed]:
        subscription_id = invoice_subscription_id(invoice)
        if not subscription_id:
            return None
        return PaymentFailed(
            event_id=event_id,
            occurred_at=occurred_at,
            external_subscription_id=subscription_id,
            invoice_id=invoice.get("id"),
        )

    async def _payment_succeeded(self, event_id, occurred_at, invoice) -> Optional[PaymentSucceeded]:
        subscription_id = invoice_subscription_id(invoice)
        if not subscription_id:
            return None
        return PaymentSucceeded(
            event_id=event_id,
            occurred_at=occurred_at,
            external_subscription_id=subscription_id,
            invoice_id=invoice.get("id"),
        )
