"""
Unit tests for StripeBillingGateway.
"""
import json
import time

import pytest

from billing.domain.events import (
    CheckoutCompleted,
    PaymentFailed,
    PaymentSucceeded,
    SubscriptionDeleted,
    SubscriptionUpdated,
)
from billing.infrastructure.stripe_gateway import (
    StripeBillingGateway,
    invoice_subscription_id,
    subscription_period,
)
from core.domain.exceptions import InvalidBillingEventError, WebhookSignatureError
from core.domain.value_objects import BillingCycle, LicenseTier, SubscriptionStatus

SECRET = "whsec_unit_secret"
PERIOD_START = 1767225600
PERIOD_END = 1769904000


@pytest.fixture
def gateway():
    return StripeBillingGateway(api_key="sk_test_unit", webhook_secret=SECRET)


def _event(event_type, obj, event_id="evt_123"):
    return {"id": event_id, "type": event_type, "created": int(time.time()), "data": {"object": obj}}


def _subscription(**overrides):
    subscription = {
        "id": "sub_123",
        "object": "subscription",
        "status": "active",
        "cancel_at_period_end": False,
        "canceled_at": None,
        "items": {
            "data": [
                {
                    "current_period_start": PERIOD_START,
                    "current_period_end": PERIOD_END,
                    "price": {"id": "price_team_monthly", "product": "prod_team"},
                }
            ]
        },
    }
    subscription.update(overrides)
    return subscription


def _checkout_session(subscription, **metadata):
    return {
        "id": "cs_123",
        "object": "checkout.session",
        "customer": "cus_123",
        "subscription": subscription,
        "metadata": {"customerId": "7", "tier": "team", "billingCycle": "monthly", **metadata},
    }


class TestConstructEvent:
    """Tests for webhook signature verification."""

    def test_valid_signature(self, gateway, sign_stripe_payload):
        payload = json.dumps(_event("invoice.paid", {"id": "in_1"})).encode()

        event = gateway.construct_event(payload, sign_stripe_payload(payload, secret=SECRET))

        assert event["id"] == "evt_123"

    def test_wrong_secret(self, gateway, sign_stripe_payload):
        payload = json.dumps(_event("invoice.paid", {"id": "in_1"})).encode()

        with pytest.raises(WebhookSignatureError):
            gateway.construct_event(payload, sign_stripe_payload(payload, secret="whsec_other"))

    def test_tampered_payload(self, gateway, sign_stripe_payload):
        payload = json.dumps(_event("invoice.paid", {"id": "in_1"})).encode()
        signature = sign_stripe_payload(payload, secret=SECRET)

        with pytest.raises(WebhookSignatureError):
            gateway.construct_event(payload.replace(b"in_1", b"in_2"), signature)

    def test_missing_signature(self, gateway):
        with pytest.raises(WebhookSignatureError):
            gateway.construct_event(b"{}", "")

    def test_missing_secret_rejects_everything(self, settings, sign_stripe_payload):
        settings.STRIPE_WEBHOOK_SECRET = ""
        unconfigured = StripeBillingGateway(api_key="sk_test_unit")
        payload = b"{}"

        with pytest.raises(WebhookSignatureError):
            unconfigured.construct_event(payload, sign_stripe_payload(payload, secret=SECRET))


@pytest.mark.asyncio
class TestTranslate:
    """Tests for Stripe payload translation."""

    async def test_checkout_with_expanded_subscription(self, gateway):
        event = await gateway.translate(
            _event("checkout.session.completed", _checkout_session(_subscription()))
        )

        assert isinstance(event, CheckoutCompleted)
        assert event.customer_id == 7
        assert event.tier == LicenseTier.TEAM
        assert event.billing_cycle == BillingCycle.MONTHLY
        assert event.external_subscription_id == "sub_123"
        assert event.external_customer_id == "cus_123"
        assert event.current_period_end.timestamp() == PERIOD_END
        assert event.price_id == "price_team_monthly"
        assert event.product_id == "prod_team"

    async def test_checkout_retrieves_subscription_by_id(self, gateway):
        retrieved = []

        def retrieve(subscription_id):
            retrieved.append(subscription_id)
            return _subscription(id=subscription_id)

        gateway.retrieve_subscription = retrieve

        event = await gateway.translate(
            _event("checkout.session.completed", _checkout_session("sub_456"))
        )

        assert retrieved == ["sub_456"]
        assert event.external_subscription_id == "sub_456"

    async def test_checkout_without_metadata(self, gateway):
        session = _checkout_session(_subscription())
        session["metadata"] = {}

        with pytest.raises(InvalidBillingEventError):
            await gateway.translate(_event("checkout.session.completed", session))

    async def test_checkout_for_unpaid_tier(self, gateway):
        session = _checkout_session(_subscription(), tier="community")

        with pytest.raises(InvalidBillingEventError):
            await gateway.translate(_event("checkout.session.completed", session))

    async def test_subscription_updated(self, gateway):
        event = await gateway.translate(
            _event(
                "customer.subscription.updated",
                _subscription(status="past_due", cancel_at_period_end=True),
            )
        )

        assert isinstance(event, SubscriptionUpdated)
        assert event.status == SubscriptionStatus.PAST_DUE
        assert event.cancel_at_period_end is True
        assert event.current_period_start.timestamp() == PERIOD_START

    async def test_unknown_subscription_status(self, gateway):
        with pytest.raises(InvalidBillingEventError):
            await gateway.translate(
                _event("customer.subscription.updated", _subscription(status="zombie"))
            )

    async def test_subscription_deleted(self, gateway):
        event = await gateway.translate(
            _event("customer.subscription.deleted", _subscription(status="canceled"))
        )

        assert isinstance(event, SubscriptionDeleted)
        assert event.external_subscription_id == "sub_123"

    async def test_payment_failed(self, gateway):
        event = await gateway.translate(
            _event("invoice.payment_failed", {"id": "in_1", "subscription": "sub_123"})
        )

        assert isinstance(event, PaymentFailed)
        assert event.invoice_id == "in_1"

    async def test_payment_succeeded_with_parent_details(self, gateway):
        invoice = {
            "id": "in_2",
            "parent": {"subscription_details": {"subscription": "sub_123"}},
        }

        event = await gateway.translate(_event("invoice.paid", invoice))

        assert isinstance(event, PaymentSucceeded)
        assert event.external_subscription_id == "sub_123"

    async def test_one_off_invoice_is_ignored(self, gateway):
        assert await gateway.translate(_event("invoice.payment_failed", {"id": "in_3"})) is None

    async def test_unhandled_event_type_is_ignored(self, gateway):
        assert await gateway.translate(_event("customer.created", {"id": "cus_1"})) is None


def test_period_from_legacy_payload_shape():
    start, end = subscription_period(
        {"current_period_start": PERIOD_START, "current_period_end": PERIOD_END}
    )

    assert start.timestamp() == PERIOD_START
    assert end.timestamp() == PERIOD_END


def test_invoice_subscription_from_expanded_object():
    assert invoice_subscription_id({"subscription": {"id": "sub_9"}}) == "sub_9"
