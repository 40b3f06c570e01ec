"""
Integration tests for the Stripe webhook endpoint.
"""
import json
import time
from io import StringIO

import pytest
from django.core import mail
from django.core.management import call_command
from django.urls import reverse

from accounts.infrastructure.models import Customer
from billing.infrastructure.models import BillingEventRecord as BillingEventRecordModel
from billing.infrastructure.models import Subscription as SubscriptionModel
from licenses.infrastructure.models import License as LicenseModel

PERIOD_START = 1767225600
PERIOD_END = 1769904000


def _subscription(subscription_id="sub_api_1", **overrides):
    subscription = {
        "id": subscription_id,
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


def _event(event_id, event_type, obj):
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "created": int(time.time()),
        "data": {"object": obj},
    }


def _checkout_event(event_id, customer_id, tier="team"):
    return _event(
        event_id,
        "checkout.session.completed",
        {
            "id": "cs_api_1",
            "object": "checkout.session",
            "customer": "cus_api_1",
            "subscription": _subscription(),
            "metadata": {"customerId": str(customer_id), "tier": tier, "billingCycle": "monthly"},
        },
    )


@pytest.fixture
def post_event(client, sign_stripe_payload):
    def _post(event, signature=None):
        payload = json.dumps(event).encode()
        return client.post(
            reverse("stripe-webhook"),
            data=payload,
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=signature if signature is not None else sign_stripe_payload(payload),
        )

    return _post


@pytest.mark.django_db
@pytest.mark.integration
class TestStripeWebhookAPI:
    """Integration tests for POST /api/v1/webhooks/stripe/."""

    def test_checkout_issues_and_emails_license(self, post_event, customer):
        response = post_event(_checkout_event("evt_api_checkout", customer.id))

        assert response.status_code == 200
        assert response.json() == {"received": True}
        license = LicenseModel.objects.get(customer_id=customer.id)
        assert license.tier == "team"
        assert license.subscription.external_id == "sub_api_1"
        record = BillingEventRecordModel.objects.get(event_id="evt_api_checkout")
        assert record.status == "processed"
        assert record.attempts == 1
        assert len(mail.outbox) == 1
        assert mail.outbox[0].to == [customer.email]
        assert "TEAM-" in mail.outbox[0].body

    def test_bad_signature_is_rejected(self, post_event, customer):
        response = post_event(
            _checkout_event("evt_api_forged", customer.id), signature="t=1,v1=deadbeef"
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_WEBHOOK_SIGNATURE"
        assert not BillingEventRecordModel.objects.exists()
        assert not LicenseModel.objects.exists()

    def test_missing_signature_is_rejected(self, client):
        response = client.post(
            reverse("stripe-webhook"), data=b"{}", content_type="application/json"
        )

        assert response.status_code == 400

    def test_redelivery_is_acknowledged_once(self, post_event, customer):
        event = _checkout_event("evt_api_dup", customer.id)

        post_event(event)
        response = post_event(event)

        assert response.status_code == 200
        assert response.json() == {"received": True}
        assert LicenseModel.objects.count() == 1
        assert BillingEventRecordModel.objects.get(event_id="evt_api_dup").attempts == 2
        assert len(mail.outbox) == 1

    def test_unhandled_event_is_ignored(self, post_event):
        response = post_event(_event("evt_api_other", "customer.created", {"id": "cus_x"}))

        assert response.status_code == 200
        assert BillingEventRecordModel.objects.get(event_id="evt_api_other").status == "ignored"

    def test_processing_failure_is_acknowledged_and_logged(self, post_event):
        response = post_event(_checkout_event("evt_api_orphan", 987_654))

        assert response.status_code == 200
        assert response.json() == {"received": True, "error": "Processing error logged"}
        record = BillingEventRecordModel.objects.get(event_id="evt_api_orphan")
        assert record.status == "failed"
        assert "987654" in record.error
        assert record.payload["id"] == "evt_api_orphan"
        assert not SubscriptionModel.objects.exists()

    def test_payment_failure_suspends_license(self, post_event, customer):
        post_event(_checkout_event("evt_api_c2", customer.id))
        mail.outbox.clear()

        response = post_event(
            _event(
                "evt_api_failed",
                "invoice.payment_failed",
                {"id": "in_api_1", "object": "invoice", "subscription": "sub_api_1"},
            )
        )

        assert response.status_code == 200
        assert LicenseModel.objects.get(customer_id=customer.id).status == "suspended"
        assert SubscriptionModel.objects.get(external_id="sub_api_1").status == "past_due"
        assert len(mail.outbox) == 1


@pytest.mark.django_db
@pytest.mark.integration
class TestReprocessBillingEvents:
    """Integration tests for the reprocess_billing_events command."""

    def test_failed_event_is_replayed_from_stored_payload(self, post_event):
        post_event(_checkout_event("evt_api_replay", 987_655))
        Customer.objects.create(id=987_655, email="late@example.com", first_name="Late")
        out = StringIO()

        call_command("reprocess_billing_events", stdout=out, stderr=StringIO())

        assert "Found 1 event(s) to replay" in out.getvalue()
        assert "Replayed 1 event(s), 0 failed" in out.getvalue()
        assert BillingEventRecordModel.objects.get(event_id="evt_api_replay").status == "processed"
        assert LicenseModel.objects.filter(customer_id=987_655).count() == 1

    def test_dry_run_lists_failed_events(self, post_event):
        post_event(_checkout_event("evt_api_listed", 987_656))
        out = StringIO()

        call_command("reprocess_billing_events", "--dry-run", stdout=out)

        assert "evt_api_listed" in out.getvalue()
        assert BillingEventRecordModel.objects.get(event_id="evt_api_listed").status == "failed"

    def test_unknown_event_id(self, db):
        from django.core.management.base import CommandError

        with pytest.raises(CommandError):
            call_command("reprocess_billing_events", "--event-id", "evt_missing", stdout=StringIO())
