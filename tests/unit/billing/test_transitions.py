"""
Unit tests for the pure billing transitions.
"""
import dataclasses
from datetime import datetime, timedelta, timezone

import pytest

from billing.domain.events import (
    CheckoutCompleted,
    PaymentFailed,
    PaymentSucceeded,
    SubscriptionDeleted,
    SubscriptionUpdated,
)
from billing.domain.subscription import SubscriptionState
from billing.domain.transitions import (
    PAYMENT_FAILED_REASON,
    license_transition,
    subscription_transition,
)
from core.domain.value_objects import (
    ActorType,
    BillingCycle,
    LicenseStatus,
    LicenseTier,
    SubscriptionStatus,
)
from licenses.domain.license import LicenseState

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
PERIOD_END = NOW + timedelta(days=30)


def _base(**overrides):
    values = {"event_id": "evt_1", "occurred_at": NOW, "external_subscription_id": "sub_1"}
    values.update(overrides)
    return values


def _checkout():
    return CheckoutCompleted(
        customer_id=1,
        tier=LicenseTier.TEAM,
        billing_cycle=BillingCycle.MONTHLY,
        current_period_start=NOW,
        current_period_end=PERIOD_END,
        **_base(),
    )


ACTIVE_SUB = SubscriptionState(status=SubscriptionStatus.ACTIVE, last_event_at=NOW - timedelta(hours=1))
PAST_DUE_SUB = SubscriptionState(status=SubscriptionStatus.PAST_DUE, last_event_at=NOW - timedelta(hours=1))
CANCELED_SUB = SubscriptionState(status=SubscriptionStatus.CANCELED, canceled_at=NOW)
ACTIVE_LICENSE = LicenseState(status=LicenseStatus.ACTIVE)
BILLING_SUSPENDED = LicenseState(
    status=LicenseStatus.SUSPENDED,
    suspension_reason=PAYMENT_FAILED_REASON,
    suspension_source=ActorType.BILLING_PROVIDER,
)


class TestSubscriptionTransition:
    """Tests for subscription_transition."""

    def test_checkout_creates_active_subscription(self):
        state = subscription_transition(None, _checkout(), NOW)

        assert state.status == SubscriptionStatus.ACTIVE
        assert state.current_period_end == PERIOD_END
        assert state.last_event_at == NOW

    def test_redelivered_checkout_is_noop(self):
        assert subscription_transition(ACTIVE_SUB, _checkout(), NOW) == ACTIVE_SUB

    @pytest.mark.parametrize(
        "event",
        [
            SubscriptionDeleted(**_base()),
            PaymentFailed(**_base()),
            SubscriptionUpdated(status=SubscriptionStatus.ACTIVE, **_base()),
        ],
    )
    def test_unknown_subscription_is_untracked(self, event):
        assert subscription_transition(None, event, NOW) is None

    def test_update_copies_provider_state(self):
        event = SubscriptionUpdated(
            status=SubscriptionStatus.ACTIVE,
            current_period_end=PERIOD_END,
            cancel_at_period_end=True,
            **_base(),
        )

        state = subscription_transition(ACTIVE_SUB, event, NOW)

        assert state.cancel_at_period_end is True
        assert state.current_period_end == PERIOD_END
        assert state.last_event_at == NOW

    def test_stale_update_is_ignored(self):
        event = SubscriptionUpdated(
            status=SubscriptionStatus.PAST_DUE, **_base(occurred_at=NOW - timedelta(days=1))
        )

        assert subscription_transition(ACTIVE_SUB, event, NOW) == ACTIVE_SUB

    def test_deleted_cancels_at_processing_time(self):
        state = subscription_transition(ACTIVE_SUB, SubscriptionDeleted(**_base()), NOW)

        assert state.status == SubscriptionStatus.CANCELED
        assert state.canceled_at == NOW

    def test_canceled_is_terminal(self):
        canceled = SubscriptionState(status=SubscriptionStatus.CANCELED, canceled_at=NOW)

        for event in (
            PaymentSucceeded(**_base()),
            SubscriptionUpdated(status=SubscriptionStatus.ACTIVE, **_base()),
        ):
            assert subscription_transition(canceled, event, NOW) == canceled

    def test_payment_failed_marks_past_due_once(self):
        state = subscription_transition(ACTIVE_SUB, PaymentFailed(**_base()), NOW)

        assert state.status == SubscriptionStatus.PAST_DUE
        assert subscription_transition(state, PaymentFailed(**_base()), NOW) == state

    def test_payment_succeeded_recovers_past_due(self):
        state = subscription_transition(PAST_DUE_SUB, PaymentSucceeded(**_base()), NOW)

        assert state.status == SubscriptionStatus.ACTIVE

    def test_routine_renewal_only_moves_the_clock(self):
        state = subscription_transition(ACTIVE_SUB, PaymentSucceeded(**_base()), NOW)

        assert state == dataclasses.replace(ACTIVE_SUB, last_event_at=NOW)

    def test_redelivered_payment_is_noop(self):
        current = dataclasses.replace(ACTIVE_SUB, last_event_at=NOW)

        assert subscription_transition(current, PaymentSucceeded(**_base()), NOW) == current

    def test_stale_payment_failure_is_ignored(self):
        recovered = dataclasses.replace(ACTIVE_SUB, last_event_at=NOW)
        event = PaymentFailed(**_base(occurred_at=NOW - timedelta(hours=2)))

        assert subscription_transition(recovered, event, NOW) == recovered

    def test_non_billing_event_is_rejected(self):
        with pytest.raises(TypeError):
            subscription_transition(ACTIVE_SUB, object(), NOW)


class TestLicenseTransition:
    """Tests for license_transition."""

    def test_soft_cancel_schedules_expiry_without_status_change(self):
        event = SubscriptionUpdated(
            status=SubscriptionStatus.ACTIVE,
            current_period_end=PERIOD_END,
            cancel_at_period_end=True,
            **_base(),
        )
        subscription = subscription_transition(ACTIVE_SUB, event, NOW)

        state = license_transition(ACTIVE_LICENSE, event, NOW, subscription)

        assert state.status == LicenseStatus.ACTIVE
        assert state.expires_at == PERIOD_END

    def test_stale_soft_cancel_is_ignored(self):
        event = SubscriptionUpdated(
            status=SubscriptionStatus.ACTIVE,
            current_period_end=PERIOD_END,
            cancel_at_period_end=True,
            **_base(occurred_at=NOW - timedelta(days=1)),
        )
        subscription = subscription_transition(ACTIVE_SUB, event, NOW)

        assert license_transition(ACTIVE_LICENSE, event, NOW, subscription) == ACTIVE_LICENSE

    def test_plain_update_leaves_license_alone(self):
        event = SubscriptionUpdated(status=SubscriptionStatus.ACTIVE, **_base())

        assert license_transition(ACTIVE_LICENSE, event, NOW, ACTIVE_SUB) == ACTIVE_LICENSE

    def test_deleted_expires_immediately(self):
        state = license_transition(ACTIVE_LICENSE, SubscriptionDeleted(**_base()), NOW, CANCELED_SUB)

        assert state == LicenseState(status=LicenseStatus.EXPIRED, expires_at=NOW)

    def test_deleted_twice_keeps_first_expiry(self):
        expired = LicenseState(status=LicenseStatus.EXPIRED, expires_at=NOW)
        later = NOW + timedelta(minutes=5)

        assert license_transition(expired, SubscriptionDeleted(**_base()), later, CANCELED_SUB) == expired

    def test_payment_failed_suspends_with_billing_source(self):
        state = license_transition(ACTIVE_LICENSE, PaymentFailed(**_base()), NOW, PAST_DUE_SUB)

        assert state.status == LicenseStatus.SUSPENDED
        assert state.suspension_reason == PAYMENT_FAILED_REASON
        assert state.suspension_source == ActorType.BILLING_PROVIDER

    def test_ignored_payment_failure_does_not_suspend(self):
        state = license_transition(ACTIVE_LICENSE, PaymentFailed(**_base()), NOW, ACTIVE_SUB)

        assert state == ACTIVE_LICENSE

    def test_payment_recovery_reactivates_billing_suspension(self):
        state = license_transition(BILLING_SUSPENDED, PaymentSucceeded(**_base()), NOW, ACTIVE_SUB)

        assert state.status == LicenseStatus.ACTIVE
        assert state.suspension_source is None

    def test_replayed_recovery_reactivates_license(self):
        # An earlier delivery already moved the subscription back to active.
        subscription = subscription_transition(ACTIVE_SUB, PaymentSucceeded(**_base()), NOW)

        state = license_transition(BILLING_SUSPENDED, PaymentSucceeded(**_base()), NOW, subscription)

        assert state.status == LicenseStatus.ACTIVE

    def test_active_update_lifts_billing_suspension(self):
        event = SubscriptionUpdated(status=SubscriptionStatus.ACTIVE, **_base())
        subscription = subscription_transition(PAST_DUE_SUB, event, NOW)

        state = license_transition(BILLING_SUSPENDED, event, NOW, subscription)

        assert state == LicenseState(status=LicenseStatus.ACTIVE)

    def test_past_due_subscription_keeps_suspension(self):
        state = license_transition(BILLING_SUSPENDED, PaymentSucceeded(**_base()), NOW, PAST_DUE_SUB)

        assert state == BILLING_SUSPENDED

    def test_payment_recovery_keeps_admin_suspension(self):
        suspended = LicenseState(
            status=LicenseStatus.SUSPENDED,
            suspension_reason="abuse",
            suspension_source=ActorType.ADMIN,
        )

        for event in (
            PaymentSucceeded(**_base()),
            SubscriptionUpdated(status=SubscriptionStatus.ACTIVE, **_base()),
        ):
            assert license_transition(suspended, event, NOW, ACTIVE_SUB) == suspended

    @pytest.mark.parametrize(
        "event",
        [
            SubscriptionDeleted(**_base()),
            PaymentFailed(**_base()),
            PaymentSucceeded(**_base()),
            SubscriptionUpdated(
                status=SubscriptionStatus.ACTIVE,
                current_period_end=PERIOD_END,
                cancel_at_period_end=True,
                **_base(),
            ),
        ],
    )
    def test_revoked_license_is_never_touched(self, event):
        revoked = LicenseState(status=LicenseStatus.REVOKED)

        assert license_transition(revoked, event, NOW, PAST_DUE_SUB) == revoked
        assert license_transition(revoked, event, NOW, ACTIVE_SUB) == revoked
