"""
Email customer notifier.

The license key email is sent inline so the plaintext key never sits
in a broker queue; the payment-failed email carries nothing secret and
goes through Celery.
"""
import logging
import smtplib

from asgiref.sync import sync_to_async
from django.conf import settings
from django.core.mail import send_mail

from accounts.domain.customer import Customer
from billing.ports.customer_notifier import CustomerNotifier
from core.domain.value_objects import LicenseTier
from licenses.domain.tiers import UNLIMITED, get_tier

logger = logging.getLogger(__name__)


def _limit_text(value: int) -> str:
    return "Unlimited" if value == UNLIMITED else str(value)


def render_license_key_email(customer: Customer, license_key: str, tier: LicenseTier) -> str:
    """Plain-text body of the license key email."""
    definition = get_tier(tier)
    features = [
        label
        for label, enabled in (
            ("Audit logs", definition.features.audit_logs),
            ("Custom branding", definition.features.custom_branding),
            ("SSO integration", definition.features.sso),
            ("Priority support", definition.features.priority_support),
            ("Multi-tenant", definition.features.multi_tenant),
        )
        if enabled
    ]
    lines = [
        f"Hi {customer.first_name or customer.display_name},",
        "",
        f"Thank you for subscribing to the {tier.value.title()} plan. Your license key is:",
        "",
        f"    {license_key}",
        "",
        "To activate it, set LICENSE_KEY in your deployment's environment and restart the server.",
        "",
        "Your plan includes:",
        f"  - Users: {_limit_text(definition.limits.max_users)}",
        f"  - Instances: {_limit_text(definition.limits.max_instances)}",
        f"  - Concurrent sessions: {_limit_text(definition.limits.max_concurrent_sessions)}",
    ]
    lines.extend(f"  - {feature}" for feature in features)
    lines.extend(
        [
            "",
            "Keep this key safe; it will not be shown again.",
            f"Manage your subscription at {settings.LICENSE_PORTAL_URL}",
        ]
    )
    return "\n".join(lines)


def render_payment_failed_email(first_name: str) -> str:
    """Plain-text body of the payment-failed email."""
    return "\n".join(
        [
            f"Hi {first_name or 'there'},",
            "",
            "We could not process the latest payment for your subscription, "
            "so your license has been suspended.",
            "",
            f"Update your payment method at {settings.LICENSE_PORTAL_URL}/billing "
            "and the license will be reactivated once the payment goes through.",
        ]
    )


class EmailCustomerNotifier(CustomerNotifier):
    """CustomerNotifier over Django's email backend."""

    async def send_license_key(self, customer: Customer, license_key: str, tier: LicenseTier) -> None:
        try:
            await sync_to_async(send_mail)(
                subject=f"Your {tier.value.title()} license key",
                message=render_license_key_email(customer, license_key, tier),
                from_email=settings.DEFAULT_FROM_EMAIL,
                recipient_list=[customer.email],
            )
        except (smtplib.SMTPException, OSError):
            # The license exists either way; support can resend the key.
            logger.error(
                "Failed to send license key email",
                extra={"customer_id": customer.id},
                exc_info=True,
            )
            return
        logger.info("License key email sent", extra={"customer_id": customer.id})

    async def send_payment_failed(self, customer: Customer) -> None:
        from billing.tasks import send_payment_failed_email_task

        await sync_to_async(send_payment_failed_email_task.delay)(
            customer.email, customer.first_name
        )
