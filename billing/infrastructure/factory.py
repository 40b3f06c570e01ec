"""
Wiring for the billing webhook pipeline.

Shared by the webhook view and the ``reprocess_billing_events`` command.
"""
from accounts.infrastructure.repositories.django_customer_directory import DjangoCustomerDirectory
from audit.infrastructure.repositories.django_audit_sink import DjangoAuditSink
from billing.application.handlers.process_billing_webhook_handler import (
    ProcessBillingWebhookHandler,
)
from billing.application.handlers.subscription_reconciler import SubscriptionReconciler
from billing.infrastructure.email_notifier import EmailCustomerNotifier
from billing.infrastructure.repositories.django_billing_event_log import DjangoBillingEventLog
from billing.infrastructure.repositories.django_subscription_repository import (
    DjangoSubscriptionRepository,
)
from billing.infrastructure.stripe_gateway import StripeBillingGateway
from billing.ports.billing_gateway import BillingGateway
from billing.ports.customer_notifier import CustomerNotifier
from licenses.application.handlers.issue_license_handler import IssueLicenseHandler
from licenses.domain.key_codec import LicenseKeyCodec
from licenses.infrastructure.repositories.django_license_repository import DjangoLicenseRepository
from licenses.infrastructure.signing import get_signing_context


def build_subscription_reconciler(
    codec: LicenseKeyCodec = None, notifier: CustomerNotifier = None
) -> SubscriptionReconciler:
    license_repository = DjangoLicenseRepository()
    customer_directory = DjangoCustomerDirectory()
    audit_sink = DjangoAuditSink()
    return SubscriptionReconciler(
        subscription_repository=DjangoSubscriptionRepository(),
        license_repository=license_repository,
        customer_directory=customer_directory,
        audit_sink=audit_sink,
        issuer=IssueLicenseHandler(
            license_repository=license_repository,
            customer_directory=customer_directory,
            audit_sink=audit_sink,
            codec=codec or LicenseKeyCodec(get_signing_context()),
        ),
        notifier=notifier or EmailCustomerNotifier(),
    )


def build_webhook_handler(
    gateway: BillingGateway = None,
    codec: LicenseKeyCodec = None,
    notifier: CustomerNotifier = None,
) -> ProcessBillingWebhookHandler:
    """
    Assemble the webhook handler over the Django adapters.

    Args:
        gateway: Defaults to ``StripeBillingGateway`` configured from settings
        codec: Defaults to a codec over the process signing context
        notifier: Defaults to ``EmailCustomerNotifier``
    """
    return ProcessBillingWebhookHandler(
        gateway=gateway or StripeBillingGateway(),
        event_log=DjangoBillingEventLog(),
        reconciler=build_subscription_reconciler(codec=codec, notifier=notifier),
    )
