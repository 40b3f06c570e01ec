"""
Celery tasks for the billing app.
"""
import logging
import smtplib

from django.conf import settings
from django.core.mail import send_mail

from LicenseAuthority.celery import app

logger = logging.getLogger(__name__)


@app.task(bind=True, max_retries=3)
def send_payment_failed_email_task(self, email: str, first_name: str):
    """
    Celery task for the payment-failed notification.

    Args:
        email: Recipient address
        first_name: Recipient first name
    """
    from billing.infrastructure.email_notifier import render_payment_failed_email

    try:
        send_mail(
            subject="Payment failed - action required",
            message=render_payment_failed_email(first_name),
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[email],
        )
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("Payment failed email delivery failed: %s", exc, exc_info=True)
        raise self.retry(exc=exc, countdown=2**self.request.retries)
