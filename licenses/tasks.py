"""
Celery tasks for the licenses app.
"""
import logging

from asgiref.sync import async_to_sync
from django.conf import settings

from LicenseAuthority.celery import app

logger = logging.getLogger(__name__)


@app.task(bind=True, max_retries=3)
def expire_overdue_licenses_task(self):
    """
    Periodic expiry sweep, scheduled hourly by beat.

    Returns:
        Number of licenses moved to expired
    """
    from audit.infrastructure.repositories.django_audit_sink import DjangoAuditSink
    from licenses.application.commands.expire_licenses import ExpireOverdueLicensesCommand
    from licenses.application.handlers.expire_licenses_handler import (
        ExpireOverdueLicensesHandler,
    )
    from licenses.infrastructure.repositories.django_license_repository import (
        DjangoLicenseRepository,
    )

    handler = ExpireOverdueLicensesHandler(
        license_repository=DjangoLicenseRepository(),
        audit_sink=DjangoAuditSink(),
    )
    try:
        result = async_to_sync(handler.handle)(
            ExpireOverdueLicensesCommand(batch_size=settings.LICENSE_EXPIRY_SWEEP_BATCH_SIZE)
        )
    except Exception as exc:
        logger.error("Expiry sweep failed: %s", exc, exc_info=True)
        raise self.retry(exc=exc, countdown=2**self.request.retries)
    return len(result.expired)
