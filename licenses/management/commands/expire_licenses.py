"""
Django management command to expire overdue licenses.

Runs the same sweep as the hourly Celery task.
"""

from asgiref.sync import async_to_sync
from django.conf import settings
from django.core.management.base import BaseCommand

from audit.infrastructure.repositories.django_audit_sink import DjangoAuditSink
from licenses.application.commands.expire_licenses import ExpireOverdueLicensesCommand
from licenses.application.handlers.expire_licenses_handler import ExpireOverdueLicensesHandler
from licenses.infrastructure.repositories.django_license_repository import DjangoLicenseRepository


class Command(BaseCommand):
    """Command to check and mark expired licenses."""

    help = "Mark active licenses whose expiry has passed as expired"

    def add_arguments(self, parser):
        """Add command arguments."""
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Dry run mode - don't actually update licenses",
        )
        parser.add_argument(
            "--batch-size",
            type=int,
            default=settings.LICENSE_EXPIRY_SWEEP_BATCH_SIZE,
            help="Maximum number of licenses to process",
        )

    def handle(self, *args, **options):
        """Execute the command."""
        handler = ExpireOverdueLicensesHandler(
            license_repository=DjangoLicenseRepository(),
            audit_sink=DjangoAuditSink(),
        )
        result = async_to_sync(handler.handle)(
            ExpireOverdueLicensesCommand(
                batch_size=options["batch_size"], dry_run=options["dry_run"]
            )
        )

        self.stdout.write(f"Found {result.found} overdue license(s)")
        if options["dry_run"]:
            # pylint: disable=no-member
            self.stdout.write(self.style.WARNING("DRY RUN - No changes will be made"))
            return

        self.stdout.write(
            # pylint: disable=no-member
            self.style.SUCCESS(f"Marked {len(result.expired)} license(s) as expired")
        )
