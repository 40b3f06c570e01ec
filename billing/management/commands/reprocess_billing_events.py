"""
Django management command to replay failed billing events.

Uses the payload stored when the webhook was first received, so the
billing provider does not need to redeliver.
"""

from asgiref.sync import async_to_sync
from django.core.management.base import BaseCommand, CommandError

from billing.infrastructure.factory import build_webhook_handler
from billing.infrastructure.repositories.django_billing_event_log import DjangoBillingEventLog
from core.domain.exceptions import NotFoundError


class Command(BaseCommand):
    """Command to replay failed billing events."""

    help = "Replay failed billing webhook events from their stored payload"

    def add_arguments(self, parser):
        """Add command arguments."""
        parser.add_argument("--event-id", help="Replay a single event by provider id")
        parser.add_argument("--limit", type=int, default=100, help="Maximum events to replay")
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Dry run mode - list events without replaying them",
        )

    def handle(self, *args, **options):
        """Execute the command."""
        if options["event_id"]:
            event_ids = [options["event_id"]]
        else:
            records = async_to_sync(DjangoBillingEventLog().list_failed)(limit=options["limit"])
            event_ids = [record.event_id for record in records]

        self.stdout.write(f"Found {len(event_ids)} event(s) to replay")
        if options["dry_run"]:
            # pylint: disable=no-member
            self.stdout.write(self.style.WARNING("DRY RUN - No events will be replayed"))
            for event_id in event_ids:
                self.stdout.write(f"  - {event_id}")
            return

        handler = build_webhook_handler()
        failed = 0
        for event_id in event_ids:
            try:
                outcome = async_to_sync(handler.reprocess)(event_id)
            except NotFoundError as e:
                raise CommandError(e.message) from e
            if outcome.failed:
                failed += 1
                self.stderr.write(f"  - {event_id}: {outcome.error}")
            else:
                self.stdout.write(f"  - {event_id}: {outcome.status.value}")

        # pylint: disable=no-member
        style = self.style.ERROR if failed else self.style.SUCCESS
        self.stdout.write(style(f"Replayed {len(event_ids) - failed} event(s), {failed} failed"))
