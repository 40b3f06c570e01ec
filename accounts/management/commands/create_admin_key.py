"""
Django management command to mint an admin API key.

The raw key is printed once and cannot be recovered afterwards.
"""

from django.core.management.base import BaseCommand

from accounts.infrastructure.models import AdminApiKey


class Command(BaseCommand):
    """Create an admin API key."""

    help = "Create an API key for the administrative license API"

    def add_arguments(self, parser):
        parser.add_argument("name", help="Label for the key holder")

    def handle(self, *args, **options):
        api_key, raw_key = AdminApiKey.generate(options["name"])
        self.stdout.write(self.style.SUCCESS(f"Created admin key {api_key.id} ({api_key.name})"))
        self.stdout.write(raw_key)
