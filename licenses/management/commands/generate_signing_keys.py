"""
Django management command to generate an Ed25519 signing keypair.

Prints base64-encoded PEM values ready to paste into
``LICENSE_SIGNING_PRIVATE_KEY`` and ``LICENSE_SIGNING_PUBLIC_KEY``.
"""
import base64

from django.core.management.base import BaseCommand

from licenses.infrastructure.signing import SigningContext


class Command(BaseCommand):
    """Generate a license signing keypair."""

    help = "Generate an Ed25519 keypair for license checksums"

    def handle(self, *args, **options):
        context = SigningContext.generate()
        private_b64 = base64.b64encode(context.private_key_pem().encode("ascii")).decode("ascii")
        public_b64 = base64.b64encode(context.public_key_pem().encode("ascii")).decode("ascii")
        self.stdout.write(f"LICENSE_SIGNING_PRIVATE_KEY={private_b64}")
        self.stdout.write(f"LICENSE_SIGNING_PUBLIC_KEY={public_b64}")
        # pylint: disable=no-member
        self.stdout.write(
            self.style.WARNING("Store the private key as a secret; rotating it invalidates issued keys.")
        )
