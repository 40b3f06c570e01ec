"""
Licenses app configuration.
"""
from django.apps import AppConfig
from django.conf import settings


class LicensesConfig(AppConfig):
    """Builds the process signing context once the registry is ready."""

    name = "licenses"
    verbose_name = "Licenses"
    signing_context = None

    def ready(self):
        from licenses.infrastructure.signing import SigningContext

        self.signing_context = SigningContext.from_settings(settings)
