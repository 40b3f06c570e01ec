"""
Core app configuration.
"""
import logging

from django.apps import AppConfig
from django.conf import settings

logger = logging.getLogger(__name__)


class CoreConfig(AppConfig):
    """Wires process-wide infrastructure once the app registry is ready."""

    name = "core"
    verbose_name = "Core"

    def ready(self):
        """Register event handlers and, when enabled, OpenTelemetry."""
        from core.infrastructure.event_handlers import register_event_handlers

        register_event_handlers()

        if settings.OBSERVABILITY_ENABLED:
            from core.instrumentation import setup_opentelemetry

            setup_opentelemetry()
