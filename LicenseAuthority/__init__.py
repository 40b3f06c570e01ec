"""
License Authority Django project.

Issues signed license keys, validates them for self-hosted deployments,
and keeps entitlements in step with the billing provider.
"""
# This will make sure the app is always imported when
# Django starts so that shared_task will use this app.
from .celery import app as celery_app

__all__ = ("celery_app",)
