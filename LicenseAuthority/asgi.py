"""
ASGI config for LicenseAuthority.
"""
import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "LicenseAuthority.settings.prod")

application = get_asgi_application()
