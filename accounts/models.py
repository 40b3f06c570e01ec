"""
Model registration for Django's app loader.
"""
from accounts.infrastructure.models import AdminApiKey, Customer  # noqa: F401
