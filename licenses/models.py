"""
Model registration for Django's app loader.
"""
from licenses.infrastructure.models import License  # noqa: F401
