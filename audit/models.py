"""
Model registration for Django's app loader.
"""
from audit.infrastructure.models import AuditLogEntry  # noqa: F401
