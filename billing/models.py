"""
Model registration for Django's app loader.
"""
from billing.infrastructure.models import BillingEventRecord, Subscription  # noqa: F401
