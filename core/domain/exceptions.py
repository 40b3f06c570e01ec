"""
Domain exceptions.

Domain exceptions represent business rule violations
and domain-specific error conditions. The API layer maps each
class to an HTTP status; the ``code`` is what callers see.
"""
from enum import Enum


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    def __init__(self, message: str, code: str = None):
        """
        Initialize domain exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code
        """
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class ValidationError(DomainException):
    """Raised when input is malformed or violates a business rule."""

    def __init__(self, message: str = "Validation failed", details: dict = None):
        super().__init__(message, code="VALIDATION_ERROR")
        self.details = details or {}


class UnauthorizedError(DomainException):
    """Raised when the caller is not authenticated."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, code="UNAUTHORIZED")


class NotFoundError(DomainException):
    """Raised when a requested resource does not exist."""

    def __init__(self, message: str = "Resource not found", code: str = "NOT_FOUND"):
        super().__init__(message, code=code)


class LicenseNotFoundError(NotFoundError):
    """Raised when a license lookup by id or key finds nothing."""

    def __init__(self, message: str = "License not found"):
        super().__init__(message, code="LICENSE_NOT_FOUND")


class CustomerNotFoundError(NotFoundError):
    """Raised when a customer is not found."""

    def __init__(self, message: str = "Customer not found"):
        super().__init__(message, code="CUSTOMER_NOT_FOUND")


class SubscriptionNotFoundError(NotFoundError):
    """Raised when a subscription is not found."""

    def __init__(self, message: str = "Subscription not found"):
        super().__init__(message, code="SUBSCRIPTION_NOT_FOUND")


class LicenseErrorReason(Enum):
    """Why a presented key does not grant entitlement."""

    NOT_FOUND = "LICENSE_NOT_FOUND"
    REVOKED = "LICENSE_REVOKED"
    SUSPENDED = "LICENSE_SUSPENDED"
    EXPIRED = "LICENSE_EXPIRED"


class LicenseError(DomainException):
    """
    Raised by validation when a key does not grant entitlement.

    The ``reason`` is one of the four license-specific outcomes and is
    also used as the error code.
    """

    default_messages = {
        LicenseErrorReason.NOT_FOUND: "License not found",
        LicenseErrorReason.REVOKED: "License has been revoked",
        LicenseErrorReason.SUSPENDED: "License is suspended",
        LicenseErrorReason.EXPIRED: "License has expired",
    }

    def __init__(self, reason: LicenseErrorReason, message: str = None):
        super().__init__(message or self.default_messages[reason], code=reason.value)
        self.reason = reason


class RateLimitError(DomainException):
    """Raised when a caller exceeds its request budget."""

    def __init__(self, message: str = "Rate limit exceeded. Please try again later."):
        super().__init__(message, code="RATE_LIMIT_EXCEEDED")


class InvalidLicenseStatusError(DomainException):
    """Raised when a license operation is invalid for the current status."""

    def __init__(self, message: str = "Invalid license status"):
        super().__init__(message, code="INVALID_LICENSE_STATUS")


class ConcurrentUpdateError(DomainException):
    """Raised when a compare-and-set keeps losing to concurrent writers."""

    def __init__(self, message: str = "Record was modified concurrently"):
        super().__init__(message, code="CONFLICT")


class DuplicateLicenseKeyError(DomainException):
    """Raised by persistence when a generated key hash already exists."""

    def __init__(self, message: str = "License key already exists"):
        super().__init__(message, code="DUPLICATE_LICENSE_KEY")


class SubscriptionAlreadyLicensedError(DomainException):
    """Raised by persistence when a subscription already owns a license."""

    def __init__(self, message: str = "Subscription already has a license"):
        super().__init__(message, code="SUBSCRIPTION_ALREADY_LICENSED")


class WebhookSignatureError(DomainException):
    """Raised when a billing webhook fails signature verification."""

    def __init__(self, message: str = "Invalid webhook signature"):
        super().__init__(message, code="INVALID_WEBHOOK_SIGNATURE")


class InvalidBillingEventError(DomainException):
    """Raised when a verified billing event lacks data needed to reconcile it."""

    def __init__(self, message: str = "Invalid billing event"):
        super().__init__(message, code="INVALID_BILLING_EVENT")
