"""
Public license API views.

These endpoints are called by self-hosted deployments to:
- Validate a license key at startup and periodically
- Look up the public status of a key
- Fetch the public half of the signing keypair
"""

from asgiref.sync import async_to_sync
from django.conf import settings
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.infrastructure.repositories.django_customer_directory import DjangoCustomerDirectory
from api.v1.licenses.serializers import (
    EntitlementSnapshotSerializer,
    ErrorResponseSerializer,
    LicenseStatusSerializer,
    PublicKeySerializer,
    ValidateLicenseRequestSerializer,
)
from audit.infrastructure.repositories.django_audit_sink import DjangoAuditSink
from core.domain.exceptions import LicenseError
from core.instrumentation import Status, StatusCode, get_tracer
from core.middleware.rate_limit import get_client_ip
from licenses.application.commands.validate_license import ValidateLicenseCommand
from licenses.application.handlers.get_license_status_handler import GetLicenseStatusHandler
from licenses.application.handlers.validate_license_handler import ValidateLicenseHandler
from licenses.application.queries.get_license_status import GetLicenseStatusQuery
from licenses.domain.key_codec import LicenseKeyCodec, key_hint
from licenses.infrastructure.repositories.django_license_repository import DjangoLicenseRepository
from licenses.infrastructure.signing import get_signing_context

# Initialize repositories (in production, use DI container)
_license_repo = DjangoLicenseRepository()
_customer_directory = DjangoCustomerDirectory()
_audit_sink = DjangoAuditSink()

tracer = get_tracer(__name__)


class ValidateLicenseView(APIView):
    """View for validating a license key."""

    @extend_schema(
        operation_id="validate_license",
        summary="Validate License",
        description=(
            "Validate a license key presented by a self-hosted deployment and "
            "return its entitlement snapshot. Any failure means the caller is "
            "not entitled; an undecodable key is reported as LICENSE_NOT_FOUND."
        ),
        tags=["Licenses"],
        request=ValidateLicenseRequestSerializer,
        responses={
            200: EntitlementSnapshotSerializer,
            400: ErrorResponseSerializer,
            429: ErrorResponseSerializer,
        },
    )
    def post(self, request: Request) -> Response:
        """Validate a license key."""
        return async_to_sync(self._handle_validate_license)(request)

    async def _handle_validate_license(self, request: Request) -> Response:
        """Async handler for validate license."""
        with tracer.start_as_current_span("validate_license") as span:
            span.set_attribute("operation", "validate_license")

            serializer = ValidateLicenseRequestSerializer(data=request.data)
            if not serializer.is_valid():
                span.set_attribute("error", "validation_failed")
                span.set_status(Status(StatusCode.ERROR, "Validation failed"))
                raise DRFValidationError(serializer.errors)

            data = serializer.validated_data
            span.set_attribute("license.key_hint", key_hint(data["licenseKey"]))
            span.set_attribute("instance_id", str(data["instanceId"]))

            handler = ValidateLicenseHandler(
                license_repository=_license_repo,
                customer_directory=_customer_directory,
                audit_sink=_audit_sink,
                codec=LicenseKeyCodec(get_signing_context()),
                verify_checksum=settings.LICENSE_VERIFY_KEY_CHECKSUM,
            )

            command = ValidateLicenseCommand(
                license_key=data["licenseKey"],
                instance_id=data["instanceId"],
                hostname=data["hostname"],
                ip_address=get_client_ip(request),
                user_agent=request.META.get("HTTP_USER_AGENT"),
            )

            try:
                snapshot = await handler.handle(command)
            except LicenseError as e:
                span.set_attribute("license.outcome", e.code)
                span.set_status(Status(StatusCode.ERROR, e.code))
                raise

            span.set_attribute("license.outcome", "valid")
            span.set_attribute("license.tier", snapshot.tier)
            span.set_status(Status(StatusCode.OK))
            return Response(EntitlementSnapshotSerializer(snapshot).data, status=status.HTTP_200_OK)


class LicenseStatusView(APIView):
    """View for the public status of a key."""

    @extend_schema(
        operation_id="get_license_status",
        summary="Get License Status",
        description=(
            "Return tier, status and expiry for a key without recording a "
            "validation. Unknown or malformed keys return 404."
        ),
        tags=["Licenses"],
        responses={
            200: LicenseStatusSerializer,
            404: ErrorResponseSerializer,
            429: ErrorResponseSerializer,
        },
    )
    def get(self, request: Request, license_key: str) -> Response:
        """Get license status."""
        return async_to_sync(self._handle_get_status)(request, license_key)

    async def _handle_get_status(self, request: Request, license_key: str) -> Response:
        """Async handler for license status."""
        with tracer.start_as_current_span("get_license_status") as span:
            span.set_attribute("operation", "get_license_status")
            span.set_attribute("license.key_hint", key_hint(license_key))

            handler = GetLicenseStatusHandler(license_repository=_license_repo)
            result = await handler.handle(GetLicenseStatusQuery(license_key=license_key))

            span.set_attribute("license.status", result.status)
            span.set_status(Status(StatusCode.OK))
            return Response(LicenseStatusSerializer(result).data, status=status.HTTP_200_OK)


class PublicKeyView(APIView):
    """View for the signing public key."""

    @extend_schema(
        operation_id="get_public_key",
        summary="Get Signing Public Key",
        description="Return the Ed25519 public key that verifies license key signatures.",
        tags=["Licenses"],
        responses={200: PublicKeySerializer},
    )
    def get(self, request: Request) -> Response:
        """Get the public key."""
        with tracer.start_as_current_span("get_public_key") as span:
            span.set_attribute("operation", "get_public_key")
            body = {
                "publicKey": get_signing_context().public_key_pem(),
                "algorithm": "Ed25519",
            }
            span.set_status(Status(StatusCode.OK))
            return Response(body, status=status.HTTP_200_OK)
