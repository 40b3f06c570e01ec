"""
Administrative license API views.

These endpoints are used by operators to:
- Generate licenses outside the billing flow
- Inspect a license
- Revoke, suspend, reactivate and extend licenses

Every request is authenticated by ``AdminApiKeyAuthenticationMiddleware``,
which stores the presented key on ``request.admin_key``.
"""

import uuid

from asgiref.sync import async_to_sync
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.infrastructure.repositories.django_customer_directory import DjangoCustomerDirectory
from api.v1.admin.serializers import (
    ExtendLicenseRequestSerializer,
    GenerateLicenseRequestSerializer,
    GenerateLicenseResponseSerializer,
    LicenseDetailSerializer,
    RevokeLicenseRequestSerializer,
    SuspendLicenseRequestSerializer,
)
from api.v1.licenses.serializers import ErrorResponseSerializer
from audit.infrastructure.repositories.django_audit_sink import DjangoAuditSink
from core.domain.value_objects import Actor, LicenseTier
from core.instrumentation import Status, StatusCode, get_tracer
from core.middleware.rate_limit import get_client_ip
from licenses.application.commands.issue_license import IssueLicenseCommand
from licenses.application.commands.license_lifecycle import (
    ExtendLicenseCommand,
    ReactivateLicenseCommand,
    RevokeLicenseCommand,
    SuspendLicenseCommand,
)
from licenses.application.dto.license_dto import LicenseDetailDTO
from licenses.application.handlers.get_license_status_handler import GetLicenseHandler
from licenses.application.handlers.issue_license_handler import IssueLicenseHandler
from licenses.application.handlers.license_lifecycle_handlers import (
    ExtendLicenseHandler,
    ReactivateLicenseHandler,
    RevokeLicenseHandler,
    SuspendLicenseHandler,
)
from licenses.application.queries.get_license_status import GetLicenseQuery
from licenses.domain.key_codec import LicenseKeyCodec
from licenses.infrastructure.repositories.django_license_repository import DjangoLicenseRepository
from licenses.infrastructure.signing import get_signing_context

# Initialize repositories (in production, use DI container)
_license_repo = DjangoLicenseRepository()
_customer_directory = DjangoCustomerDirectory()
_audit_sink = DjangoAuditSink()

tracer = get_tracer(__name__)

ADMIN_ERROR_RESPONSES = {
    400: ErrorResponseSerializer,
    401: ErrorResponseSerializer,
    404: ErrorResponseSerializer,
    409: ErrorResponseSerializer,
}


def _admin_actor(request: Request) -> Actor:
    """Actor for audit entries written on behalf of the calling admin key."""
    admin_key = getattr(request, "admin_key", None)
    return Actor.admin(
        str(admin_key.id) if admin_key is not None else "unknown",
        ip_address=get_client_ip(request),
        user_agent=request.META.get("HTTP_USER_AGENT"),
    )


def _validated(serializer, span):
    if not serializer.is_valid():
        span.set_attribute("error", "validation_failed")
        span.set_status(Status(StatusCode.ERROR, "Validation failed"))
        raise DRFValidationError(serializer.errors)
    return serializer.validated_data


class GenerateLicenseView(APIView):
    """View for generating a license."""

    @extend_schema(
        operation_id="generate_license",
        summary="Generate License",
        description=(
            "Issue a new license key for a customer. The plaintext key is "
            "returned once in `licenseKey` and cannot be retrieved again."
        ),
        tags=["Admin API"],
        request=GenerateLicenseRequestSerializer,
        responses={201: GenerateLicenseResponseSerializer, **ADMIN_ERROR_RESPONSES},
    )
    def post(self, request: Request) -> Response:
        """Generate a license."""
        return async_to_sync(self._handle_generate_license)(request)

    async def _handle_generate_license(self, request: Request) -> Response:
        """Async handler for generate license."""
        with tracer.start_as_current_span("generate_license") as span:
            span.set_attribute("operation", "generate_license")

            data = _validated(GenerateLicenseRequestSerializer(data=request.data), span)
            span.set_attribute("customer.id", data["customerId"])
            span.set_attribute("license.tier", data["tier"])

            handler = IssueLicenseHandler(
                license_repository=_license_repo,
                customer_directory=_customer_directory,
                audit_sink=_audit_sink,
                codec=LicenseKeyCodec(get_signing_context()),
            )

            command = IssueLicenseCommand(
                customer_id=data["customerId"],
                tier=LicenseTier(data["tier"]),
                expires_at=data.get("expiresAt"),
                notes=data.get("notes") or None,
                actor=_admin_actor(request),
            )

            result = await handler.handle(command)

            span.set_attribute("license.id", str(result.license.id))
            span.set_status(Status(StatusCode.OK))
            body = {
                "license": LicenseDetailSerializer(LicenseDetailDTO.from_entity(result.license)).data,
                "licenseKey": result.license_key,
            }
            return Response(body, status=status.HTTP_201_CREATED)


class LicenseDetailView(APIView):
    """View for a single license."""

    @extend_schema(
        operation_id="get_license",
        summary="Get License",
        description="Return a license by id. The key itself is never included.",
        tags=["Admin API"],
        responses={200: LicenseDetailSerializer, **ADMIN_ERROR_RESPONSES},
    )
    def get(self, request: Request, license_id: uuid.UUID) -> Response:
        """Get a license."""
        return async_to_sync(self._handle_get_license)(request, license_id)

    async def _handle_get_license(self, request: Request, license_id: uuid.UUID) -> Response:
        """Async handler for get license."""
        with tracer.start_as_current_span("get_license") as span:
            span.set_attribute("operation", "get_license")
            span.set_attribute("license.id", str(license_id))

            handler = GetLicenseHandler(license_repository=_license_repo)
            result = await handler.handle(GetLicenseQuery(license_id=license_id))

            span.set_status(Status(StatusCode.OK))
            return Response(LicenseDetailSerializer(result).data, status=status.HTTP_200_OK)


class RevokeLicenseView(APIView):
    """View for revoking a license."""

    @extend_schema(
        operation_id="revoke_license",
        summary="Revoke License",
        description="Terminally revoke a license. Revocation cannot be undone.",
        tags=["Admin API"],
        request=RevokeLicenseRequestSerializer,
        responses={200: LicenseDetailSerializer, **ADMIN_ERROR_RESPONSES},
    )
    def post(self, request: Request, license_id: uuid.UUID) -> Response:
        """Revoke a license."""
        return async_to_sync(self._handle_revoke_license)(request, license_id)

    async def _handle_revoke_license(self, request: Request, license_id: uuid.UUID) -> Response:
        """Async handler for revoke license."""
        with tracer.start_as_current_span("revoke_license") as span:
            span.set_attribute("operation", "revoke_license")
            span.set_attribute("license.id", str(license_id))

            data = _validated(RevokeLicenseRequestSerializer(data=request.data), span)
            handler = RevokeLicenseHandler(license_repository=_license_repo, audit_sink=_audit_sink)
            result = await handler.handle(
                RevokeLicenseCommand(
                    license_id=license_id, reason=data["reason"], actor=_admin_actor(request)
                )
            )

            span.set_status(Status(StatusCode.OK))
            return Response(LicenseDetailSerializer(result).data, status=status.HTTP_200_OK)


class SuspendLicenseView(APIView):
    """View for suspending a license."""

    @extend_schema(
        operation_id="suspend_license",
        summary="Suspend License",
        description=(
            "Suspend an active license. Only an admin reactivation lifts an "
            "admin suspension; billing recovery does not."
        ),
        tags=["Admin API"],
        request=SuspendLicenseRequestSerializer,
        responses={200: LicenseDetailSerializer, **ADMIN_ERROR_RESPONSES},
    )
    def post(self, request: Request, license_id: uuid.UUID) -> Response:
        """Suspend a license."""
        return async_to_sync(self._handle_suspend_license)(request, license_id)

    async def _handle_suspend_license(self, request: Request, license_id: uuid.UUID) -> Response:
        """Async handler for suspend license."""
        with tracer.start_as_current_span("suspend_license") as span:
            span.set_attribute("operation", "suspend_license")
            span.set_attribute("license.id", str(license_id))

            data = _validated(SuspendLicenseRequestSerializer(data=request.data), span)
            handler = SuspendLicenseHandler(license_repository=_license_repo, audit_sink=_audit_sink)
            result = await handler.handle(
                SuspendLicenseCommand(
                    license_id=license_id, reason=data["reason"], actor=_admin_actor(request)
                )
            )

            span.set_status(Status(StatusCode.OK))
            return Response(LicenseDetailSerializer(result).data, status=status.HTTP_200_OK)


class ReactivateLicenseView(APIView):
    """View for reactivating a suspended license."""

    @extend_schema(
        operation_id="reactivate_license",
        summary="Reactivate License",
        description="Lift a suspension, whatever its source.",
        tags=["Admin API"],
        request=None,
        responses={200: LicenseDetailSerializer, **ADMIN_ERROR_RESPONSES},
    )
    def post(self, request: Request, license_id: uuid.UUID) -> Response:
        """Reactivate a license."""
        return async_to_sync(self._handle_reactivate_license)(request, license_id)

    async def _handle_reactivate_license(self, request: Request, license_id: uuid.UUID) -> Response:
        """Async handler for reactivate license."""
        with tracer.start_as_current_span("reactivate_license") as span:
            span.set_attribute("operation", "reactivate_license")
            span.set_attribute("license.id", str(license_id))

            handler = ReactivateLicenseHandler(license_repository=_license_repo, audit_sink=_audit_sink)
            result = await handler.handle(
                ReactivateLicenseCommand(license_id=license_id, actor=_admin_actor(request))
            )

            span.set_status(Status(StatusCode.OK))
            return Response(LicenseDetailSerializer(result).data, status=status.HTTP_200_OK)


class ExtendLicenseView(APIView):
    """View for moving a license's expiry."""

    @extend_schema(
        operation_id="extend_license",
        summary="Extend License",
        description="Set a new expiry on a license that is not revoked.",
        tags=["Admin API"],
        request=ExtendLicenseRequestSerializer,
        responses={200: LicenseDetailSerializer, **ADMIN_ERROR_RESPONSES},
    )
    def post(self, request: Request, license_id: uuid.UUID) -> Response:
        """Extend a license."""
        return async_to_sync(self._handle_extend_license)(request, license_id)

    async def _handle_extend_license(self, request: Request, license_id: uuid.UUID) -> Response:
        """Async handler for extend license."""
        with tracer.start_as_current_span("extend_license") as span:
            span.set_attribute("operation", "extend_license")
            span.set_attribute("license.id", str(license_id))

            data = _validated(ExtendLicenseRequestSerializer(data=request.data), span)
            span.set_attribute("expires_at", data["expiresAt"].isoformat())
            handler = ExtendLicenseHandler(license_repository=_license_repo, audit_sink=_audit_sink)
            result = await handler.handle(
                ExtendLicenseCommand(
                    license_id=license_id, expires_at=data["expiresAt"], actor=_admin_actor(request)
                )
            )

            span.set_status(Status(StatusCode.OK))
            return Response(LicenseDetailSerializer(result).data, status=status.HTTP_200_OK)
