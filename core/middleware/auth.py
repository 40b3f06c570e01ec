"""
Admin API key authentication middleware.

Guards the administrative API. Token issuance lives elsewhere; this
middleware only checks presented keys against the stored hashes.
"""

import logging
from typing import Optional

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.utils.deprecation import MiddlewareMixin

from accounts.infrastructure.models import AdminApiKey, hash_admin_key
from core.domain.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)

ADMIN_API_PREFIX = "/api/v1/admin/"


class AdminApiKeyAuthenticationMiddleware(MiddlewareMixin):
    """
    Middleware for admin API authentication.

    Accepts ``Authorization: Bearer <key>`` or ``X-Admin-Key: <key>``.
    On success the key record is stored on ``request.admin_key``.
    """

    def process_request(self, request: HttpRequest) -> Optional[HttpResponse]:
        if not request.path.startswith(ADMIN_API_PREFIX):
            return None

        raw_key = self._get_presented_key(request)
        if not raw_key:
            return self._unauthorized("Missing admin API key")

        api_key = AdminApiKey.objects.filter(
            key_hash=hash_admin_key(raw_key), is_active=True
        ).first()
        if api_key is None:
            logger.warning(
                "Rejected admin API key",
                extra={"key_prefix": raw_key[:8], "path": request.path},
            )
            return self._unauthorized("Invalid admin API key")

        api_key.mark_used()
        request.admin_key = api_key  # type: ignore
        return None

    @staticmethod
    def _get_presented_key(request: HttpRequest) -> Optional[str]:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            return auth_header[7:].strip() or None
        return request.headers.get("X-Admin-Key")

    @staticmethod
    def _unauthorized(message: str) -> JsonResponse:
        error = UnauthorizedError(message)
        return JsonResponse({"error": {"code": error.code, "message": error.message}}, status=401)
