"""
Rate limiting middleware.

Fixed-window counters per client IP and path prefix, kept in the
shared cache so every worker sees the same budget.
"""

import hashlib
import time
from typing import Callable, Optional, Tuple

from django.conf import settings
from django.core.cache import cache
from django.http import HttpRequest, HttpResponse, JsonResponse

from core.domain.exceptions import RateLimitError
from core.metrics import errors_total


def get_client_ip(request: HttpRequest) -> Optional[str]:
    """
    Best-effort client address.

    Uses the first hop of ``X-Forwarded-For`` when a proxy sets it.
    """
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR")


class RateLimitMiddleware:
    """
    Rate limiting middleware per client IP.

    Limits come from ``settings.RATE_LIMITS``, a mapping of path prefix
    to ``(requests, window_seconds)``. Paths outside every prefix are
    not limited.
    """

    def __init__(self, get_response: Callable):
        """Initialize middleware."""
        self.get_response = get_response

    def _match(self, path: str) -> Optional[Tuple[str, int, int]]:
        for prefix, (limit, window) in getattr(settings, "RATE_LIMITS", {}).items():
            if path.startswith(prefix):
                return prefix, limit, window
        return None

    def _check_rate_limit(
        self, client: str, prefix: str, limit: int, window: int
    ) -> Tuple[bool, int, int]:
        """
        Count this request against the caller's current window.

        Args:
            client: Client identifier (IP address)
            prefix: Path prefix the limit applies to
            limit: Requests allowed per window
            window: Window length in seconds

        Returns:
            Tuple of (is_allowed, remaining, reset_time)
        """
        window_start = int(time.time() / window)
        reset_time = (window_start + 1) * window
        digest = hashlib.sha256(f"{prefix}:{client}".encode()).hexdigest()[:16]
        full_key = f"rate_limit:{digest}:{window_start}"

        # add() is a no-op when the key exists, so concurrent first hits
        # cannot reset each other's count.
        cache.add(full_key, 0, timeout=window)
        try:
            count = cache.incr(full_key)
        except ValueError:
            cache.set(full_key, 1, timeout=window)
            count = 1

        if count > limit:
            return False, 0, reset_time
        return True, limit - count, reset_time

    def __call__(self, request: HttpRequest) -> HttpResponse:
        matched = self._match(request.path)
        if matched is None:
            return self.get_response(request)

        prefix, limit, window = matched
        client = get_client_ip(request) or "unknown"
        is_allowed, remaining, reset_time = self._check_rate_limit(client, prefix, limit, window)

        if not is_allowed:
            errors_total.labels(error_type="rate_limit_exceeded", endpoint=prefix).inc()
            error = RateLimitError()
            response = JsonResponse(
                {"error": {"code": error.code, "message": error.message}},
                status=429,
            )
            response["Retry-After"] = str(max(0, reset_time - int(time.time())))
        else:
            response = self.get_response(request)

        response["X-RateLimit-Limit"] = str(limit)
        response["X-RateLimit-Remaining"] = str(remaining)
        response["X-RateLimit-Reset"] = str(reset_time)
        return response
