"""
Observability middleware.

Assigns each request a correlation id, logs request start and
completion as structured records, and records the HTTP metrics.
"""

import logging
import re
import time
import uuid
from typing import Callable

from django.http import HttpRequest, HttpResponse
from opentelemetry import trace

from core.metrics import http_request_duration_seconds, http_requests_total

logger = logging.getLogger(__name__)

_UUID_SEGMENT = re.compile(r"/[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}")
_LICENSE_KEY_SEGMENT = re.compile(r"/licenses/[^/]+/status")


def normalize_endpoint(path: str) -> str:
    """Collapse ids and license keys so metric labels stay bounded."""
    endpoint = _UUID_SEGMENT.sub("/{id}", path)
    return _LICENSE_KEY_SEGMENT.sub("/licenses/{key}/status", endpoint)


class ObservabilityMiddleware:
    """
    Middleware for request observability.

    This middleware:
    1. Generates correlation IDs for request tracing
    2. Logs request/response information
    3. Records request count and duration metrics
    4. Adds correlation ID to response headers
    """

    def __init__(self, get_response: Callable):
        """Initialize middleware."""
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        request.correlation_id = correlation_id  # type: ignore
        endpoint = normalize_endpoint(request.path)

        log_extra = {
            "correlation_id": correlation_id,
            "method": request.method,
            "path": endpoint,
            "remote_addr": request.META.get("REMOTE_ADDR"),
        }
        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            log_extra["trace_id"] = format(span_context.trace_id, "032x")

        logger.info("Request started", extra=log_extra)
        start_time = time.perf_counter()

        try:
            response = self.get_response(request)
        except Exception as e:
            duration = time.perf_counter() - start_time
            self._record(request.method, endpoint, 500, duration)
            logger.error(
                "Request failed",
                extra={
                    **log_extra,
                    "error_type": type(e).__name__,
                    "duration_ms": round(duration * 1000, 2),
                },
                exc_info=True,
            )
            raise

        duration = time.perf_counter() - start_time
        self._record(request.method, endpoint, response.status_code, duration)

        log_extra.update(
            {
                "status_code": response.status_code,
                "duration_ms": round(duration * 1000, 2),
            }
        )
        if response.status_code >= 500:
            logger.error("Request completed with server error", extra=log_extra)
        elif response.status_code >= 400:
            logger.warning("Request completed with client error", extra=log_extra)
        else:
            logger.info("Request completed successfully", extra=log_extra)

        response["X-Correlation-ID"] = correlation_id
        response["X-Request-Duration"] = f"{duration:.3f}"
        return response

    @staticmethod
    def _record(method: str, endpoint: str, status_code: int, duration: float) -> None:
        http_requests_total.labels(
            method=method, endpoint=endpoint, status_code=status_code
        ).inc()
        http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)
