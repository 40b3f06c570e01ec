"""
Billing provider webhook endpoint.

A plain Django view rather than an APIView: signature verification needs
the raw request body, untouched by DRF's parsers.

Only a bad signature is answered with an error. Every verified delivery
is acknowledged with 200, including ones whose processing failed; those
are kept in the billing event log for ``reprocess_billing_events``.
"""

import logging

from asgiref.sync import async_to_sync
from django.http import JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from billing.infrastructure.factory import build_webhook_handler
from core.domain.exceptions import WebhookSignatureError
from core.instrumentation import Status, StatusCode, get_tracer

logger = logging.getLogger(__name__)

tracer = get_tracer(__name__)


@method_decorator(csrf_exempt, name="dispatch")
class StripeWebhookView(View):
    """Receives Stripe event deliveries."""

    def post(self, request):
        with tracer.start_as_current_span("stripe_webhook") as span:
            span.set_attribute("operation", "stripe_webhook")
            signature = request.headers.get("Stripe-Signature", "")

            try:
                outcome = async_to_sync(build_webhook_handler().handle)(request.body, signature)
            except WebhookSignatureError as e:
                span.set_status(Status(StatusCode.ERROR, e.code))
                return JsonResponse({"error": {"code": e.code, "message": e.message}}, status=400)

            span.set_attribute("billing.event_id", outcome.event_id)
            span.set_attribute("billing.event_type", outcome.event_type)
            span.set_attribute("billing.outcome", outcome.status.value)
            span.set_attribute("billing.duplicate", outcome.duplicate)

            body = {"received": True}
            if outcome.failed:
                span.set_status(Status(StatusCode.ERROR, "Processing failed"))
                body["error"] = "Processing error logged"
            else:
                span.set_status(Status(StatusCode.OK))
            return JsonResponse(body)
