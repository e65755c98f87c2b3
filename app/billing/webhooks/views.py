"""
Webhook endpoint views.

The view verifies and applies the event synchronously, so any failure is
answered with a 5xx and the provider's retry policy redelivers it later.

Usage:
    # In urls.py
    from billing.webhooks.views import creem_webhook

    urlpatterns = [
        path("webhooks/creem/", creem_webhook, name="creem_webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from core.exceptions import BaseApplicationError

from billing.adapters import get_billing_adapter
from billing.exceptions import SignatureError
from billing.webhooks.processor import WebhookProcessor


logger = logging.getLogger(__name__)


def _is_signature_failure(error: Exception) -> bool:
    """Signature problems answer 400, whatever exception type carried them."""
    if isinstance(error, SignatureError):
        return True
    message = error.message if isinstance(error, BaseApplicationError) else str(error)
    return "signature" in message.lower()


@csrf_exempt
@require_POST
def creem_webhook(request: HttpRequest) -> JsonResponse:
    """
    Receive Creem webhook events.

    The raw body is passed untouched to signature verification; empty and
    very large bodies are accepted and left to the verifier.

    Returns:
        JsonResponse with status:
        - 200: Event applied, ignored, or a duplicate
        - 400: Missing or invalid signature
        - 500: Any other failure (the provider retries)

    Example creem-signature header:
        5f0c2b...e9 (hex HMAC-SHA256 of the raw body)
    """
    try:
        adapter = get_billing_adapter("creem")
        signature = request.headers.get(adapter.signature_header, "")
        result = WebhookProcessor.process(request.body, signature, adapter=adapter)
    except Exception as e:
        message = e.message if isinstance(e, BaseApplicationError) else str(e) or "Webhook processing failed"
        if _is_signature_failure(e):
            logger.warning(f"Webhook rejected: {message}")
            return JsonResponse({"error": message}, status=400)

        logger.error(
            f"Webhook processing failed: {type(e).__name__}",
            extra={"error": message},
            exc_info=True,
        )
        return JsonResponse({"error": message}, status=500)

    return JsonResponse(result, status=200)
