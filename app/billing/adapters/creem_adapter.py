"""
Creem API adapter.

Encapsulates every Creem interaction: webhook signature verification,
hosted checkout creation, customer portal links and checkout lookups.

Features:
- One pooled httpx.Client per process, explicit timeout on every call
- Provider errors translated to BillingProviderError (provider text kept)
- Structured logging with timing metrics
- Creem payloads parsed into provider-neutral snapshots

Configuration (via settings):
- CREEM_API_KEY: API key, sent as the x-api-key header
- CREEM_WEBHOOK_SECRET: HMAC-SHA256 secret for the creem-signature header
- CREEM_ENVIRONMENT: 'live_mode' selects the production host, anything else test
- CREEM_API_TIMEOUT_SECONDS: API call timeout (default: 10)
"""

from __future__ import annotations

import hashlib
import hmac
import json
import threading
import time
from datetime import datetime, timezone as dt_timezone
from typing import Any
from urllib.parse import urlparse

import httpx
from django.conf import settings
from django.utils.dateparse import parse_datetime

from billing.adapters.base import (
    BillingAdapter,
    CheckoutSession,
    CheckoutSessionParams,
    CheckoutSnapshot,
    PaymentSnapshot,
    SubscriptionSnapshot,
    VerifiedEvent,
)
from billing.exceptions import (
    BillingConfigurationError,
    BillingProviderError,
    InvalidSignatureError,
)


LIVE_API_BASE_URL = "https://api.creem.io"
TEST_API_BASE_URL = "https://test-api.creem.io"


# =============================================================================
# Payload Helpers
# =============================================================================


def _object_id(value: Any) -> str:
    """Creem expands some references into objects: accept 'id' or {'id': ...}."""
    if isinstance(value, dict):
        return str(value.get("id") or "")
    return str(value or "")


def _parse_timestamp(value: Any) -> datetime | None:
    """
    Parse a Creem timestamp.

    Envelope times are epoch milliseconds, object dates are ISO 8601 strings.
    """
    if value in (None, ""):
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=dt_timezone.utc)
    parsed = parse_datetime(str(value))
    if parsed is None:
        raise ValueError(f"Unparseable timestamp: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt_timezone.utc)
    return parsed


def _parse_epoch_seconds(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    return datetime.fromtimestamp(int(value), tz=dt_timezone.utc)


def _require_customer(obj: dict[str, Any], kind: str) -> str:
    customer_id = _object_id(obj.get("customer"))
    if not customer_id:
        raise ValueError(f"Customer field is missing in the {kind} object")
    return customer_id


def _is_http_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class CreemAdapter(BillingAdapter):
    """
    Adapter for the Creem billing API.

    Usage:
        adapter = CreemAdapter()
        event = adapter.verify_webhook(body, request.headers["creem-signature"])
        url = adapter.create_customer_portal_url("cust_123")
    """

    name = "creem"
    signature_header = "creem-signature"

    def __init__(self) -> None:
        self._client: httpx.Client | None = None
        self._client_lock = threading.Lock()

    # =========================================================================
    # Configuration
    # =========================================================================

    @staticmethod
    def _api_base_url() -> str:
        if getattr(settings, "CREEM_ENVIRONMENT", "test_mode") == "live_mode":
            return LIVE_API_BASE_URL
        return TEST_API_BASE_URL

    def _get_client(self) -> httpx.Client:
        """Return the shared HTTP client, creating it on first use."""
        with self._client_lock:
            if self._client is None:
                self._client = httpx.Client(
                    timeout=getattr(settings, "CREEM_API_TIMEOUT_SECONDS", 10),
                )
            return self._client

    def check_configuration(self) -> None:
        missing = [
            name
            for name in ("CREEM_API_KEY", "CREEM_WEBHOOK_SECRET")
            if not getattr(settings, name, "")
        ]
        if missing:
            raise BillingConfigurationError(
                f"Creem is not configured: {', '.join(missing)} missing",
                details={"missing": missing},
            )

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    def verify_webhook(self, payload: bytes, signature: str) -> VerifiedEvent:
        """
        Verify the creem-signature header and parse the event.

        The signature is hex(HMAC-SHA256(CREEM_WEBHOOK_SECRET, raw body)),
        compared in constant time against the raw bytes as received.
        """
        logger = self.get_logger()
        secret = getattr(settings, "CREEM_WEBHOOK_SECRET", "")
        if not secret:
            logger.error("Creem webhook secret is not configured")
            raise BillingConfigurationError(
                "Server configuration error: webhook secret missing"
            )

        expected = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
        if not hmac.compare_digest(expected.encode(), signature.strip().encode()):
            logger.warning("Invalid Creem webhook signature received")
            raise InvalidSignatureError()

        try:
            envelope = json.loads(payload)
            return self._parse_event(envelope)
        except (ValueError, TypeError, AttributeError, KeyError) as e:
            logger.error(
                f"Malformed Creem webhook payload: {e}",
                extra={"payload_bytes": len(payload)},
            )
            raise BillingProviderError(f"Malformed webhook payload: {e}") from e

    def _parse_event(self, envelope: dict[str, Any]) -> VerifiedEvent:
        event_type = envelope["eventType"]
        obj = envelope.get("object") or {}
        object_id = _object_id(obj)
        if not event_type or not object_id:
            raise ValueError("eventType and object.id are required")

        checkout = subscription = payment = None
        if "order" in obj:
            checkout = self._parse_checkout(obj)
        elif "current_period_end_date" in obj:
            subscription = self._parse_subscription(obj)
        elif "amount" in obj or "amount_paid" in obj:
            payment = self._parse_payment(obj)

        return VerifiedEvent(
            provider=self.name,
            delivery_id=str(envelope.get("id") or ""),
            event_type=str(event_type),
            object_id=object_id,
            object=obj,
            created_at=_parse_timestamp(envelope.get("created_at")),
            checkout=checkout,
            subscription=subscription,
            payment=payment,
        )

    def _parse_subscription(self, obj: dict[str, Any]) -> SubscriptionSnapshot:
        return SubscriptionSnapshot(
            subscription_id=_object_id(obj),
            customer_id=_require_customer(obj, "subscription"),
            product_id=_object_id(obj.get("product")),
            status=obj.get("status"),
            current_period_start=_parse_timestamp(obj.get("current_period_start_date")),
            current_period_end=_parse_timestamp(obj.get("current_period_end_date")),
            canceled_at=_parse_timestamp(obj.get("canceled_at")),
            metadata=dict(obj.get("metadata") or {}),
        )

    def _parse_payment(self, obj: dict[str, Any]) -> PaymentSnapshot:
        line = ((obj.get("lines") or {}).get("data") or [{}])[0]
        period = line.get("period") or {}
        product_id = obj.get("product_id") or (line.get("price") or {}).get("product") or ""
        return PaymentSnapshot(
            payment_id=_object_id(obj),
            customer_id=_require_customer(obj, "payment"),
            subscription_id=_object_id(obj.get("subscription_id") or obj.get("subscription")),
            product_id=_object_id(product_id),
            amount=int(obj.get("amount") or obj.get("amount_paid") or 0),
            currency=obj.get("currency") or "usd",
            billing_reason=obj.get("billing_reason") or "",
            period_start=_parse_epoch_seconds(period.get("start")),
            period_end=_parse_epoch_seconds(period.get("end")),
            metadata=dict(obj.get("metadata") or {}),
        )

    def _parse_checkout(self, obj: dict[str, Any]) -> CheckoutSnapshot:
        customer_id = _require_customer(obj, "checkout")
        metadata = dict(obj.get("metadata") or {})
        order = obj.get("order") or {}

        subscription = None
        raw_subscription = obj.get("subscription")
        if isinstance(raw_subscription, dict):
            subscription = self._parse_subscription(
                {"customer": customer_id, **raw_subscription}
            )

        payment = None
        if order:
            payment = PaymentSnapshot(
                payment_id=str(order.get("transaction") or order.get("id") or ""),
                customer_id=customer_id,
                subscription_id=subscription.subscription_id if subscription else "",
                product_id=_object_id(order.get("product") or obj.get("product")),
                amount=int(order.get("amount_due") or order.get("amount") or 0),
                currency=order.get("currency") or "usd",
                metadata=metadata,
            )

        return CheckoutSnapshot(
            checkout_id=_object_id(obj),
            customer_id=customer_id,
            product_id=_object_id(obj.get("product")),
            payment=payment,
            subscription=subscription,
            metadata=metadata,
        )

    # =========================================================================
    # API Operations
    # =========================================================================

    def create_checkout_session(self, params: CheckoutSessionParams) -> CheckoutSession:
        """
        Create a Creem hosted checkout.

        Creem takes a single success_url; the cancel and failure URLs travel
        in the metadata for the status page.
        """
        body: dict[str, Any] = {
            "product_id": params.product_id,
            "success_url": params.success_url,
            "metadata": {
                **params.metadata,
                "cancelUrl": params.cancel_url,
                "failureUrl": params.failure_url,
            },
        }
        if params.customer_email:
            body["customer"] = {"email": params.customer_email}

        data = self._request(
            "POST",
            "/v1/checkouts",
            body=body,
            log_context={"operation": "create_checkout", "product_id": params.product_id},
        )

        checkout_url = data.get("checkout_url")
        if not _is_http_url(checkout_url):
            raise BillingProviderError(
                "Failed to parse checkout response from Creem",
                details={"fields": sorted(data)},
            )
        return CheckoutSession(id=str(data.get("id") or ""), url=checkout_url, raw_response=data)

    def create_customer_portal_url(self, customer_id: str) -> str:
        data = self._request(
            "POST",
            "/v1/customers/billing",
            body={"customer_id": customer_id},
            log_context={"operation": "create_portal_link", "customer_id": customer_id},
        )

        portal_url = data.get("customer_portal_link")
        if not _is_http_url(portal_url):
            raise BillingProviderError(
                "Failed to parse customer portal response from Creem",
                details={"fields": sorted(data)},
            )
        return portal_url

    def retrieve_checkout_status(self, checkout_id: str) -> str | None:
        data = self._request(
            "GET",
            "/v1/checkouts",
            params={"checkout_id": checkout_id},
            log_context={"operation": "retrieve_checkout", "checkout_id": checkout_id},
        )
        return data.get("status")

    # =========================================================================
    # HTTP
    # =========================================================================

    def _request(
        self,
        method: str,
        path: str,
        log_context: dict[str, Any],
        body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Call the Creem API and return the decoded JSON object."""
        logger = self.get_logger()
        api_key = getattr(settings, "CREEM_API_KEY", "")
        if not api_key:
            raise BillingConfigurationError("CREEM_API_KEY is not configured")

        start_time = time.time()
        logger.info("Starting Creem operation", extra=log_context)

        try:
            response = self._get_client().request(
                method,
                f"{self._api_base_url()}{path}",
                json=body,
                params=params,
                headers={"x-api-key": api_key},
                timeout=getattr(settings, "CREEM_API_TIMEOUT_SECONDS", 10),
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            duration_ms = (time.time() - start_time) * 1000
            self._handle_http_error(e, log_context, duration_ms)
            raise  # Never reached, _handle_http_error always raises

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Creem operation completed",
            extra={**log_context, "duration_ms": duration_ms},
        )

        if not isinstance(data, dict):
            raise BillingProviderError("Unexpected response shape from Creem")
        return data

    def _handle_http_error(
        self,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate httpx exceptions to BillingProviderError.

        Raises:
            BillingProviderError: Always
        """
        logger = self.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, httpx.HTTPStatusError):
            response = error.response
            try:
                body = response.json()
                if isinstance(body, dict):
                    message = body.get("message") or body.get("error") or response.reason_phrase
                else:
                    message = body or response.reason_phrase
            except ValueError:
                message = response.text[:500] or response.reason_phrase
            if isinstance(message, list):
                message = "; ".join(str(part) for part in message)
            logger.error(
                "Creem API returned an error",
                extra={**log_context, "status_code": response.status_code},
            )
            raise BillingProviderError(
                f"Creem API error ({response.status_code}): {message}",
                provider_status=response.status_code,
            ) from error

        if isinstance(error, httpx.TimeoutException):
            logger.error("Creem API request timed out", extra=log_context)
            raise BillingProviderError("Creem API request timed out") from error

        if isinstance(error, httpx.HTTPError):
            logger.error(
                f"Creem API unreachable: {type(error).__name__}",
                extra=log_context,
            )
            raise BillingProviderError("Creem API unavailable") from error

        logger.error("Creem API returned invalid JSON", extra=log_context)
        raise BillingProviderError("Invalid JSON response from Creem") from error
