"""
Tests for the Creem webhook endpoint.

Tests cover:
- First delivery applies the event, replay is acknowledged as duplicate
- Missing and invalid signatures answer 400 without touching the ledger
- Concurrent delivery losing the ledger race rolls back its writes
- Ledger and configuration failures answer 500 so the provider retries
"""

from unittest.mock import patch

import pytest
from django.urls import reverse

from billing.exceptions import LedgerUnavailableError
from billing.ledger import IdempotencyLedger
from billing.models import ProcessedWebhookEvent, Subscription
from billing.state_machines import SubscriptionStatus
from billing.tests.factories import ProcessedWebhookEventFactory
from billing.tests.payloads import (
    checkout_object,
    encode,
    envelope,
    sign,
    subscription_object,
)
from billing.webhooks.processor import WebhookProcessor


@pytest.fixture
def webhook_url():
    return reverse("billing:creem_webhook")


def post_webhook(client, url, body: bytes, signature: str | None):
    headers = {"HTTP_CREEM_SIGNATURE": signature} if signature is not None else {}
    return client.post(url, data=body, content_type="application/json", **headers)


class TestCreemWebhookView:
    """Tests for POST /api/v1/billing/webhooks/creem/."""

    def test_checkout_completed_then_replay(self, client, webhook_url, user):
        """A replayed delivery is acknowledged without a second ledger row."""
        body = encode(envelope("checkout.completed", checkout_object(user_id=user.pk)))

        first = post_webhook(client, webhook_url, body, sign(body))

        assert first.status_code == 200
        assert first.json() == {"received": True}
        subscription = Subscription.objects.get(user=user)
        assert subscription.status == SubscriptionStatus.ACTIVE
        updated_at = subscription.updated_at

        replay = post_webhook(client, webhook_url, body, sign(body))

        assert replay.status_code == 200
        assert replay.json() == {"received": True, "duplicate": True}
        assert ProcessedWebhookEvent.objects.count() == 1
        subscription.refresh_from_db()
        assert subscription.status == SubscriptionStatus.ACTIVE
        assert subscription.updated_at == updated_at

    def test_redelivery_with_new_delivery_id_is_duplicate(self, client, webhook_url, active_subscription):
        obj = subscription_object(status="canceled")
        first = encode(envelope("subscription.canceled", obj, delivery_id="evt_a"))
        second = encode(envelope("subscription.canceled", obj, delivery_id="evt_b"))

        post_webhook(client, webhook_url, first, sign(first))
        response = post_webhook(client, webhook_url, second, sign(second))

        assert response.json() == {"received": True, "duplicate": True}
        assert ProcessedWebhookEvent.objects.count() == 1

    def test_missing_signature_returns_400(self, client, webhook_url, active_subscription):
        body = encode(envelope("subscription.canceled", subscription_object()))

        response = post_webhook(client, webhook_url, body, None)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing webhook signature"}
        assert ProcessedWebhookEvent.objects.count() == 0

    def test_invalid_signature_returns_400(self, client, webhook_url, active_subscription):
        body = encode(envelope("subscription.canceled", subscription_object()))

        response = post_webhook(client, webhook_url, body, "deadbeef")

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid webhook signature"}
        active_subscription.refresh_from_db()
        assert active_subscription.status == SubscriptionStatus.ACTIVE

    def test_empty_body_with_bad_signature_returns_400(self, client, webhook_url):
        response = post_webhook(client, webhook_url, b"", "deadbeef")

        assert response.status_code == 400

    def test_large_body_is_verified_verbatim(self, client, webhook_url, active_subscription):
        body = encode(envelope("subscription.canceled", subscription_object(status="canceled")))
        body += b" " * 2_000_000

        response = post_webhook(client, webhook_url, body, sign(body))

        assert response.status_code == 200
        active_subscription.refresh_from_db()
        assert active_subscription.status == SubscriptionStatus.CANCELED

    def test_error_mentioning_signature_returns_400(self, client, webhook_url):
        with patch.object(
            WebhookProcessor,
            "process",
            side_effect=RuntimeError("Signature header could not be decoded"),
        ):
            response = post_webhook(client, webhook_url, b"{}", "abc")

        assert response.status_code == 400
        assert response.json() == {"error": "Signature header could not be decoded"}

    def test_unknown_event_type_returns_200(self, client, webhook_url, db):
        body = encode(envelope("dispute.opened", {"id": "dis_1"}))

        response = post_webhook(client, webhook_url, body, sign(body))

        assert response.status_code == 200
        assert response.json() == {"received": True}

    def test_ledger_unavailable_returns_500(self, client, webhook_url, active_subscription):
        body = encode(envelope("subscription.canceled", subscription_object()))

        with patch.object(
            IdempotencyLedger,
            "has_processed",
            side_effect=LedgerUnavailableError("Idempotency ledger unavailable"),
        ):
            response = post_webhook(client, webhook_url, body, sign(body))

        assert response.status_code == 500
        assert response.json() == {"error": "Idempotency ledger unavailable"}

    def test_out_of_order_event_returns_500(self, client, webhook_url, db):
        """An event ahead of its checkout is refused so the provider retries."""
        body = encode(envelope("subscription.canceled", subscription_object(customer_id="cust_later")))

        response = post_webhook(client, webhook_url, body, sign(body))

        assert response.status_code == 500
        assert "cust_later" in response.json()["error"]
        assert ProcessedWebhookEvent.objects.count() == 0

    def test_missing_secret_returns_500(self, client, webhook_url, settings):
        settings.CREEM_WEBHOOK_SECRET = ""
        body = encode(envelope("subscription.canceled", subscription_object()))

        response = post_webhook(client, webhook_url, body, sign(body))

        assert response.status_code == 500

    def test_concurrent_delivery_rolls_back(self, client, webhook_url, active_subscription):
        """
        Simulates two deliveries racing past the ledger check: the loser's
        insert hits the unique constraint and its subscription write is
        rolled back.
        """
        ProcessedWebhookEventFactory(
            object_id="sub_123",
            event_type="subscription.canceled",
        )
        body = encode(envelope("subscription.canceled", subscription_object(status="canceled")))

        with patch.object(IdempotencyLedger, "has_processed", return_value=False):
            response = post_webhook(client, webhook_url, body, sign(body))

        assert response.status_code == 200
        assert response.json() == {"received": True, "duplicate": True}
        active_subscription.refresh_from_db()
        assert active_subscription.status == SubscriptionStatus.ACTIVE

    def test_get_not_allowed(self, client, webhook_url):
        response = client.get(webhook_url)

        assert response.status_code == 405
