"""
Tests for checkout creation.

Tests cover:
- Request validation (camelCase fields, billingCycle required for subscriptions)
- One-live-subscription rule with the portal URL as remediation
- One-time purchases bypassing the subscription lookup
- Callback URLs and metadata sent to the provider
- Provider and configuration failures returning a generic 500
"""

from unittest.mock import MagicMock, patch

import pytest
from django.db import DatabaseError
from django.urls import reverse

from billing.adapters import CheckoutSession, CreemAdapter
from billing.exceptions import BillingProviderError
from billing.services import CheckoutOrchestrator, CheckoutRequest, SubscriptionStore, build_callback_url
from billing.state_machines import SubscriptionStatus
from billing.tests.factories import SubscriptionFactory
from core.exceptions import AuthenticationError, ValidationError


CHECKOUT_URL = "https://checkout.creem.io/ch_1"
PORTAL_URL = "https://creem.io/portal/cust_123"


@pytest.fixture
def checkout_url():
    return reverse("billing:checkout")


@pytest.fixture
def mock_create_session():
    """Patch the provider call to return a checkout session."""
    with patch.object(
        CreemAdapter,
        "create_checkout_session",
        return_value=CheckoutSession(id="ch_1", url=CHECKOUT_URL),
    ) as mock:
        yield mock


@pytest.fixture
def mock_portal():
    with patch.object(CreemAdapter, "create_customer_portal_url", return_value=PORTAL_URL) as mock:
        yield mock


# =============================================================================
# View Tests
# =============================================================================


class TestCheckoutView:
    """Tests for POST /api/v1/billing/checkout/."""

    def test_requires_authentication(self, api_client, checkout_url, db):
        response = api_client.post(
            checkout_url,
            {"tierId": "premium", "paymentMode": "subscription", "billingCycle": "monthly"},
            format="json",
        )

        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"

    def test_subscription_checkout_returns_url(self, authenticated_client, checkout_url, mock_create_session):
        response = authenticated_client.post(
            checkout_url,
            {"tierId": "premium", "paymentMode": "subscription", "billingCycle": "yearly"},
            format="json",
        )

        assert response.status_code == 200
        assert response.json() == {"checkoutUrl": CHECKOUT_URL}
        params = mock_create_session.call_args.args[0]
        assert params.product_id == "prod_premium_yearly_sub"

    def test_missing_billing_cycle_returns_400(self, authenticated_client, checkout_url, mock_create_session):
        """billingCycle omitted for a subscription names the missing field."""
        response = authenticated_client.post(
            checkout_url,
            {"tierId": "tier-1", "paymentMode": "subscription"},
            format="json",
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Invalid request data"
        assert "billingCycle" in body["details"]
        mock_create_session.assert_not_called()

    def test_invalid_payment_mode_returns_400(self, authenticated_client, checkout_url):
        response = authenticated_client.post(
            checkout_url,
            {"tierId": "premium", "paymentMode": "lifetime"},
            format="json",
        )

        assert response.status_code == 400
        assert "paymentMode" in response.json()["details"]

    def test_missing_tier_returns_400(self, authenticated_client, checkout_url):
        response = authenticated_client.post(checkout_url, {"paymentMode": "one_time"}, format="json")

        assert response.status_code == 400
        assert "tierId" in response.json()["details"]

    @pytest.mark.parametrize("status", [SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING])
    def test_live_subscription_returns_409_with_management_url(
        self, authenticated_client, checkout_url, user, mock_create_session, mock_portal, status
    ):
        SubscriptionFactory(user=user, status=status, customer_id="cust_123")

        response = authenticated_client.post(
            checkout_url,
            {"tierId": "premium", "paymentMode": "subscription", "billingCycle": "monthly"},
            format="json",
        )

        assert response.status_code == 409
        body = response.json()
        assert body["managementUrl"] == PORTAL_URL
        assert body["error"].startswith("You already have an active subscription")
        mock_portal.assert_called_once_with("cust_123")
        mock_create_session.assert_not_called()

    @pytest.mark.parametrize("status", [SubscriptionStatus.CANCELED, SubscriptionStatus.PAST_DUE])
    def test_lapsed_subscription_can_check_out(
        self, authenticated_client, checkout_url, user, mock_create_session, status
    ):
        SubscriptionFactory(user=user, status=status)

        response = authenticated_client.post(
            checkout_url,
            {"tierId": "premium", "paymentMode": "subscription", "billingCycle": "monthly"},
            format="json",
        )

        assert response.status_code == 200
        assert response.json() == {"checkoutUrl": CHECKOUT_URL}

    def test_one_time_skips_subscription_lookup(
        self, authenticated_client, checkout_url, active_subscription, mock_create_session
    ):
        """An active subscriber can still buy credits."""
        with patch.object(SubscriptionStore, "get") as mock_get:
            response = authenticated_client.post(
                checkout_url,
                {"tierId": "credits_bulk", "paymentMode": "one_time"},
                format="json",
            )

        assert response.status_code == 200
        mock_get.assert_not_called()
        params = mock_create_session.call_args.args[0]
        assert params.product_id == "prod_bulk_100_credits"
        assert "billingCycle" not in params.metadata

    def test_provider_failure_returns_generic_500(self, authenticated_client, checkout_url):
        with patch.object(
            CreemAdapter,
            "create_checkout_session",
            side_effect=BillingProviderError("Creem API error (503): upstream down"),
        ):
            response = authenticated_client.post(
                checkout_url,
                {"tierId": "premium", "paymentMode": "subscription", "billingCycle": "monthly"},
                format="json",
            )

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to create checkout session. Please try again later."

    def test_missing_base_url_returns_500(self, authenticated_client, checkout_url, settings, mock_create_session):
        settings.APP_BASE_URL = ""

        response = authenticated_client.post(
            checkout_url,
            {"tierId": "premium", "paymentMode": "subscription", "billingCycle": "monthly"},
            format="json",
        )

        assert response.status_code == 500
        mock_create_session.assert_not_called()

    def test_unknown_tier_returns_500(self, authenticated_client, checkout_url, mock_create_session):
        response = authenticated_client.post(
            checkout_url,
            {"tierId": "tier-1", "paymentMode": "subscription", "billingCycle": "monthly"},
            format="json",
        )

        assert response.status_code == 500
        assert response.json()["error_code"] == "CHECKOUT_FAILED"

    def test_portal_failure_during_conflict_returns_500(self, authenticated_client, checkout_url, active_subscription):
        with patch.object(
            CreemAdapter,
            "create_customer_portal_url",
            side_effect=BillingProviderError("Creem API unavailable"),
        ):
            response = authenticated_client.post(
                checkout_url,
                {"tierId": "premium", "paymentMode": "subscription", "billingCycle": "monthly"},
                format="json",
            )

        assert response.status_code == 500
        assert response.json()["error_code"] == "CHECKOUT_FAILED"

    def test_store_outage_returns_generic_500(self, authenticated_client, checkout_url, mock_create_session):
        with patch.object(SubscriptionStore, "get", side_effect=DatabaseError("db down")):
            response = authenticated_client.post(
                checkout_url,
                {"tierId": "premium", "paymentMode": "subscription", "billingCycle": "monthly"},
                format="json",
            )

        assert response.status_code == 500
        assert response["Content-Type"] == "application/json"
        assert response.json()["error"] == "Failed to create checkout session. Please try again later."
        mock_create_session.assert_not_called()


# =============================================================================
# Service Tests
# =============================================================================


class TestCheckoutOrchestrator:
    """Tests for CheckoutOrchestrator.create_checkout."""

    def test_anonymous_user_rejected(self):
        anonymous = MagicMock(is_authenticated=False)

        with pytest.raises(AuthenticationError):
            CheckoutOrchestrator.create_checkout(anonymous, CheckoutRequest("premium", "one_time"))

    def test_request_validation(self, user):
        with pytest.raises(ValidationError) as exc_info:
            CheckoutOrchestrator.create_checkout(user, CheckoutRequest("", "subscription", "weekly"))

        assert set(exc_info.value.details) == {"tierId", "billingCycle"}

    def test_callback_urls_and_metadata(self, user, mock_create_session):
        CheckoutOrchestrator.create_checkout(
            user, CheckoutRequest("premium", "subscription", "monthly")
        )

        params = mock_create_session.call_args.args[0]
        assert params.success_url == "https://app.example.com/payment-status?status=success"
        assert params.cancel_url == "https://app.example.com/payment-status?status=cancelled"
        assert params.failure_url == "https://app.example.com/payment-status?status=failed"
        assert params.customer_email == user.email
        assert params.metadata == {
            "userId": str(user.pk),
            "userName": "Test User",
            "tierId": "premium",
            "paymentMode": "subscription",
            "billingCycle": "monthly",
        }


class TestBuildCallbackUrl:
    def test_strips_trailing_slash(self, settings):
        settings.APP_BASE_URL = "https://app.example.com///"

        assert build_callback_url("success") == "https://app.example.com/payment-status?status=success"

    def test_custom_status_path(self, settings):
        settings.BILLING_PAYMENT_STATUS_PATH = "/billing/result"

        assert build_callback_url("failed") == "https://app.example.com/billing/result?status=failed"
