"""
Tests for the customer portal and subscription endpoints.

Tests cover:
- 401 for anonymous callers
- 404 when the user has no subscription or no customer on file
- Portal URL minted from the stored customer ID
- Provider errors keep their message, unexpected errors become generic
- Current subscription read endpoint
"""

from unittest.mock import MagicMock, patch

import pytest
from django.db import DatabaseError
from django.urls import reverse

from billing.adapters import CreemAdapter
from billing.exceptions import BillingProviderError, NoSubscriptionError
from billing.services import PortalGateway, SubscriptionStore
from core.exceptions import AuthenticationError


PORTAL_URL = "https://creem.io/portal/cust_123"


@pytest.fixture
def portal_url():
    return reverse("billing:portal")


class TestPortalView:
    """Tests for GET /api/v1/billing/portal/."""

    def test_requires_authentication(self, api_client, portal_url, db):
        response = api_client.get(portal_url)

        assert response.status_code == 401

    def test_no_subscription_returns_404(self, authenticated_client, portal_url):
        response = authenticated_client.get(portal_url)

        assert response.status_code == 404
        assert response.json()["error"] == "No active subscription found for this user."

    def test_row_without_customer_returns_404(self, authenticated_client, portal_url, none_subscription):
        response = authenticated_client.get(portal_url)

        assert response.status_code == 404

    def test_returns_portal_url(self, authenticated_client, portal_url, active_subscription):
        with patch.object(CreemAdapter, "create_customer_portal_url", return_value=PORTAL_URL) as mock:
            response = authenticated_client.get(portal_url)

        assert response.status_code == 200
        assert response.json() == {"portalUrl": PORTAL_URL}
        mock.assert_called_once_with("cust_123")

    def test_canceled_customer_can_open_portal(self, authenticated_client, portal_url, canceled_subscription):
        with patch.object(CreemAdapter, "create_customer_portal_url", return_value=PORTAL_URL):
            response = authenticated_client.get(portal_url)

        assert response.status_code == 200

    def test_provider_error_keeps_message(self, authenticated_client, portal_url, active_subscription):
        with patch.object(
            CreemAdapter,
            "create_customer_portal_url",
            side_effect=BillingProviderError("Creem API error (404): Customer not found"),
        ):
            response = authenticated_client.get(portal_url)

        assert response.status_code == 500
        assert response.json()["error"] == "Creem API error (404): Customer not found"

    def test_unexpected_error_is_generic(self, authenticated_client, portal_url, active_subscription):
        with patch.object(CreemAdapter, "create_customer_portal_url", side_effect=KeyError("boom")):
            response = authenticated_client.get(portal_url)

        assert response.status_code == 500
        assert response.json()["error"] == "Internal Server Error"

    def test_store_outage_returns_json_500(self, authenticated_client, portal_url, active_subscription):
        with patch.object(SubscriptionStore, "get", side_effect=DatabaseError("db down")):
            response = authenticated_client.get(portal_url)

        assert response.status_code == 500
        assert response["Content-Type"] == "application/json"
        assert response.json()["error"] == "Internal Server Error"


class TestPortalGateway:
    def test_anonymous_user_rejected(self):
        with pytest.raises(AuthenticationError):
            PortalGateway.get_portal_url(MagicMock(is_authenticated=False))

    def test_none_user_rejected(self):
        with pytest.raises(AuthenticationError):
            PortalGateway.get_portal_url(None)

    def test_no_row_raises(self, user):
        with pytest.raises(NoSubscriptionError):
            PortalGateway.get_portal_url(user)


class TestSubscriptionView:
    """Tests for GET /api/v1/billing/subscription/."""

    def test_returns_current_subscription(self, authenticated_client, active_subscription):
        response = authenticated_client.get(reverse("billing:subscription"))

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "active"
        assert body["customerId"] == "cust_123"
        assert body["tierId"] == "premium"
        assert body["isActive"] is True

    def test_no_subscription_returns_404(self, authenticated_client):
        response = authenticated_client.get(reverse("billing:subscription"))

        assert response.status_code == 404

    def test_requires_authentication(self, api_client, db):
        response = api_client.get(reverse("billing:subscription"))

        assert response.status_code == 401
