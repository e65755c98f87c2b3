"""
Pytest fixtures for billing tests.

Every billing test runs against a configured Creem test environment
(webhook secret, API key, frontend base URL). Fixtures provide users and
subscriptions in the states the lifecycle cares about.

Usage:
    def test_portal(authenticated_client, active_subscription):
        response = authenticated_client.get(reverse("billing:portal"))
"""

import pytest
from rest_framework.test import APIClient

from billing.adapters import CreemAdapter
from billing.state_machines import SubscriptionStatus
from billing.tests.factories import SubscriptionFactory, UserFactory
from billing.tests.payloads import TEST_WEBHOOK_SECRET


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def billing_settings(settings):
    """Configure the Creem test environment for every billing test."""
    settings.CREEM_WEBHOOK_SECRET = TEST_WEBHOOK_SECRET
    settings.CREEM_API_KEY = "creem_test_key"
    settings.CREEM_ENVIRONMENT = "test_mode"
    settings.APP_BASE_URL = "https://app.example.com/"
    settings.BILLING_PROVIDER = "creem"
    return settings


@pytest.fixture
def creem_adapter():
    """A fresh adapter, independent of the process-wide instance."""
    return CreemAdapter()


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def user(db):
    """Create a test user."""
    return UserFactory()


@pytest.fixture
def authenticated_client(user):
    """API client authenticated as the test user."""
    client = APIClient()
    client.force_authenticate(user=user)
    return client


# =============================================================================
# Subscription State Fixtures
# =============================================================================


@pytest.fixture
def none_subscription(db, user):
    """Row created ahead of its checkout: status none, no customer."""
    return SubscriptionFactory(
        user=user,
        status=SubscriptionStatus.NONE,
        customer_id="",
        provider_subscription_id="",
    )


@pytest.fixture
def active_subscription(db, user):
    """Create an active subscription for the test user."""
    return SubscriptionFactory(user=user, customer_id="cust_123", provider_subscription_id="sub_123")


@pytest.fixture
def trialing_subscription(db, user):
    """Create a trialing subscription for the test user."""
    return SubscriptionFactory(
        user=user,
        customer_id="cust_123",
        provider_subscription_id="sub_123",
        status=SubscriptionStatus.TRIALING,
    )


@pytest.fixture
def past_due_subscription(db, user):
    """Create a past-due subscription for the test user."""
    return SubscriptionFactory(
        user=user,
        customer_id="cust_123",
        provider_subscription_id="sub_123",
        status=SubscriptionStatus.PAST_DUE,
    )


@pytest.fixture
def canceled_subscription(db, user):
    """Create a canceled subscription for the test user."""
    return SubscriptionFactory(
        user=user,
        customer_id="cust_123",
        provider_subscription_id="sub_123",
        status=SubscriptionStatus.CANCELED,
    )
