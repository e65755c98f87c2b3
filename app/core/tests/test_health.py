"""
Tests for the health check endpoint.

Tests cover:
- Healthy response when the database answers and billing is configured
- Cache and billing problems reported without failing the check
- 503 when the database is unreachable
"""

from unittest.mock import patch

from django.db import OperationalError
from django.urls import reverse


class TestHealthCheck:
    """Tests for GET /health/."""

    def test_healthy(self, client, db, settings):
        settings.CREEM_API_KEY = "creem_test_key"
        settings.CREEM_WEBHOOK_SECRET = "whsec_test"

        response = client.get(reverse("health_check"))

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "database": "connected",
            "cache": "connected",
            "billing": "configured",
        }

    def test_missing_billing_secret_reported(self, client, db, settings):
        settings.CREEM_API_KEY = "creem_test_key"
        settings.CREEM_WEBHOOK_SECRET = ""

        response = client.get(reverse("health_check"))

        assert response.status_code == 200
        assert response.json()["billing"] == "misconfigured"

    def test_database_down_returns_503(self, client, db):
        with patch("core.views.connection.cursor", side_effect=OperationalError("down")):
            response = client.get(reverse("health_check"))

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"

    def test_cache_down_is_degraded_not_failed(self, client, db):
        with patch("core.views.cache.set", side_effect=ConnectionError("redis down")):
            response = client.get(reverse("health_check"))

        assert response.status_code == 200
        assert response.json()["cache"] == "disconnected"

    def test_plain_http_request_is_served_not_redirected(self, client, db):
        """The test client speaks plain http; no HTTPS redirect may intercept it."""
        response = client.get(reverse("health_check"), secure=False)

        assert response.status_code != 301
        assert response.status_code == 200
