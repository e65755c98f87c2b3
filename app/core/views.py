"""
Core views providing infrastructure endpoints.

This module contains views that are not part of the business domain but are
essential for application infrastructure, such as health checks.
"""

import logging

from django.core.cache import cache
from django.db import DatabaseError, connection
from django.http import JsonResponse

from billing.adapters import get_billing_adapter
from billing.exceptions import BillingConfigurationError


logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    Used by Docker health checks, Kubernetes probes and load balancers.

    Returns:
        JsonResponse with status and component health:
        - status: "healthy" or "unhealthy"
        - database: "connected" or "disconnected"
        - cache: "connected" or "disconnected" (not critical)
        - billing: "configured" or "misconfigured"

    HTTP Status Codes:
        200: All systems operational
        503: One or more systems unhealthy

    A missing provider secret does not take the instance out of rotation;
    it is reported so the misconfiguration is visible before webhooks fail.
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "cache": "unknown",
        "billing": "unknown",
    }
    is_healthy = True

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except DatabaseError:
        logger.warning("Health check: database unreachable", exc_info=True)
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    # Cache failure is not critical (graceful degradation)
    try:
        cache.set("health_check", "ok", timeout=1)
        health_status["cache"] = "connected" if cache.get("health_check") == "ok" else "disconnected"
    except Exception:
        logger.warning("Health check: cache unreachable", exc_info=True)
        health_status["cache"] = "disconnected"

    try:
        get_billing_adapter().check_configuration()
        health_status["billing"] = "configured"
    except BillingConfigurationError as e:
        logger.warning(f"Health check: {e.message}")
        health_status["billing"] = "misconfigured"

    status_code = 200 if is_healthy else 503

    return JsonResponse(health_status, status=status_code)
