"""
Billing provider adapters.

All billing provider calls go through an adapter so error handling,
timeouts and logging stay consistent, and the rest of the app only sees
provider-neutral types.

Usage:
    from billing.adapters import get_billing_adapter

    adapter = get_billing_adapter()
    portal_url = adapter.create_customer_portal_url(subscription.customer_id)
"""

from __future__ import annotations

import threading

from django.conf import settings

from billing.adapters.base import (
    BillingAdapter,
    CheckoutSession,
    CheckoutSessionParams,
    CheckoutSnapshot,
    PaymentSnapshot,
    SubscriptionSnapshot,
    VerifiedEvent,
)
from billing.adapters.creem_adapter import CreemAdapter
from billing.exceptions import BillingConfigurationError

# Maps BILLING_PROVIDER values to adapter classes
ADAPTERS: dict[str, type[BillingAdapter]] = {
    CreemAdapter.name: CreemAdapter,
}

_instances: dict[str, BillingAdapter] = {}
_instances_lock = threading.Lock()


def get_billing_adapter(name: str | None = None) -> BillingAdapter:
    """
    Return the adapter for the configured billing provider.

    One instance per provider is kept for the life of the process so its
    HTTP connection pool is reused across requests.

    Raises:
        BillingConfigurationError: Unknown provider name
    """
    name = name or getattr(settings, "BILLING_PROVIDER", "creem")
    adapter_class = ADAPTERS.get(name)
    if adapter_class is None:
        raise BillingConfigurationError(
            f"Unknown billing provider: {name}",
            details={"provider": name, "available": sorted(ADAPTERS)},
        )
    with _instances_lock:
        if name not in _instances:
            _instances[name] = adapter_class()
        return _instances[name]


__all__ = [
    "ADAPTERS",
    "BillingAdapter",
    "CheckoutSession",
    "CheckoutSessionParams",
    "CheckoutSnapshot",
    "CreemAdapter",
    "PaymentSnapshot",
    "SubscriptionSnapshot",
    "VerifiedEvent",
    "get_billing_adapter",
]
