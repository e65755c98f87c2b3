"""
Billing services.

- SubscriptionStore: Per-user subscription reads and event-driven writes
- CheckoutOrchestrator: Hosted checkout creation with the one-subscription rule
- PortalGateway: Customer portal links
- PaymentStatusService: Checkout outcome for the payment status page
"""

from billing.services.checkout import (
    CheckoutOrchestrator,
    CheckoutRequest,
    build_callback_url,
)
from billing.services.payment_status import PaymentStatusResult, PaymentStatusService
from billing.services.portal import PortalGateway
from billing.services.subscription_store import SubscriptionStore

__all__ = [
    "CheckoutOrchestrator",
    "CheckoutRequest",
    "PaymentStatusResult",
    "PaymentStatusService",
    "PortalGateway",
    "SubscriptionStore",
    "build_callback_url",
]
