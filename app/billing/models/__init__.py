"""
Billing domain models.

- Subscription: Per-user subscription state (django-fsm)
- ProcessedWebhookEvent: Idempotency ledger of applied provider events
- Payment: Charges reported by the provider
"""

from billing.models.payment import Payment
from billing.models.subscription import Subscription
from billing.models.webhook_event import ProcessedWebhookEvent

__all__ = [
    "Payment",
    "ProcessedWebhookEvent",
    "Subscription",
]
