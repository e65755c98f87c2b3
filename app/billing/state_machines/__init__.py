"""
State machine enums for billing models.
"""

from billing.state_machines.states import (
    BLOCKING_STATUSES,
    BillingCycle,
    CheckoutOutcome,
    PaymentMode,
    PaymentStatus,
    SubscriptionStatus,
)

__all__ = [
    "BLOCKING_STATUSES",
    "BillingCycle",
    "CheckoutOutcome",
    "PaymentMode",
    "PaymentStatus",
    "SubscriptionStatus",
]
