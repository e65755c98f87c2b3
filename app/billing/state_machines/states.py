"""
State enums for billing models.

These are Django TextChoices for database storage; SubscriptionStatus is
driven by django-fsm on the Subscription model.

Subscription States:
    none → active|trialing (checkout completed / subscription created)
    trialing → active (renewal or first successful charge)
    active|trialing → past_due (failed renewal charge)
    active|trialing|past_due → canceled
    canceled|past_due → active|trialing (fresh checkout, re-subscription)
"""

from django.db import models


class SubscriptionStatus(models.TextChoices):
    """
    States for the Subscription model lifecycle.

    ACTIVE and TRIALING block a new subscription checkout; NONE, PAST_DUE
    and CANCELED allow one.
    """

    NONE = "none", "None"
    TRIALING = "trialing", "Trialing"
    ACTIVE = "active", "Active"
    PAST_DUE = "past_due", "Past Due"
    CANCELED = "canceled", "Canceled"


# States in which the user already holds a subscription
BLOCKING_STATUSES = (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING)


class BillingCycle(models.TextChoices):
    """Recurring billing interval of a subscription."""

    MONTHLY = "monthly", "Monthly"
    YEARLY = "yearly", "Yearly"


class PaymentMode(models.TextChoices):
    """How a checkout is paid: recurring subscription or single charge."""

    SUBSCRIPTION = "subscription", "Subscription"
    ONE_TIME = "one_time", "One-time"


class PaymentStatus(models.TextChoices):
    """Outcome of a recorded payment."""

    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"


class CheckoutOutcome(models.TextChoices):
    """Result shown on the payment status page after a checkout."""

    SUCCESS = "success", "Success"
    FAILED = "failed", "Failed"
    CANCELLED = "cancelled", "Cancelled"
    PENDING = "pending", "Pending"


__all__ = [
    "BLOCKING_STATUSES",
    "BillingCycle",
    "CheckoutOutcome",
    "PaymentMode",
    "PaymentStatus",
    "SubscriptionStatus",
]
