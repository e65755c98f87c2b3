"""
Payment status resolution for the page users land on after checkout.

The page is reached through the checkout callback URLs; it polls this
service until the outcome is known. The local subscription is consulted
first (webhooks usually arrive before the user), then the provider's
checkout status.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError
from core.services import BaseService

from billing.adapters import get_billing_adapter
from billing.models import Subscription
from billing.services.subscription_store import SubscriptionStore
from billing.state_machines import CheckoutOutcome, SubscriptionStatus

if TYPE_CHECKING:
    from django.contrib.auth.models import AbstractBaseUser


# Provider checkout status -> outcome shown to the user
PROVIDER_CHECKOUT_OUTCOMES = {
    "completed": CheckoutOutcome.SUCCESS,
    "failed": CheckoutOutcome.FAILED,
    "canceled": CheckoutOutcome.CANCELLED,
}


@dataclass
class PaymentStatusResult:
    status: str
    message: str
    subscription: Subscription | None = None


class PaymentStatusService(BaseService):
    """Resolves the outcome of a checkout for the status page."""

    @classmethod
    def resolve(cls, user: AbstractBaseUser | None, checkout_id: str) -> PaymentStatusResult:
        """
        Resolve a checkout outcome.

        Never fails because of the provider: when the provider cannot be
        reached the outcome is 'pending' and the page keeps polling.
        """
        logger = cls.get_logger()

        subscription = None
        if user is not None and user.is_authenticated:
            subscription = SubscriptionStore.get(user)

        if subscription is not None:
            if subscription.status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING):
                return PaymentStatusResult(
                    CheckoutOutcome.SUCCESS,
                    "Payment successful and subscription is active",
                    subscription,
                )
            if subscription.status == SubscriptionStatus.PAST_DUE:
                return PaymentStatusResult(
                    CheckoutOutcome.FAILED,
                    "Payment failed or subscription is past due",
                    subscription,
                )
            if subscription.status == SubscriptionStatus.CANCELED:
                # A canceled plan plus a checkout ID means a new purchase is in flight
                return PaymentStatusResult(
                    CheckoutOutcome.PENDING,
                    "Payment is being processed",
                )

        try:
            provider_status = get_billing_adapter().retrieve_checkout_status(checkout_id)
        except BaseApplicationError as e:
            logger.warning(
                f"Could not check checkout status: {e.message}",
                extra={"checkout_id": checkout_id},
            )
            return PaymentStatusResult(
                CheckoutOutcome.PENDING,
                "Payment status is being verified. Please wait a moment.",
            )

        outcome = PROVIDER_CHECKOUT_OUTCOMES.get(provider_status or "", CheckoutOutcome.PENDING)
        messages = {
            CheckoutOutcome.SUCCESS: "Payment completed successfully",
            CheckoutOutcome.FAILED: "Payment failed",
            CheckoutOutcome.CANCELLED: "Payment was cancelled",
            CheckoutOutcome.PENDING: "Payment is being processed. This may take a few minutes.",
        }
        return PaymentStatusResult(outcome, messages[outcome])
