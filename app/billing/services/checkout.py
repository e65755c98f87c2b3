"""
Checkout orchestrator: starts hosted checkouts.

Enforces one live subscription per user: a subscription checkout for a
user whose subscription is active or trialing is refused with the portal
URL as remediation. One-time purchases skip the subscription lookup.

Usage:
    from billing.services import CheckoutOrchestrator, CheckoutRequest

    checkout_url = CheckoutOrchestrator.create_checkout(
        request.user,
        CheckoutRequest(tier_id="premium", payment_mode="subscription", billing_cycle="yearly"),
    )
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings

from core.exceptions import AuthenticationError, ValidationError
from core.services import BaseService

from billing.adapters import CheckoutSessionParams, get_billing_adapter
from billing.exceptions import (
    AlreadySubscribedError,
    BillingConfigurationError,
    CheckoutFailedError,
)
from billing.products import get_tier_by_id
from billing.services.portal import PortalGateway
from billing.services.subscription_store import SubscriptionStore
from billing.state_machines import BillingCycle, CheckoutOutcome, PaymentMode

if TYPE_CHECKING:
    from django.contrib.auth.models import AbstractBaseUser


@dataclass
class CheckoutRequest:
    """
    A request to start a checkout (not persisted).

    Attributes:
        tier_id: Internal tier ID
        payment_mode: 'subscription' or 'one_time'
        billing_cycle: 'monthly' or 'yearly'; required for subscriptions
    """

    tier_id: str
    payment_mode: str
    billing_cycle: str | None = None

    def validate(self) -> None:
        """
        Raises:
            ValidationError: With field-level details
        """
        errors: dict[str, list[str]] = {}
        if not self.tier_id:
            errors["tierId"] = ["This field is required."]
        if self.payment_mode not in PaymentMode.values:
            errors["paymentMode"] = [f"Must be one of: {', '.join(PaymentMode.values)}."]
        if self.payment_mode == PaymentMode.SUBSCRIPTION and self.billing_cycle not in BillingCycle.values:
            errors["billingCycle"] = [
                "This field is required for subscriptions and must be monthly or yearly."
            ]
        if errors:
            raise ValidationError("Invalid request data", details=errors)


def build_callback_url(outcome: str) -> str:
    """
    Build the URL the provider redirects back to for a checkout outcome.

    Raises:
        BillingConfigurationError: APP_BASE_URL is not set
    """
    base_url = getattr(settings, "APP_BASE_URL", "")
    if not base_url:
        raise BillingConfigurationError("APP_BASE_URL is not configured")
    path = getattr(settings, "BILLING_PAYMENT_STATUS_PATH", "/payment-status")
    return f"{base_url.rstrip('/')}{path}?status={outcome}"


class CheckoutOrchestrator(BaseService):
    """Front door for starting a purchase."""

    @classmethod
    def create_checkout(cls, user: AbstractBaseUser | None, request: CheckoutRequest) -> str:
        """
        Create a hosted checkout session and return its URL.

        Raises:
            AuthenticationError: No authenticated user
            ValidationError: Invalid request
            AlreadySubscribedError: Active/trialing subscription exists (409)
            CheckoutFailedError: Configuration, provider or unexpected failure
        """
        logger = cls.get_logger()

        if user is None or not user.is_authenticated:
            raise AuthenticationError("Unauthorized")

        request.validate()

        log_context = {
            "user_id": user.pk,
            "tier_id": request.tier_id,
            "payment_mode": request.payment_mode,
            "billing_cycle": request.billing_cycle,
        }

        if request.payment_mode == PaymentMode.SUBSCRIPTION:
            try:
                subscription = SubscriptionStore.get(user)
            except Exception as e:
                logger.error(
                    f"Subscription lookup failed: {e!r}",
                    extra=log_context,
                    exc_info=True,
                )
                raise CheckoutFailedError() from e

            if subscription is not None and subscription.blocks_new_checkout:
                logger.info(
                    "Checkout refused: subscription already live",
                    extra={**log_context, "status": subscription.status},
                )
                raise AlreadySubscribedError(
                    management_url=cls._management_url(user, log_context)
                )

        try:
            session = get_billing_adapter().create_checkout_session(
                cls._build_params(user, request)
            )
        except Exception as e:
            logger.error(
                f"Checkout session creation failed: {e!r}",
                extra=log_context,
                exc_info=True,
            )
            raise CheckoutFailedError() from e

        logger.info(
            "Checkout session created",
            extra={**log_context, "checkout_id": session.id},
        )
        return session.url

    @classmethod
    def _build_params(cls, user: AbstractBaseUser, request: CheckoutRequest) -> CheckoutSessionParams:
        tier = get_tier_by_id(request.tier_id)
        billing_cycle = request.billing_cycle if request.payment_mode == PaymentMode.SUBSCRIPTION else None

        metadata = {
            "userId": str(user.pk),
            "userName": _display_name(user),
            "tierId": tier.id,
            "paymentMode": request.payment_mode,
        }
        if billing_cycle:
            metadata["billingCycle"] = billing_cycle

        return CheckoutSessionParams(
            product_id=tier.product_id_for(request.payment_mode, billing_cycle),
            success_url=build_callback_url(CheckoutOutcome.SUCCESS),
            cancel_url=build_callback_url(CheckoutOutcome.CANCELLED),
            failure_url=build_callback_url(CheckoutOutcome.FAILED),
            customer_email=getattr(user, "email", "") or "",
            metadata=metadata,
        )

    @classmethod
    def _management_url(cls, user: AbstractBaseUser, log_context: dict) -> str:
        """Portal URL offered with a 409; failures to mint it become a 500."""
        try:
            return PortalGateway.get_portal_url(user)
        except Exception as e:
            cls.get_logger().error(
                f"Could not create management URL: {e!r}",
                extra=log_context,
                exc_info=True,
            )
            raise CheckoutFailedError() from e


def _display_name(user: AbstractBaseUser) -> str:
    full_name = user.get_full_name() if hasattr(user, "get_full_name") else ""
    return full_name or user.get_username()
