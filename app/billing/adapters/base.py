"""
Billing provider adapter contract.

Every billing provider (hosted checkout, customer portal, signed webhooks)
is wrapped by a BillingAdapter. The rest of the billing app only sees the
provider-neutral types defined here, so the webhook handlers and the
checkout/portal services never parse provider payloads themselves.

Usage:
    from billing.adapters import get_billing_adapter

    adapter = get_billing_adapter()
    event = adapter.verify_webhook(request.body, signature)
    session = adapter.create_checkout_session(params)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from billing.ledger import generate_event_id


# =============================================================================
# Webhook Types
# =============================================================================


@dataclass(frozen=True)
class SubscriptionSnapshot:
    """
    Provider subscription state carried by a webhook event.

    Attributes:
        subscription_id: Provider subscription ID
        customer_id: Provider customer ID
        product_id: Provider product ID
        status: Provider status string ('active', 'trialing', ...) or None
        current_period_start/end: Billing period, if reported
        canceled_at: Cancellation time, if reported
        metadata: Metadata attached at checkout (userId, tierId, ...)
    """

    subscription_id: str
    customer_id: str
    product_id: str = ""
    status: str | None = None
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None
    canceled_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PaymentSnapshot:
    """
    A charge carried by a webhook event.

    Attributes:
        payment_id: Provider order / transaction ID
        customer_id: Provider customer ID
        subscription_id: Provider subscription ID, for recurring charges
        product_id: Provider product ID
        amount: Amount in smallest currency unit
        currency: ISO 4217 currency code
        billing_reason: Why the charge happened ('subscription_cycle' = renewal)
        period_start/end: Period paid for, if reported
        metadata: Metadata attached at checkout
    """

    payment_id: str
    customer_id: str
    subscription_id: str = ""
    product_id: str = ""
    amount: int = 0
    currency: str = ""
    billing_reason: str = ""
    period_start: datetime | None = None
    period_end: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CheckoutSnapshot:
    """
    A completed checkout carried by a webhook event.

    Attributes:
        checkout_id: Provider checkout ID
        customer_id: Provider customer ID
        product_id: Provider product ID of the purchase
        payment: The order paid at checkout, if present
        subscription: The subscription created by the checkout, if any
        metadata: Metadata attached when the session was created
    """

    checkout_id: str
    customer_id: str
    product_id: str = ""
    payment: PaymentSnapshot | None = None
    subscription: SubscriptionSnapshot | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class VerifiedEvent:
    """
    A webhook event whose signature has been verified.

    Attributes:
        provider: Adapter key that verified the event (e.g., 'creem')
        delivery_id: Provider delivery ID (differs between redeliveries)
        event_type: Provider event type (e.g., 'subscription.canceled')
        object_id: ID of the provider object the event is about
        object: Raw event object
        created_at: Event creation time reported by the provider
        checkout/subscription/payment: Parsed object, by shape
    """

    provider: str
    delivery_id: str
    event_type: str
    object_id: str
    object: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    checkout: CheckoutSnapshot | None = None
    subscription: SubscriptionSnapshot | None = None
    payment: PaymentSnapshot | None = None

    @property
    def event_id(self) -> str:
        """Logical event ID used by the idempotency ledger."""
        return generate_event_id(self.object_id, self.event_type)

    @property
    def metadata(self) -> dict[str, Any]:
        for parsed in (self.checkout, self.subscription, self.payment):
            if parsed is not None and parsed.metadata:
                return parsed.metadata
        return {}


# =============================================================================
# Checkout / Portal Types
# =============================================================================


@dataclass
class CheckoutSessionParams:
    """
    Parameters for creating a hosted checkout session.

    Attributes:
        product_id: Provider product ID to sell
        success_url/cancel_url/failure_url: Where the provider sends the user back
        customer_email: Prefills the checkout form
        metadata: Echoed back on checkout.completed (userId, tierId, ...)
    """

    product_id: str
    success_url: str
    cancel_url: str
    failure_url: str
    customer_email: str = ""
    metadata: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate parameters after initialization."""
        if not self.product_id:
            raise ValueError("product_id is required")
        if not self.success_url:
            raise ValueError("success_url is required")


@dataclass
class CheckoutSession:
    """
    Result of creating a hosted checkout session.

    Attributes:
        id: Provider checkout ID
        url: URL the user is redirected to
        raw_response: Full provider response (for debugging)
    """

    id: str
    url: str
    raw_response: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Adapter Contract
# =============================================================================


class BillingAdapter(ABC):
    """
    Abstract base for billing provider adapters.

    Adapters are created once per process (see get_billing_adapter) and
    read their credentials from settings on every call, so settings changes
    apply without rebuilding them.

    Subclasses must implement all abstract methods.
    """

    # Registry key, stored on ProcessedWebhookEvent.provider
    name: str = ""

    # Request header carrying the webhook signature
    signature_header: str = ""

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this adapter."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @abstractmethod
    def check_configuration(self) -> None:
        """
        Check that credentials needed by this adapter are configured.

        Raises:
            BillingConfigurationError: A required setting is missing
        """

    @abstractmethod
    def verify_webhook(self, payload: bytes, signature: str) -> VerifiedEvent:
        """
        Verify a webhook signature over the raw body and parse the event.

        Args:
            payload: Raw request body, exactly as received
            signature: Value of the signature header

        Raises:
            InvalidSignatureError: Verification failed
            BillingConfigurationError: Webhook secret not configured
            BillingProviderError: Signed payload is not a usable event
        """

    @abstractmethod
    def create_checkout_session(self, params: CheckoutSessionParams) -> CheckoutSession:
        """
        Create a hosted checkout session.

        Raises:
            BillingProviderError: Provider call failed
        """

    @abstractmethod
    def create_customer_portal_url(self, customer_id: str) -> str:
        """
        Mint a time-limited customer portal URL.

        Raises:
            BillingProviderError: Provider call failed
        """

    @abstractmethod
    def retrieve_checkout_status(self, checkout_id: str) -> str | None:
        """
        Fetch the provider status of a checkout ('completed', 'pending', ...).

        Raises:
            BillingProviderError: Provider call failed
        """
