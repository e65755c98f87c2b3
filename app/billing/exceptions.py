"""
Billing-specific exceptions.

Every exception maps to an HTTP status through core.exceptions, so views
and the webhook endpoint translate them without a lookup table.

Exception Hierarchy:
    SignatureError (400) - Webhook authenticity could not be established
    ├── MissingSignatureError - Signature header absent or empty
    └── InvalidSignatureError - Cryptographic verification failed
    AlreadySubscribedError (409) - Live subscription blocks a new checkout
    DuplicateEventError (409) - Ledger insert lost a race; acknowledged as duplicate
    NoSubscriptionError (404) - No customer on file for the portal
    SubscriptionNotFoundError (500) - Event for a customer we don't know yet
    BillingProviderError (500) - Provider API call failed
    BillingConfigurationError (500) - Missing base URL, secret or tier
    LedgerUnavailableError (500) - Idempotency ledger storage failed
    CheckoutFailedError (500) - Generic checkout failure shown to users

Usage:
    from billing.exceptions import AlreadySubscribedError

    raise AlreadySubscribedError(management_url=portal_url)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    InternalError,
    NotFoundError,
)

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Webhook Authenticity
# =============================================================================


class SignatureError(BaseApplicationError):
    """
    Raised when a webhook payload cannot be proven to come from the provider.

    Treated as client-correctable (400): the sender must sign properly.
    Nothing is parsed or written before this check passes.
    """

    default_error_code: str = "INVALID_SIGNATURE"
    status_code: int = 400


class MissingSignatureError(SignatureError):
    """Raised when the signature header is absent or empty."""

    default_error_code: str = "MISSING_SIGNATURE"

    def __init__(self, message: str = "Missing webhook signature", **kwargs: Any):
        super().__init__(message, **kwargs)


class InvalidSignatureError(SignatureError):
    """Raised when HMAC verification of the raw payload fails."""

    default_error_code: str = "INVALID_SIGNATURE"

    def __init__(self, message: str = "Invalid webhook signature", **kwargs: Any):
        super().__init__(message, **kwargs)


# =============================================================================
# Checkout / Portal
# =============================================================================


class AlreadySubscribedError(ConflictError):
    """
    Raised when a subscription checkout is requested by a user who already
    has an active or trialing subscription.

    The response carries the customer portal URL so the client can redirect
    the user to manage the existing plan instead.
    """

    default_error_code: str = "ALREADY_SUBSCRIBED"

    def __init__(
        self,
        management_url: str,
        message: str = (
            "You already have an active subscription. "
            "Manage or cancel it from the billing portal."
        ),
        **kwargs: Any,
    ):
        self.management_url = management_url
        super().__init__(message, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["managementUrl"] = self.management_url
        return result


class NoSubscriptionError(NotFoundError):
    """Raised when the portal is requested by a user with no customer on file."""

    default_error_code: str = "NO_SUBSCRIPTION"

    def __init__(
        self,
        message: str = "No active subscription found for this user.",
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)


class CheckoutFailedError(InternalError):
    """
    Generic checkout failure returned to end users.

    Wraps configuration errors, provider failures and anything unexpected;
    the cause goes to the logs only.
    """

    default_error_code: str = "CHECKOUT_FAILED"

    def __init__(
        self,
        message: str = "Failed to create checkout session. Please try again later.",
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)


# =============================================================================
# Webhook Processing
# =============================================================================


class DuplicateEventError(ConflictError):
    """
    Raised when an event is recorded in the ledger by a concurrent delivery.

    Never reaches the provider as an error: the webhook processor turns it
    into a successful duplicate acknowledgment.
    """

    default_error_code: str = "DUPLICATE_EVENT"


class SubscriptionNotFoundError(InternalError):
    """
    Raised when a status-changing event references an unknown customer.

    Typically an out-of-order delivery that arrived before the originating
    checkout.completed. Answered with 500 so the provider redelivers later,
    by which time the subscription row exists.
    """

    default_error_code: str = "SUBSCRIPTION_NOT_FOUND"


class LedgerUnavailableError(InternalError):
    """
    Raised when the idempotency ledger (or the store written alongside it)
    cannot be read or written.

    Must surface as 500 so the event is redelivered rather than lost.
    """

    default_error_code: str = "LEDGER_UNAVAILABLE"


# =============================================================================
# Provider / Configuration
# =============================================================================


class BillingProviderError(InternalError):
    """
    Raised when a billing provider API call fails or returns an unusable
    response.

    The message keeps the provider's own error text for operators.

    Attributes:
        provider_status: HTTP status returned by the provider, if any
    """

    default_error_code: str = "BILLING_PROVIDER_ERROR"

    def __init__(
        self,
        message: str,
        provider_status: int | None = None,
        **kwargs: Any,
    ):
        self.provider_status = provider_status
        super().__init__(message, **kwargs)


class BillingConfigurationError(InternalError):
    """Raised when required billing configuration is missing or invalid."""

    default_error_code: str = "BILLING_CONFIGURATION_ERROR"
