"""
Webhook event handlers: the subscription state transition engine.

Each provider event type maps to one handler through a registry, so adding
an event type is a new registered function rather than another branch.

Handlers run inside the webhook processor's transaction, after the ledger
has confirmed the event is new. They resolve the Subscription row, move
its status only through the django-fsm transitions on the model, and write
the remaining fields through SubscriptionStore.upsert().

Rules shared by all handlers:
- A transition the state machine does not allow is logged and skipped;
  the event still counts as processed.
- An event older than the newest one already applied to the row does not
  change its status (a late subscription.updated cannot undo a cancel).
- Events referencing a customer we cannot resolve raise
  SubscriptionNotFoundError so the provider redelivers them later.

Usage:
    from billing.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("subscription.paused")
    def handle_subscription_paused(event: VerifiedEvent) -> ServiceResult:
        ...

    result = dispatch_webhook(event)
"""

from __future__ import annotations

import logging
from typing import Callable

from django_fsm import can_proceed

from core.services import ServiceResult

from billing.adapters import PaymentSnapshot, SubscriptionSnapshot, VerifiedEvent
from billing.models import Payment, Subscription
from billing.products import get_tier_by_product_id, tier_id_for_product
from billing.services import SubscriptionStore
from billing.state_machines import (
    BLOCKING_STATUSES,
    PaymentMode,
    PaymentStatus,
    SubscriptionStatus,
)


logger = logging.getLogger(__name__)

# billing_reason of a recurring renewal charge
RENEWAL_BILLING_REASON = "subscription_cycle"


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, Callable[[VerifiedEvent], ServiceResult]] = {}


def register_handler(*event_types: str) -> Callable:
    """
    Decorator to register a handler for one or more event types.

    Usage:
        @register_handler("subscription.canceled", "subscription.expired")
        def handle_subscription_ended(event: VerifiedEvent) -> ServiceResult:
            ...
    """

    def decorator(func: Callable[[VerifiedEvent], ServiceResult]) -> Callable:
        for event_type in event_types:
            WEBHOOK_HANDLERS[event_type] = func
            logger.debug(f"Registered webhook handler for {event_type}")
        return func

    return decorator


def dispatch_webhook(event: VerifiedEvent) -> ServiceResult:
    """
    Dispatch a verified event to its handler.

    Unknown event types succeed without effect so the provider stops
    redelivering events this service intentionally ignores.
    """
    handler = WEBHOOK_HANDLERS.get(event.event_type)

    if not handler:
        logger.info(
            f"Ignoring unhandled webhook event type: {event.event_type}",
            extra={"event_id": event.event_id},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {event.event_type} to handler",
        extra={"event_id": event.event_id},
    )

    return handler(event)


# =============================================================================
# Helpers
# =============================================================================


def _try_transition(subscription: Subscription, name: str, event: VerifiedEvent, *args) -> bool:
    """Run a django-fsm transition if the current state allows it."""
    method = getattr(subscription, name)
    if not can_proceed(method):
        logger.info(
            f"Skipping disallowed transition {name} from {subscription.status}",
            extra={
                "event_id": event.event_id,
                "subscription_id": str(subscription.id),
                "status": subscription.status,
            },
        )
        return False
    method(*args)
    return True


def _is_stale(subscription: Subscription, event: VerifiedEvent) -> bool:
    if subscription.is_stale_event(event.created_at):
        logger.info(
            "Ignoring status change from an event older than the last applied one",
            extra={
                "event_id": event.event_id,
                "subscription_id": str(subscription.id),
                "event_created_at": event.created_at,
                "last_event_at": subscription.last_event_at,
            },
        )
        return True
    return False


def _start_status(provider_status: str | None) -> str:
    if provider_status == SubscriptionStatus.TRIALING:
        return SubscriptionStatus.TRIALING
    return SubscriptionStatus.ACTIVE


def _plan_fields(product_id: str, metadata: dict) -> dict:
    """tier_id and billing_cycle for a subscription product."""
    tier = get_tier_by_product_id(product_id)
    billing_cycle = metadata.get("billingCycle") or (tier.billing_cycle_for(product_id) if tier else None)
    return {
        "tier_id": tier.id if tier else (product_id or None),
        "billing_cycle": billing_cycle,
    }


def _snapshot_fields(snapshot: SubscriptionSnapshot) -> dict:
    return {
        "customer_id": snapshot.customer_id,
        "provider_subscription_id": snapshot.subscription_id,
        "current_period_start": snapshot.current_period_start,
        "current_period_end": snapshot.current_period_end,
        **_plan_fields(snapshot.product_id, snapshot.metadata),
    }


def _save(subscription: Subscription, event: VerifiedEvent, patch: dict, stale: bool) -> None:
    if stale:
        # An older event may only fill in a missing customer ID
        if subscription.customer_id or not patch.get("customer_id"):
            return
        patch = {"customer_id": patch["customer_id"]}
    else:
        subscription.record_event_time(event.created_at)
    SubscriptionStore.upsert(subscription, patch)


def _record_payment(
    subscription: Subscription,
    payment: PaymentSnapshot,
    payment_type: str,
    tier_id: str | None = None,
) -> Payment | None:
    """Upsert a succeeded payment keyed by the provider payment ID."""
    if not payment.payment_id:
        logger.warning(
            "Payment without an ID, not recorded",
            extra={"customer_id": payment.customer_id},
        )
        return None

    record, created = Payment.objects.update_or_create(
        payment_id=payment.payment_id,
        defaults={
            "user_id": subscription.user_id,
            "customer_id": payment.customer_id,
            "provider_subscription_id": payment.subscription_id,
            "tier_id": tier_id or tier_id_for_product(payment.product_id),
            "amount": payment.amount,
            "currency": payment.currency,
            "status": PaymentStatus.SUCCEEDED,
            "payment_type": payment_type,
        },
    )
    logger.info(
        "Payment recorded" if created else "Payment updated",
        extra={"payment_id": payment.payment_id, "user_id": subscription.user_id},
    )
    return record


def _payment_type(metadata: dict) -> str:
    if metadata.get("paymentMode") == PaymentMode.ONE_TIME:
        return PaymentMode.ONE_TIME
    return PaymentMode.SUBSCRIPTION


# =============================================================================
# Checkout Handlers
# =============================================================================


@register_handler("checkout.completed")
def handle_checkout_completed(event: VerifiedEvent) -> ServiceResult:
    """
    Handle a completed checkout.

    Subscription mode starts (or restarts) the subscription and records the
    first payment. One-time mode records the payment and the customer ID
    only; the subscription status is left untouched.
    """
    checkout = event.checkout
    if checkout is None:
        return ServiceResult.failure(
            "checkout.completed without a checkout object",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    metadata = checkout.metadata
    payment_mode = metadata.get("paymentMode") or PaymentMode.SUBSCRIPTION

    logger.info(
        "Processing checkout.completed",
        extra={
            "event_id": event.event_id,
            "customer_id": checkout.customer_id,
            "user_id": metadata.get("userId"),
            "payment_mode": payment_mode,
        },
    )

    subscription = SubscriptionStore.find_for_event(checkout.customer_id, metadata.get("userId"))

    if payment_mode == PaymentMode.SUBSCRIPTION and checkout.subscription is not None:
        snapshot = checkout.subscription
        stale = _is_stale(subscription, event)
        patch = _snapshot_fields(snapshot)
        patch["customer_id"] = checkout.customer_id
        if metadata.get("tierId"):
            patch["tier_id"] = metadata["tierId"]

        if not stale:
            if subscription.status in BLOCKING_STATUSES:
                logger.info(
                    "Subscription already live, syncing fields only",
                    extra={"event_id": event.event_id, "status": subscription.status},
                )
            elif _try_transition(subscription, "start", event, _start_status(snapshot.status)):
                patch["canceled_at"] = None

        _save(subscription, event, patch, stale)
        if checkout.payment is not None:
            _record_payment(
                subscription,
                checkout.payment,
                PaymentMode.SUBSCRIPTION,
                tier_id=subscription.tier_id,
            )
        return ServiceResult.success(subscription)

    if payment_mode == PaymentMode.ONE_TIME:
        SubscriptionStore.upsert(subscription, {"customer_id": checkout.customer_id})
        if checkout.payment is not None:
            tier_id = metadata.get("tierId") or tier_id_for_product(checkout.product_id)
            _record_payment(subscription, checkout.payment, PaymentMode.ONE_TIME, tier_id=tier_id)
        return ServiceResult.success(subscription)

    logger.warning(
        "Unsupported checkout: subscription mode without subscription data",
        extra={"event_id": event.event_id, "payment_mode": payment_mode},
    )
    return ServiceResult.failure(
        f"Unsupported payment mode: {payment_mode} or missing subscription data",
        error_code="UNSUPPORTED_CHECKOUT",
    )


# =============================================================================
# Subscription Handlers
# =============================================================================


@register_handler("subscription.active", "subscription.created")
def handle_subscription_active(event: VerifiedEvent) -> ServiceResult:
    """
    Handle a subscription becoming active.

    Starts the subscription only from 'none' (a row created ahead of its
    checkout.completed); promotes trialing to active when the provider
    reports it active. Restarting a canceled subscription is left to
    checkout.completed.
    """
    snapshot = event.subscription
    if snapshot is None:
        return ServiceResult.failure("Event without a subscription object", "INVALID_WEBHOOK_PAYLOAD")

    subscription = SubscriptionStore.find_for_event(snapshot.customer_id, snapshot.metadata.get("userId"))
    stale = _is_stale(subscription, event)

    if not stale:
        if subscription.status == SubscriptionStatus.NONE:
            _try_transition(subscription, "start", event, _start_status(snapshot.status))
        elif subscription.status == SubscriptionStatus.TRIALING and snapshot.status == SubscriptionStatus.ACTIVE:
            _try_transition(subscription, "activate", event)
        elif subscription.status not in BLOCKING_STATUSES:
            logger.info(
                f"Not restarting {subscription.status} subscription from {event.event_type}",
                extra={"event_id": event.event_id},
            )

    _save(subscription, event, _snapshot_fields(snapshot), stale)
    return ServiceResult.success(subscription)


@register_handler("subscription.trialing", "subscription.updated")
def handle_subscription_updated(event: VerifiedEvent) -> ServiceResult:
    """
    Sync period and plan, and follow the provider status where the state
    machine allows it. Never moves a subscription out of 'none' or
    'canceled'; only checkout events start subscriptions.
    """
    snapshot = event.subscription
    if snapshot is None:
        return ServiceResult.failure("Event without a subscription object", "INVALID_WEBHOOK_PAYLOAD")

    subscription = SubscriptionStore.find_for_event(snapshot.customer_id, snapshot.metadata.get("userId"))
    stale = _is_stale(subscription, event)
    patch = _snapshot_fields(snapshot)

    target = snapshot.status
    if event.event_type == "subscription.trialing":
        target = SubscriptionStatus.TRIALING

    if not stale and subscription.status not in (SubscriptionStatus.NONE, SubscriptionStatus.CANCELED):
        if target == subscription.status:
            pass
        elif target == SubscriptionStatus.ACTIVE:
            _try_transition(subscription, "activate", event)
        elif target == SubscriptionStatus.PAST_DUE:
            _try_transition(subscription, "mark_past_due", event)
        elif target in (SubscriptionStatus.CANCELED, "expired"):
            _try_transition(subscription, "cancel", event, snapshot.canceled_at)
        else:
            logger.info(
                f"No transition for provider status {target!r}",
                extra={"event_id": event.event_id, "status": subscription.status},
            )

    _save(subscription, event, patch, stale)
    return ServiceResult.success(subscription)


@register_handler("subscription.paid", "subscription.renewed")
def handle_subscription_renewed(event: VerifiedEvent) -> ServiceResult:
    """Handle a successful renewal reported on the subscription object."""
    if event.subscription is not None:
        return _apply_renewal(event, event.subscription, payment=None)
    if event.payment is not None:
        return _apply_renewal(event, None, payment=event.payment)
    return ServiceResult.failure("Renewal without subscription or payment data", "INVALID_WEBHOOK_PAYLOAD")


@register_handler("subscription.past_due")
def handle_subscription_past_due(event: VerifiedEvent) -> ServiceResult:
    """Handle a failed renewal charge: ACTIVE/TRIALING -> PAST_DUE."""
    snapshot = event.subscription
    if snapshot is None:
        return ServiceResult.failure("Event without a subscription object", "INVALID_WEBHOOK_PAYLOAD")

    subscription = SubscriptionStore.find_for_event(snapshot.customer_id, snapshot.metadata.get("userId"))
    stale = _is_stale(subscription, event)
    if not stale:
        _try_transition(subscription, "mark_past_due", event)

    _save(subscription, event, _snapshot_fields(snapshot), stale)
    return ServiceResult.success(subscription)


@register_handler("subscription.canceled", "subscription.expired")
def handle_subscription_canceled(event: VerifiedEvent) -> ServiceResult:
    """Handle cancellation or expiry: ACTIVE/TRIALING/PAST_DUE -> CANCELED."""
    snapshot = event.subscription
    if snapshot is None:
        return ServiceResult.failure("Event without a subscription object", "INVALID_WEBHOOK_PAYLOAD")

    subscription = SubscriptionStore.find_for_event(snapshot.customer_id, snapshot.metadata.get("userId"))
    stale = _is_stale(subscription, event)
    if not stale:
        _try_transition(subscription, "cancel", event, snapshot.canceled_at)

    _save(subscription, event, _snapshot_fields(snapshot), stale)

    logger.info(
        "Subscription canceled" if subscription.status == SubscriptionStatus.CANCELED else "Cancel skipped",
        extra={"event_id": event.event_id, "subscription_id": str(subscription.id)},
    )
    return ServiceResult.success(subscription)


# =============================================================================
# Payment Handlers
# =============================================================================


@register_handler("payment.succeeded")
def handle_payment_succeeded(event: VerifiedEvent) -> ServiceResult:
    """
    Handle a successful charge.

    A charge with billing reason 'subscription_cycle' is a renewal and also
    reactivates the subscription; any other charge is only recorded.
    """
    payment = event.payment
    if payment is None:
        return ServiceResult.failure("payment.succeeded without a payment object", "INVALID_WEBHOOK_PAYLOAD")

    if payment.billing_reason == RENEWAL_BILLING_REASON:
        return _apply_renewal(event, None, payment=payment)

    subscription = SubscriptionStore.find_for_event(payment.customer_id, payment.metadata.get("userId"))
    _record_payment(subscription, payment, _payment_type(payment.metadata))
    return ServiceResult.success(subscription)


def _apply_renewal(
    event: VerifiedEvent,
    snapshot: SubscriptionSnapshot | None,
    payment: PaymentSnapshot | None,
) -> ServiceResult:
    """
    Refresh the billing period and activate TRIALING/PAST_DUE subscriptions.

    'none' and 'canceled' subscriptions keep their status: a renewal charge
    never restarts a subscription on its own.
    """
    source = snapshot or payment
    subscription = SubscriptionStore.find_for_event(source.customer_id, source.metadata.get("userId"))
    stale = _is_stale(subscription, event)

    if snapshot is not None:
        patch = _snapshot_fields(snapshot)
    else:
        patch = {
            "customer_id": payment.customer_id,
            "provider_subscription_id": payment.subscription_id or None,
            "current_period_start": payment.period_start,
            "current_period_end": payment.period_end,
            **(_plan_fields(payment.product_id, payment.metadata) if payment.product_id else {}),
        }

    if not stale and subscription.status != SubscriptionStatus.ACTIVE:
        _try_transition(subscription, "activate", event)

    _save(subscription, event, patch, stale)

    if payment is not None:
        _record_payment(subscription, payment, PaymentMode.SUBSCRIPTION)

    logger.info(
        "Subscription renewal applied",
        extra={
            "event_id": event.event_id,
            "subscription_id": str(subscription.id),
            "current_period_end": subscription.current_period_end,
        },
    )
    return ServiceResult.success(subscription)
