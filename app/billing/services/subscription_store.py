"""
Subscription store: reads and writes of the per-user Subscription row.

Checkout and portal requests only read through get(). Webhook handlers
resolve the row for an event (by provider customer ID, falling back to the
userId carried in checkout metadata) with a row lock, apply django-fsm
transitions, then persist the remaining fields with upsert().
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from django.contrib.auth import get_user_model

from core.services import BaseService

from billing.exceptions import SubscriptionNotFoundError
from billing.models import Subscription

if TYPE_CHECKING:
    from django.contrib.auth.models import AbstractBaseUser


class SubscriptionStore(BaseService):
    """
    Single source of truth for a user's subscription.

    Usage:
        subscription = SubscriptionStore.get(request.user)

        # In a webhook handler (inside transaction.atomic)
        subscription = SubscriptionStore.find_for_event(customer_id, user_id)
        subscription.cancel()
        SubscriptionStore.upsert(subscription, {"canceled_at": when})
    """

    # Fields webhook handlers may write directly; status only moves via FSM
    WRITABLE_FIELDS = (
        "customer_id",
        "provider_subscription_id",
        "tier_id",
        "billing_cycle",
        "current_period_start",
        "current_period_end",
        "canceled_at",
        "last_event_at",
    )

    @classmethod
    def get(cls, user: AbstractBaseUser) -> Subscription | None:
        """Return the user's subscription row, or None if they never subscribed."""
        return Subscription.objects.filter(user_id=user.pk).first()

    @classmethod
    def find_by_customer_id(cls, customer_id: str, lock: bool = False) -> Subscription | None:
        queryset = Subscription.objects.filter(customer_id=customer_id)
        if lock:
            queryset = queryset.select_for_update()
        return queryset.order_by("-updated_at").first()

    @classmethod
    def find_for_event(cls, customer_id: str, user_id: Any = None) -> Subscription:
        """
        Resolve (and lock) the subscription an event applies to.

        Resolution order:
            1. Row with the event's customer ID
            2. Row of the user named by the event metadata, created with
               status 'none' if the user has none yet

        Must be called inside a transaction.

        Raises:
            SubscriptionNotFoundError: Neither lookup matched. The event is
                likely ahead of its checkout.completed and must be retried.
        """
        logger = cls.get_logger()

        if customer_id:
            subscription = cls.find_by_customer_id(customer_id, lock=True)
            if subscription is not None:
                return subscription

        user = cls._get_user(user_id)
        if user is not None:
            subscription, created = Subscription.objects.select_for_update().get_or_create(
                user=user,
            )
            if created:
                logger.info(
                    "Created subscription row for user",
                    extra={"user_id": user.pk, "customer_id": customer_id},
                )
            return subscription

        logger.warning(
            "No subscription for customer",
            extra={"customer_id": customer_id, "user_id": user_id},
        )
        raise SubscriptionNotFoundError(
            f"User not found for customerId {customer_id}",
            details={"customer_id": customer_id},
        )

    @classmethod
    def upsert(cls, subscription: Subscription, patch: dict[str, Any]) -> Subscription:
        """
        Write fields on a resolved subscription and save it.

        Keys outside WRITABLE_FIELDS are rejected; None values are skipped
        unless the key is canceled_at (which a restart clears).
        """
        unknown = set(patch) - set(cls.WRITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Not writable on Subscription: {sorted(unknown)}")

        for field_name, value in patch.items():
            if value is None and field_name != "canceled_at":
                continue
            setattr(subscription, field_name, value)
        subscription.save()
        return subscription

    @staticmethod
    def _get_user(user_id: Any) -> AbstractBaseUser | None:
        if user_id in (None, ""):
            return None
        try:
            return get_user_model().objects.filter(pk=user_id).first()
        except (TypeError, ValueError):
            return None
