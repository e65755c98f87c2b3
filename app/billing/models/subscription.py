"""
Subscription model: the single source of truth for a user's billing state.

One row per user, created by the first checkout-completed webhook and then
mutated only by the webhook handlers through django-fsm transitions. Rows
are never deleted; cancellation is a state.

Usage:
    from billing.models import Subscription
    from billing.state_machines import SubscriptionStatus

    subscription = Subscription.objects.create(user=user)
    subscription.start(SubscriptionStatus.ACTIVE)  # none -> active
    subscription.save()
"""

from __future__ import annotations

from datetime import datetime

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import RETURN_VALUE, FSMField, transition

from core.models import BaseModel, UUIDPrimaryKeyMixin

from billing.state_machines import (
    BLOCKING_STATUSES,
    BillingCycle,
    SubscriptionStatus,
)


class Subscription(UUIDPrimaryKeyMixin, BaseModel):
    """
    Tracks a user's subscription with the billing provider.

    State Flow:
        NONE/CANCELED/PAST_DUE -> ACTIVE/TRIALING (start)
        TRIALING/PAST_DUE -> ACTIVE (activate)
        ACTIVE/TRIALING -> PAST_DUE (mark_past_due)
        ACTIVE/TRIALING/PAST_DUE -> CANCELED (cancel)

    Fields:
        user: Owner of the subscription (at most one row per user)
        customer_id: Provider customer ID, stable for the customer relationship
        provider_subscription_id: Provider subscription ID
        status: Current FSM state
        tier_id: Internal tier ID (or raw provider product ID if unknown)
        billing_cycle: 'monthly' or 'yearly'
        current_period_start/end: Current billing period
        canceled_at: When the subscription was canceled
        last_event_at: Creation time of the newest applied provider event
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="billing_subscription",
        help_text="User owning this subscription",
    )

    # ==========================================================================
    # Provider Integration
    # ==========================================================================

    customer_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        db_index=True,
        help_text="Billing provider customer ID (cust_xxx)",
    )

    provider_subscription_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        db_index=True,
        help_text="Billing provider subscription ID (sub_xxx)",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=SubscriptionStatus.NONE,
        choices=SubscriptionStatus.choices,
        db_index=True,
        help_text="Current state of the subscription (managed by FSM)",
    )

    # ==========================================================================
    # Plan
    # ==========================================================================

    tier_id = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Internal pricing tier ID",
    )

    billing_cycle = models.CharField(
        max_length=10,
        choices=BillingCycle.choices,
        blank=True,
        default="",
        help_text="Billing frequency: 'monthly' or 'yearly'",
    )

    # ==========================================================================
    # Billing Period
    # ==========================================================================

    current_period_start = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Start of current billing period",
    )

    current_period_end = models.DateTimeField(
        null=True,
        blank=True,
        help_text="End of current billing period",
    )

    canceled_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When subscription was canceled",
    )

    # ==========================================================================
    # Event Ordering
    # ==========================================================================

    last_event_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Creation time of the newest provider event applied to this row",
    )

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Subscription"
        verbose_name_plural = "Subscriptions"
        indexes = [
            models.Index(
                fields=["status", "current_period_end"],
                name="billing_sub_status_3f9a0c_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(status=SubscriptionStatus.NONE)
                    | ~models.Q(customer_id="")
                ),
                name="subscription_customer_id_required",
            ),
        ]

    def __str__(self) -> str:
        """Return string representation with ID, status, and tier."""
        return f"Subscription({self.id}, {self.status}, {self.tier_id or '-'})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=[
            SubscriptionStatus.NONE,
            SubscriptionStatus.CANCELED,
            SubscriptionStatus.PAST_DUE,
        ],
        target=RETURN_VALUE(SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING),
    )
    def start(self, status: str) -> str:
        """
        Start (or restart) the subscription after a completed checkout.

        Transition: NONE/CANCELED/PAST_DUE -> ACTIVE/TRIALING

        Args:
            status: Target state reported by the provider (active or trialing)
        """
        self.canceled_at = None
        return status

    @transition(
        field=status,
        source=[SubscriptionStatus.TRIALING, SubscriptionStatus.PAST_DUE],
        target=SubscriptionStatus.ACTIVE,
    )
    def activate(self):
        """
        Activate after a successful charge.

        Transition: TRIALING/PAST_DUE -> ACTIVE
        """

    @transition(
        field=status,
        source=[SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING],
        target=SubscriptionStatus.PAST_DUE,
    )
    def mark_past_due(self):
        """
        Mark subscription as past due after a failed renewal charge.

        Transition: ACTIVE/TRIALING -> PAST_DUE
        """

    @transition(
        field=status,
        source=[
            SubscriptionStatus.ACTIVE,
            SubscriptionStatus.TRIALING,
            SubscriptionStatus.PAST_DUE,
        ],
        target=SubscriptionStatus.CANCELED,
    )
    def cancel(self, canceled_at: datetime | None = None):
        """
        Cancel the subscription.

        Transition: ACTIVE/TRIALING/PAST_DUE -> CANCELED
        """
        self.canceled_at = canceled_at or timezone.now()

    # ==========================================================================
    # Helper Properties
    # ==========================================================================

    @property
    def blocks_new_checkout(self) -> bool:
        """Whether the user already holds a live subscription."""
        return self.status in BLOCKING_STATUSES

    @property
    def has_customer(self) -> bool:
        return bool(self.customer_id)

    def is_stale_event(self, event_created_at: datetime | None) -> bool:
        """
        Check if an event predates the newest event already applied.

        Events without a timestamp are never considered stale.
        """
        if event_created_at is None or self.last_event_at is None:
            return False
        return event_created_at < self.last_event_at

    def record_event_time(self, event_created_at: datetime | None) -> None:
        """Advance last_event_at; never moves backwards. Does not save."""
        if event_created_at is None:
            return
        if self.last_event_at is None or event_created_at > self.last_event_at:
            self.last_event_at = event_created_at
