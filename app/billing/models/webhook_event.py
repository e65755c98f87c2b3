"""
ProcessedWebhookEvent model: the idempotency ledger.

One row per logical provider event, keyed by event_id = "{objectId}_{eventType}".
The unique constraint on event_id is what makes concurrent deliveries of the
same event safe: the second insert fails and that delivery becomes a no-op.

Usage:
    from billing.ledger import IdempotencyLedger

    if IdempotencyLedger.has_processed(event.event_id):
        return  # duplicate delivery

    # ... apply the transition ...
    IdempotencyLedger.mark_processed(event)
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.models import BaseModel, UUIDPrimaryKeyMixin


class ProcessedWebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Records a provider event that has been applied.

    Presence of a row is the sole definition of "already handled". Rows are
    inserted once, never updated, and pruned after the retention window.

    Fields:
        event_id: Logical event ID ("{objectId}_{eventType}") - unique
        event_type: Provider event type (e.g., 'subscription.canceled')
        object_id: ID of the provider object the event is about
        provider: Billing provider key (e.g., 'creem')
        event_created_at: Creation time reported by the provider
        processed_at: When the event was applied
    """

    # ==========================================================================
    # Event Identification
    # ==========================================================================

    event_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Logical event ID ({objectId}_{eventType}) - unique for idempotency",
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Provider event type (e.g., 'checkout.completed')",
    )

    object_id = models.CharField(
        max_length=255,
        db_index=True,
        help_text="Provider object ID the event refers to",
    )

    provider = models.CharField(
        max_length=50,
        default="creem",
        help_text="Billing provider that sent the event",
    )

    # ==========================================================================
    # Timing
    # ==========================================================================

    event_created_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Event creation time reported by the provider",
    )

    processed_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text="When the event was applied",
    )

    class Meta:
        ordering = ["-processed_at"]
        verbose_name = "Processed Webhook Event"
        verbose_name_plural = "Processed Webhook Events"
        indexes = [
            models.Index(
                fields=["object_id", "event_type"],
                name="billing_pro_object__5c2e1a_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"ProcessedWebhookEvent({self.event_id})"
