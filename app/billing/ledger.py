"""
Idempotency ledger for provider webhook events.

Provider webhooks are delivered at least once. The ledger records every
logical event that has been applied, so a redelivery becomes a no-op.

A logical event is identified by "{objectId}_{eventType}", not by the
provider's delivery ID: redeliveries of one change collapse to one entry,
while different changes to the same object (an update, then a cancellation)
stay separate entries.

Atomicity comes from the unique constraint on ProcessedWebhookEvent.event_id.
When two deliveries of the same event race, the second insert fails and that
delivery is reported as a duplicate.

Usage:
    from billing.ledger import IdempotencyLedger

    with transaction.atomic():
        if IdempotencyLedger.has_processed(event.event_id):
            return
        apply(event)
        IdempotencyLedger.mark_processed(event)  # raises DuplicateEventError on a race
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from django.db import DatabaseError, IntegrityError, transaction

from core.services import BaseService

from billing.exceptions import DuplicateEventError, LedgerUnavailableError
from billing.models import ProcessedWebhookEvent

if TYPE_CHECKING:
    from billing.adapters.base import VerifiedEvent


def generate_event_id(object_id: str, event_type: str) -> str:
    """
    Derive the logical event ID.

    Example:
        generate_event_id("sub_789", "subscription.updated")
        # "sub_789_subscription.updated"
    """
    return f"{object_id}_{event_type}"


class IdempotencyLedger(BaseService):
    """
    Durable record of applied webhook events.

    Storage failures raise LedgerUnavailableError so the webhook answers 500
    and the provider redelivers later.
    """

    @classmethod
    def has_processed(cls, event_id: str) -> bool:
        """Check whether the logical event has already been applied."""
        try:
            return ProcessedWebhookEvent.objects.filter(event_id=event_id).exists()
        except DatabaseError as e:
            cls.get_logger().error(
                "Ledger lookup failed",
                extra={"event_id": event_id},
                exc_info=True,
            )
            raise LedgerUnavailableError(
                "Idempotency ledger unavailable",
                details={"event_id": event_id},
            ) from e

    @classmethod
    def mark_processed(cls, event: VerifiedEvent) -> ProcessedWebhookEvent:
        """
        Record the event as applied.

        Runs in a savepoint so a unique violation leaves the surrounding
        transaction usable until the caller decides to roll it back.

        Raises:
            DuplicateEventError: Another delivery recorded the event first
            LedgerUnavailableError: Storage failure
        """
        event_id = event.event_id
        try:
            with transaction.atomic():
                return ProcessedWebhookEvent.objects.create(
                    event_id=event_id,
                    event_type=event.event_type,
                    object_id=event.object_id,
                    provider=event.provider,
                    event_created_at=event.created_at,
                )
        except IntegrityError as e:
            cls.get_logger().info(
                "Event recorded concurrently by another delivery",
                extra={"event_id": event_id},
            )
            raise DuplicateEventError(
                f"Event {event_id} already processed",
                details={"event_id": event_id},
            ) from e
        except DatabaseError as e:
            cls.get_logger().error(
                "Ledger insert failed",
                extra={"event_id": event_id},
                exc_info=True,
            )
            raise LedgerUnavailableError(
                "Idempotency ledger unavailable",
                details={"event_id": event_id},
            ) from e

    @classmethod
    def prune(cls, older_than: datetime) -> int:
        """Delete entries processed before older_than. Returns rows deleted."""
        deleted, _ = ProcessedWebhookEvent.objects.filter(
            processed_at__lt=older_than
        ).delete()
        return deleted
