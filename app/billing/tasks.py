"""
Celery tasks for billing maintenance.

This module provides periodic tasks for:
- Pruning the webhook idempotency ledger past its retention window

The schedule is registered in django-celery-beat by migration
0002_add_ledger_prune_schedule.

Usage:
    from billing.tasks import prune_processed_webhook_events

    prune_processed_webhook_events.delay()
    prune_processed_webhook_events.delay(days=30)
"""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.utils import timezone

from billing.ledger import IdempotencyLedger

logger = logging.getLogger(__name__)


@shared_task
def prune_processed_webhook_events(days: int | None = None) -> dict:
    """
    Periodic task to delete old idempotency ledger entries.

    Providers stop redelivering an event long before the retention window
    closes, so older entries can no longer suppress a duplicate.

    Args:
        days: Delete entries processed more than this many days ago.
            Defaults to settings.BILLING_WEBHOOK_RETENTION_DAYS.

    Returns:
        Dict with count of ledger entries deleted
    """
    if days is None:
        days = settings.BILLING_WEBHOOK_RETENTION_DAYS
    if days < 1:
        raise ValueError("Retention must be at least one day")

    cutoff = timezone.now() - timedelta(days=days)
    deleted_count = IdempotencyLedger.prune(cutoff)

    if deleted_count > 0:
        logger.info(
            f"Deleted {deleted_count} processed webhook events",
            extra={
                "deleted_count": deleted_count,
                "cutoff_date": cutoff.isoformat(),
            },
        )

    return {"deleted_count": deleted_count}
