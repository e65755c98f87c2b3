"""
Tests for the webhook idempotency ledger.

Tests cover:
- Logical event ID derivation
- has_processed / mark_processed round trip
- Unique constraint turning a second insert into DuplicateEventError
- Storage failures surfacing as LedgerUnavailableError
- Pruning by processed_at
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from django.db import OperationalError
from django.utils import timezone

from billing.adapters import VerifiedEvent
from billing.exceptions import DuplicateEventError, LedgerUnavailableError
from billing.ledger import IdempotencyLedger, generate_event_id
from billing.models import ProcessedWebhookEvent
from billing.tests.factories import ProcessedWebhookEventFactory


def make_event(object_id="sub_789", event_type="subscription.updated", delivery_id="evt_1"):
    return VerifiedEvent(
        provider="creem",
        delivery_id=delivery_id,
        event_type=event_type,
        object_id=object_id,
        created_at=timezone.now(),
    )


class TestGenerateEventId:
    def test_combines_object_and_type(self):
        assert generate_event_id("sub_789", "subscription.updated") == "sub_789_subscription.updated"

    def test_redeliveries_share_an_id(self):
        """Different delivery IDs for the same change map to one logical event."""
        first = make_event(delivery_id="evt_1")
        second = make_event(delivery_id="evt_2")

        assert first.event_id == second.event_id

    def test_different_changes_to_one_object_differ(self):
        updated = make_event(event_type="subscription.updated")
        canceled = make_event(event_type="subscription.canceled")

        assert updated.event_id != canceled.event_id


class TestIdempotencyLedger:
    """Tests for IdempotencyLedger."""

    def test_unseen_event_not_processed(self, db):
        assert IdempotencyLedger.has_processed("sub_1_subscription.updated") is False

    def test_mark_then_has_processed(self, db):
        event = make_event()

        record = IdempotencyLedger.mark_processed(event)

        assert record.event_id == "sub_789_subscription.updated"
        assert record.provider == "creem"
        assert record.event_created_at == event.created_at
        assert IdempotencyLedger.has_processed(event.event_id) is True

    def test_second_insert_raises_duplicate(self, db):
        """Should turn the unique violation into DuplicateEventError."""
        IdempotencyLedger.mark_processed(make_event(delivery_id="evt_1"))

        with pytest.raises(DuplicateEventError):
            IdempotencyLedger.mark_processed(make_event(delivery_id="evt_2"))

        assert ProcessedWebhookEvent.objects.count() == 1

    def test_lookup_failure_raises_unavailable(self, db):
        with patch.object(
            ProcessedWebhookEvent.objects,
            "filter",
            side_effect=OperationalError("connection refused"),
        ):
            with pytest.raises(LedgerUnavailableError):
                IdempotencyLedger.has_processed("sub_1_subscription.updated")

    def test_insert_failure_raises_unavailable(self, db):
        with patch.object(
            ProcessedWebhookEvent.objects,
            "create",
            side_effect=OperationalError("disk full"),
        ):
            with pytest.raises(LedgerUnavailableError):
                IdempotencyLedger.mark_processed(make_event())


class TestLedgerPrune:
    def test_prunes_only_old_entries(self, db):
        now = timezone.now()
        ProcessedWebhookEventFactory(processed_at=now - timedelta(days=120))
        ProcessedWebhookEventFactory(processed_at=now - timedelta(days=91))
        recent = ProcessedWebhookEventFactory(processed_at=now - timedelta(days=5))

        deleted = IdempotencyLedger.prune(now - timedelta(days=90))

        assert deleted == 2
        assert list(ProcessedWebhookEvent.objects.values_list("id", flat=True)) == [recent.id]
