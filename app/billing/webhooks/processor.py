"""
Webhook processor: verify, deduplicate, apply, record.

Processing order for one delivery:
    1. Signature header present (checked before anything is parsed)
    2. Signature verified over the raw body by the billing adapter
    3. In one database transaction:
       ledger check -> handler dispatch -> subscription write -> ledger insert

The subscription write commits together with the ledger entry. A crash
before commit leaves neither, so the redelivery applies the event again.
A concurrent delivery that loses the race on the ledger's unique
constraint rolls back its own writes and is acknowledged as a duplicate.
"""

from __future__ import annotations

from django.db import DatabaseError

from core.services import BaseService

from billing.adapters import BillingAdapter, get_billing_adapter
from billing.exceptions import (
    DuplicateEventError,
    LedgerUnavailableError,
    MissingSignatureError,
)
from billing.ledger import IdempotencyLedger
from billing.webhooks.handlers import dispatch_webhook


class WebhookProcessor(BaseService):
    """
    Applies provider webhook deliveries exactly once per logical event.

    Usage:
        result = WebhookProcessor.process(request.body, signature)
        # {"received": True} or {"received": True, "duplicate": True}
    """

    @classmethod
    def process(
        cls,
        payload: bytes,
        signature: str | None,
        adapter: BillingAdapter | None = None,
    ) -> dict[str, bool]:
        """
        Process one webhook delivery.

        Raises:
            MissingSignatureError: Header absent or empty
            InvalidSignatureError: Verification failed
            SubscriptionNotFoundError: Event ahead of its checkout; retry later
            LedgerUnavailableError: Storage failure; retry later
            BillingConfigurationError / BillingProviderError: Server-side problems
        """
        logger = cls.get_logger()

        if not signature:
            logger.warning("Webhook received without signature header")
            raise MissingSignatureError()

        adapter = adapter or get_billing_adapter()
        event = adapter.verify_webhook(payload, signature)
        event_id = event.event_id

        log_context = {
            "event_id": event_id,
            "event_type": event.event_type,
            "delivery_id": event.delivery_id,
        }
        logger.info(f"Received webhook: {event.event_type}", extra=log_context)

        try:
            with cls.atomic():
                if IdempotencyLedger.has_processed(event_id):
                    logger.info("Webhook already processed, skipping", extra=log_context)
                    return {"received": True, "duplicate": True}

                result = dispatch_webhook(event)
                if not result.success:
                    logger.warning(
                        f"Webhook handler skipped event: {result.error}",
                        extra={**log_context, "error_code": result.error_code},
                    )

                IdempotencyLedger.mark_processed(event)
        except DuplicateEventError:
            logger.info("Webhook processed concurrently, rolled back", extra=log_context)
            return {"received": True, "duplicate": True}
        except DatabaseError as e:
            logger.error("Database error while applying webhook", extra=log_context, exc_info=True)
            raise LedgerUnavailableError(
                "Failed to persist webhook event",
                details={"event_id": event_id},
            ) from e

        logger.info("Webhook processed", extra=log_context)
        return {"received": True}
