"""
Billing app configuration.

This app owns the subscription lifecycle:
- Hosted checkout and customer portal through the billing provider
- Signed webhook ingestion with an idempotency ledger
- Subscription state machine (django-fsm)
"""

from django.apps import AppConfig


class BillingConfig(AppConfig):
    """Configuration for the billing application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "billing"
    verbose_name = "Billing"

    def ready(self):
        # Registers the event handlers in WEBHOOK_HANDLERS
        from billing.webhooks import handlers  # noqa: F401
