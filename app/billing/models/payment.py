"""
Payment model: record of charges reported by the billing provider.

Written by the webhook handlers for completed checkouts (both payment modes)
and for successful recurring charges. Upserted by the provider payment ID so
redelivered events never create a second row.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel, UUIDPrimaryKeyMixin

from billing.state_machines import PaymentMode, PaymentStatus


class Payment(UUIDPrimaryKeyMixin, BaseModel):
    """
    A single charge reported by the billing provider.

    Fields:
        payment_id: Provider order / transaction ID - unique
        user: Paying user
        customer_id: Provider customer ID
        provider_subscription_id: Provider subscription ID (recurring charges)
        tier_id: Internal tier ID (or raw provider product ID)
        amount: Amount in smallest currency unit
        currency: ISO 4217 currency code
        status: Payment outcome
        payment_type: 'subscription' or 'one_time'
    """

    payment_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Provider order or transaction ID",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="billing_payments",
        help_text="User who paid",
    )

    customer_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Billing provider customer ID",
    )

    provider_subscription_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Billing provider subscription ID, for recurring charges",
    )

    tier_id = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Internal pricing tier ID",
    )

    amount = models.PositiveBigIntegerField(
        default=0,
        help_text="Amount in smallest currency unit (e.g., cents)",
    )

    currency = models.CharField(
        max_length=3,
        blank=True,
        default="",
        help_text="ISO 4217 currency code",
    )

    status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.SUCCEEDED,
        help_text="Payment outcome",
    )

    payment_type = models.CharField(
        max_length=20,
        choices=PaymentMode.choices,
        help_text="Subscription charge or one-time purchase",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment"
        verbose_name_plural = "Payments"
        indexes = [
            models.Index(
                fields=["user", "created_at"],
                name="billing_pay_user_id_8d41b7_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Payment({self.payment_id}, {self.amount} {self.currency.upper()})"
