"""
DRF serializers for the billing app.

Request and response bodies use camelCase field names (tierId,
paymentMode, billingCycle, ...) to match the frontend client.

Usage:
    serializer = CheckoutRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    checkout_request = serializer.to_checkout_request()
"""

from __future__ import annotations

from rest_framework import serializers

from billing.models import Subscription
from billing.services import CheckoutRequest
from billing.state_machines import BillingCycle, CheckoutOutcome, PaymentMode


class CheckoutRequestSerializer(serializers.Serializer):
    """
    Checkout creation request.

    billingCycle is required when paymentMode is 'subscription' and ignored
    for one-time purchases.
    """

    tierId = serializers.CharField(max_length=100, source="tier_id")
    paymentMode = serializers.ChoiceField(choices=PaymentMode.choices, source="payment_mode")
    billingCycle = serializers.ChoiceField(
        choices=BillingCycle.choices,
        source="billing_cycle",
        required=False,
        allow_null=True,
    )

    def validate(self, attrs):
        if attrs["payment_mode"] == PaymentMode.SUBSCRIPTION and not attrs.get("billing_cycle"):
            raise serializers.ValidationError(
                {"billingCycle": ["This field is required when paymentMode is subscription."]}
            )
        return attrs

    def to_checkout_request(self) -> CheckoutRequest:
        data = self.validated_data
        return CheckoutRequest(
            tier_id=data["tier_id"],
            payment_mode=data["payment_mode"],
            billing_cycle=data.get("billing_cycle"),
        )


class CheckoutResponseSerializer(serializers.Serializer):
    checkoutUrl = serializers.URLField()


class PortalResponseSerializer(serializers.Serializer):
    portalUrl = serializers.URLField()


class SubscriptionSerializer(serializers.ModelSerializer):
    """Current subscription of the authenticated user."""

    customerId = serializers.CharField(source="customer_id", read_only=True)
    tierId = serializers.CharField(source="tier_id", read_only=True)
    billingCycle = serializers.CharField(source="billing_cycle", read_only=True)
    currentPeriodStart = serializers.DateTimeField(source="current_period_start", read_only=True)
    currentPeriodEnd = serializers.DateTimeField(source="current_period_end", read_only=True)
    canceledAt = serializers.DateTimeField(source="canceled_at", read_only=True)
    isActive = serializers.BooleanField(source="blocks_new_checkout", read_only=True)

    class Meta:
        model = Subscription
        fields = [
            "id",
            "status",
            "customerId",
            "tierId",
            "billingCycle",
            "currentPeriodStart",
            "currentPeriodEnd",
            "canceledAt",
            "isActive",
        ]
        read_only_fields = fields


class PaymentStatusQuerySerializer(serializers.Serializer):
    """Accepts the checkout ID under either name the callback pages use."""

    checkout_id = serializers.CharField(required=False, allow_blank=True)
    sessionId = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        checkout_id = attrs.get("sessionId") or attrs.get("checkout_id")
        if not checkout_id:
            raise serializers.ValidationError({"checkout_id": ["Session ID is required"]})
        return {"checkout_id": checkout_id}


class PaymentStatusResponseSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=CheckoutOutcome.choices)
    message = serializers.CharField()
    sessionId = serializers.CharField(required=False)
    subscription = SubscriptionSerializer(required=False)
