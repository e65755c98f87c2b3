"""
DRF views for the billing app.

Endpoints:
    POST /api/v1/billing/checkout/ - Create a hosted checkout session
    GET /api/v1/billing/portal/ - Customer portal URL
    GET /api/v1/billing/subscription/ - Current subscription
    GET /api/v1/billing/payment-status/ - Checkout outcome for the status page

The webhook endpoint lives in billing.webhooks.views.

Security:
    - Checkout, portal and subscription require authentication
    - Payment status works anonymously (the user may have lost the session
      on the provider's redirect) but uses the subscription when logged in

Application errors raised by the services are rendered by
core.exception_handler with their own status codes.
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import ValidationError

from billing.exceptions import NoSubscriptionError
from billing.serializers import (
    CheckoutRequestSerializer,
    CheckoutResponseSerializer,
    PaymentStatusQuerySerializer,
    PaymentStatusResponseSerializer,
    PortalResponseSerializer,
    SubscriptionSerializer,
)
from billing.services import (
    CheckoutOrchestrator,
    PaymentStatusService,
    PortalGateway,
    SubscriptionStore,
)

logger = logging.getLogger(__name__)


class CheckoutView(APIView):
    """
    Create a hosted checkout session.

    POST /api/v1/billing/checkout/

    Response:
        200 OK: {"checkoutUrl": ...}
        400 Bad Request: Validation error with field details
        401 Unauthorized: Not authenticated
        409 Conflict: Active subscription exists, with managementUrl
        500 Internal Server Error: Generic checkout failure
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="create_checkout",
        summary="Create checkout session",
        request=CheckoutRequestSerializer,
        responses={
            200: CheckoutResponseSerializer,
            400: OpenApiResponse(description="Invalid request data"),
            401: OpenApiResponse(description="Authentication required"),
            409: OpenApiResponse(description="Already subscribed; body carries managementUrl"),
            500: OpenApiResponse(description="Failed to create checkout session"),
        },
        tags=["Billing"],
    )
    def post(self, request):
        serializer = CheckoutRequestSerializer(data=request.data)
        if not serializer.is_valid():
            raise ValidationError("Invalid request data", details=serializer.errors)

        checkout_url = CheckoutOrchestrator.create_checkout(
            request.user,
            serializer.to_checkout_request(),
        )
        return Response({"checkoutUrl": checkout_url}, status=status.HTTP_200_OK)


class PortalView(APIView):
    """
    Get a customer portal URL for managing the subscription.

    GET /api/v1/billing/portal/

    Response:
        200 OK: {"portalUrl": ...}
        401 Unauthorized: Not authenticated
        404 Not Found: No subscription on file
        500 Internal Server Error: Provider or unexpected failure
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_customer_portal",
        summary="Get customer portal URL",
        responses={
            200: PortalResponseSerializer,
            401: OpenApiResponse(description="Authentication required"),
            404: OpenApiResponse(description="No active subscription found for this user."),
        },
        tags=["Billing"],
    )
    def get(self, request):
        portal_url = PortalGateway.get_portal_url(request.user)
        return Response({"portalUrl": portal_url}, status=status.HTTP_200_OK)


class SubscriptionView(APIView):
    """
    Get current user's subscription.

    GET /api/v1/billing/subscription/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_subscription",
        summary="Get current subscription",
        responses={
            200: SubscriptionSerializer,
            404: OpenApiResponse(description="User never subscribed"),
        },
        tags=["Billing"],
    )
    def get(self, request):
        subscription = SubscriptionStore.get(request.user)
        if subscription is None:
            raise NoSubscriptionError()
        return Response(SubscriptionSerializer(subscription).data)


class PaymentStatusView(APIView):
    """
    Resolve the outcome of a checkout for the payment status page.

    GET /api/v1/billing/payment-status/?checkout_id=...
    """

    permission_classes = [AllowAny]

    @extend_schema(
        operation_id="get_payment_status",
        summary="Get checkout outcome",
        parameters=[
            OpenApiParameter("checkout_id", str, description="Provider checkout ID"),
            OpenApiParameter("sessionId", str, description="Alias of checkout_id"),
        ],
        responses={
            200: PaymentStatusResponseSerializer,
            400: OpenApiResponse(description="Session ID is required"),
        },
        tags=["Billing"],
    )
    def get(self, request):
        query = PaymentStatusQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return Response({"error": "Session ID is required"}, status=status.HTTP_400_BAD_REQUEST)

        checkout_id = query.validated_data["checkout_id"]
        result = PaymentStatusService.resolve(request.user, checkout_id)

        body = {"status": result.status, "message": result.message}
        if result.subscription is not None:
            body["subscription"] = SubscriptionSerializer(result.subscription).data
        else:
            body["sessionId"] = checkout_id
        return Response(body)
