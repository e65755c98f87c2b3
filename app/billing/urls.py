"""
URL configuration for the billing app.

Routes:
    - POST /webhooks/creem/ - Creem webhook endpoint
    - POST /checkout/ - Create checkout session
    - GET /portal/ - Customer portal URL
    - GET /subscription/ - Current subscription
    - GET /payment-status/ - Checkout outcome

All routes are prefixed with /api/v1/billing/ when included in the main URLconf.
"""

from django.urls import path

from billing.views import CheckoutView, PaymentStatusView, PortalView, SubscriptionView
from billing.webhooks.views import creem_webhook

app_name = "billing"

urlpatterns = [
    # Webhook endpoints
    path("webhooks/creem/", creem_webhook, name="creem_webhook"),
    # Checkout & portal
    path("checkout/", CheckoutView.as_view(), name="checkout"),
    path("portal/", PortalView.as_view(), name="portal"),
    path("subscription/", SubscriptionView.as_view(), name="subscription"),
    path("payment-status/", PaymentStatusView.as_view(), name="payment_status"),
]
