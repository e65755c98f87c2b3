"""
Factory Boy factories for billing test data.

Usage:
    from billing.tests.factories import SubscriptionFactory, UserFactory

    # A user with no subscription row
    user = UserFactory()

    # An active subscription with a provider customer
    subscription = SubscriptionFactory(status=SubscriptionStatus.ACTIVE)

    # A row created ahead of its checkout (no customer yet)
    subscription = SubscriptionFactory(status=SubscriptionStatus.NONE, customer_id="")
"""

import uuid
from datetime import timedelta

import factory
from django.utils import timezone

from billing.models import Payment, ProcessedWebhookEvent, Subscription
from billing.state_machines import (
    BillingCycle,
    PaymentMode,
    PaymentStatus,
    SubscriptionStatus,
)


class UserFactory(factory.django.DjangoModelFactory):
    """Factory for creating User instances for billing tests."""

    class Meta:
        model = "auth.User"
        django_get_or_create = ("username",)
        skip_postgeneration_save = True

    username = factory.Sequence(lambda n: f"user{n}")
    email = factory.LazyAttribute(lambda o: f"{o.username}@example.com")
    first_name = "Test"
    last_name = "User"
    password = factory.PostGenerationMethodCall("set_password", "testpass123")
    is_active = True


class SubscriptionFactory(factory.django.DjangoModelFactory):
    """
    Factory for creating Subscription instances.

    Defaults to an active monthly premium subscription. The status is set
    directly, bypassing the FSM, to put rows in any starting state.
    """

    class Meta:
        model = Subscription

    user = factory.SubFactory(UserFactory)
    customer_id = factory.LazyFunction(lambda: f"cust_{uuid.uuid4().hex[:16]}")
    provider_subscription_id = factory.LazyFunction(lambda: f"sub_{uuid.uuid4().hex[:16]}")
    status = SubscriptionStatus.ACTIVE
    tier_id = "premium"
    billing_cycle = BillingCycle.MONTHLY
    current_period_start = factory.LazyFunction(timezone.now)
    current_period_end = factory.LazyFunction(lambda: timezone.now() + timedelta(days=30))


class ProcessedWebhookEventFactory(factory.django.DjangoModelFactory):
    """Factory for creating ledger entries."""

    class Meta:
        model = ProcessedWebhookEvent

    object_id = factory.LazyFunction(lambda: f"sub_{uuid.uuid4().hex[:16]}")
    event_type = "subscription.updated"
    event_id = factory.LazyAttribute(lambda o: f"{o.object_id}_{o.event_type}")
    provider = "creem"
    event_created_at = factory.LazyFunction(timezone.now)


class PaymentFactory(factory.django.DjangoModelFactory):
    """Factory for creating Payment instances."""

    class Meta:
        model = Payment

    payment_id = factory.LazyFunction(lambda: f"tran_{uuid.uuid4().hex[:16]}")
    user = factory.SubFactory(UserFactory)
    customer_id = factory.LazyFunction(lambda: f"cust_{uuid.uuid4().hex[:16]}")
    tier_id = "premium"
    amount = 1999
    currency = "usd"
    status = PaymentStatus.SUCCEEDED
    payment_type = PaymentMode.SUBSCRIPTION
