"""
Pricing tier catalog.

Maps internal tier IDs to billing provider product IDs per payment option,
loaded from settings.BILLING_PRODUCT_TIERS:

    BILLING_PRODUCT_TIERS = {
        "premium": {
            "name": "Premium",
            "products": {
                "one_time": "prod_premium_monthly_sub",
                "monthly": "prod_premium_monthly_sub",
                "yearly": "prod_premium_yearly_sub",
            },
        },
    }

Usage:
    from billing.products import get_tier_by_id

    tier = get_tier_by_id("premium")
    product_id = tier.product_id_for(PaymentMode.SUBSCRIPTION, BillingCycle.YEARLY)
"""

from __future__ import annotations

from dataclasses import dataclass, field

from django.conf import settings

from billing.exceptions import BillingConfigurationError
from billing.state_machines import BillingCycle, PaymentMode


@dataclass(frozen=True)
class ProductTier:
    """
    A purchasable pricing tier.

    Attributes:
        id: Internal tier ID used by clients (e.g., 'premium')
        name: Display name
        products: Provider product ID per option ('one_time', 'monthly', 'yearly')
    """

    id: str
    name: str
    products: dict[str, str] = field(default_factory=dict)

    def product_id_for(self, payment_mode: str, billing_cycle: str | None = None) -> str:
        """
        Resolve the provider product ID for a payment option.

        Raises:
            BillingConfigurationError: The tier has no product for the option
        """
        if payment_mode == PaymentMode.ONE_TIME:
            option = "one_time"
        else:
            option = billing_cycle or BillingCycle.MONTHLY

        product_id = self.products.get(option)
        if not product_id:
            raise BillingConfigurationError(
                f"Tier '{self.id}' has no product for '{option}'",
                details={"tier_id": self.id, "option": option},
            )
        return product_id

    def billing_cycle_for(self, product_id: str) -> str | None:
        """Billing cycle a product is sold under, or None if it is not recurring here."""
        if product_id and product_id == self.products.get(BillingCycle.YEARLY):
            return BillingCycle.YEARLY
        if product_id and product_id == self.products.get(BillingCycle.MONTHLY):
            return BillingCycle.MONTHLY
        return None


def get_tiers() -> dict[str, ProductTier]:
    """Build the tier catalog from settings."""
    configured = getattr(settings, "BILLING_PRODUCT_TIERS", {}) or {}
    return {
        tier_id: ProductTier(
            id=tier_id,
            name=entry.get("name", tier_id),
            products=dict(entry.get("products", {})),
        )
        for tier_id, entry in configured.items()
    }


def get_tier_by_id(tier_id: str) -> ProductTier:
    """
    Look up a tier by its internal ID.

    Raises:
        BillingConfigurationError: Unknown tier
    """
    tier = get_tiers().get(tier_id)
    if tier is None:
        raise BillingConfigurationError(
            f"Invalid tier ID: {tier_id}",
            error_code="UNKNOWN_TIER",
            details={"tier_id": tier_id},
        )
    return tier


def get_tier_by_product_id(product_id: str) -> ProductTier | None:
    """Find the tier selling a provider product, or None."""
    if not product_id:
        return None
    for tier in get_tiers().values():
        if product_id in tier.products.values():
            return tier
    return None


def tier_id_for_product(product_id: str) -> str:
    """Internal tier ID for a provider product, falling back to the product ID."""
    tier = get_tier_by_product_id(product_id)
    return tier.id if tier else product_id
