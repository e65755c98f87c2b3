"""
Portal gateway: self-service subscription management links.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import AuthenticationError, BaseApplicationError, InternalError
from core.services import BaseService

from billing.adapters import get_billing_adapter
from billing.exceptions import NoSubscriptionError
from billing.services.subscription_store import SubscriptionStore

if TYPE_CHECKING:
    from django.contrib.auth.models import AbstractBaseUser


class PortalGateway(BaseService):
    """
    Mints customer portal URLs for users with a provider customer on file.

    Typed errors (provider, configuration) keep their message so operators
    see actionable text; anything else becomes a generic 500.
    """

    @classmethod
    def get_portal_url(cls, user: AbstractBaseUser | None) -> str:
        """
        Return a time-limited customer portal URL for the user.

        Raises:
            AuthenticationError: No authenticated user
            NoSubscriptionError: No customer ID on file
            BaseApplicationError: Typed provider/configuration failure
            InternalError: Anything unexpected
        """
        logger = cls.get_logger()

        if user is None or not user.is_authenticated:
            raise AuthenticationError("Unauthorized")

        try:
            subscription = SubscriptionStore.get(user)
            if subscription is None or not subscription.customer_id:
                logger.info("Portal requested without subscription", extra={"user_id": user.pk})
                raise NoSubscriptionError()

            portal_url = get_billing_adapter().create_customer_portal_url(
                subscription.customer_id
            )
        except BaseApplicationError:
            raise
        except Exception as e:
            logger.error(
                f"Unexpected portal failure: {type(e).__name__}",
                extra={"user_id": user.pk},
                exc_info=True,
            )
            raise InternalError("Internal Server Error") from e

        logger.info(
            "Portal URL created",
            extra={"user_id": user.pk, "customer_id": subscription.customer_id},
        )
        return portal_url
