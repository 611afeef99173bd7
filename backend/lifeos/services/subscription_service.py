"""Locally known subscription state and its refresh/cancel paths."""

from typing import Protocol

import structlog

from lifeos.models.billing import PlanTier, UserSubscription

logger = structlog.get_logger(__name__)


class SubscriptionProvider(Protocol):
    """Backend contract for the user's subscription."""

    async def get_subscription(self) -> UserSubscription:
        """Fetch the current subscription."""

    async def cancel_subscription(self) -> UserSubscription:
        """Cancel the paid plan; the backend downgrades the user to FREE."""


class SubscriptionService:
    """Holds the last subscription seen from the backend.

    The plan is never inferred locally: it only changes through ``refresh``,
    a verified payment (``apply``) or ``cancel``.
    """

    def __init__(self, provider: SubscriptionProvider) -> None:
        self.provider = provider
        self.current: UserSubscription | None = None

    @property
    def plan(self) -> PlanTier | None:
        return self.current.plan if self.current else None

    async def refresh(self) -> UserSubscription:
        subscription = await self.provider.get_subscription()
        return self.apply(subscription)

    def apply(self, subscription: UserSubscription) -> UserSubscription:
        previous = self.plan
        self.current = subscription
        if previous is not None and previous != subscription.plan:
            logger.info(
                "subscription_plan_changed",
                previous_plan=previous.value,
                plan=subscription.plan.value,
            )
        return subscription

    async def cancel(self) -> UserSubscription:
        subscription = await self.provider.cancel_subscription()
        logger.info("subscription_cancelled", plan=subscription.plan.value)
        return self.apply(subscription)
