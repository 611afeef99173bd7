"""
Limit evaluation.

``evaluate`` is a pure function of (plan, feature, usage, is_loading) so it
can be recomputed on every render or check. While data is loading it answers
``can_create=True`` to avoid blocking the user before counts arrive; that
means a create call may reach the backend even when the real count would have
blocked it. The backend's own limit check is the enforcement point, this
evaluator is not a security boundary.
"""

from collections.abc import Iterable
from datetime import UTC, datetime

import structlog

from lifeos.constants import SUBSCRIPTION_LOAD_FAILED_MESSAGE, UNLIMITED
from lifeos.models.billing import PlanTier, UserSubscription
from lifeos.models.limits import FeatureKey, LimitDecision, LimitStatus, UsageSnapshot
from lifeos.services.plan_limits import effective_plan, feature_display_name, limit_for
from lifeos.services.subscription_service import SubscriptionService
from lifeos.services.usage_aggregator import UsageAggregator

logger = structlog.get_logger(__name__)


def evaluate(
    plan: PlanTier | None,
    feature: FeatureKey | str,
    usage: UsageSnapshot,
    is_loading: bool = False,
) -> LimitDecision:
    """Decide whether a new item of ``feature`` may be created."""
    limit = limit_for(plan or PlanTier.FREE, feature)
    is_unlimited = limit == UNLIMITED
    remaining = UNLIMITED if is_unlimited else max(0, limit - usage.count)

    if is_loading:
        can_create = True
    elif limit == 0:
        can_create = False
    elif is_unlimited:
        can_create = True
    else:
        can_create = remaining > 0

    return LimitDecision(
        limit=limit,
        current_count=usage.count,
        remaining=remaining,
        can_create=can_create,
        is_unlimited=is_unlimited,
    )


def _status(
    decision: LimitDecision,
    feature: FeatureKey | str,
    *,
    is_loading: bool = False,
    error: str | None = None,
) -> LimitStatus:
    return LimitStatus(
        **decision.model_dump(),
        feature_key=feature,
        display_name=feature_display_name(feature),
        is_loading=is_loading,
        error=error,
    )


class SubscriptionLimitService:
    """Fetches plan and usage, then evaluates limits for one or more features."""

    def __init__(
        self,
        subscriptions: SubscriptionService,
        usage: UsageAggregator,
        now_provider=lambda: datetime.now(UTC),
    ) -> None:
        self.subscriptions = subscriptions
        self.usage = usage
        self.now_provider = now_provider

    def loading_status(self, feature: FeatureKey | str) -> LimitStatus:
        """Status to show while plan and usage are still in flight."""
        empty = UsageSnapshot(feature_key=feature, count=0, fetched_at=self.now_provider())
        plan = effective_plan(self.subscriptions.current)
        decision = evaluate(plan, feature, empty, is_loading=True)
        return _status(decision, feature, is_loading=True)

    async def _load_subscription(self) -> tuple[UserSubscription | None, str | None]:
        try:
            return await self.subscriptions.refresh(), None
        except Exception as e:
            message = str(e) or SUBSCRIPTION_LOAD_FAILED_MESSAGE
            logger.warning("subscription_load_failed", error=message)
            return None, message

    async def check(self, feature: FeatureKey | str) -> LimitStatus:
        """Fresh limit status for one feature."""
        statuses = await self.check_many([feature])
        return statuses[feature]

    async def check_many(
        self, features: Iterable[FeatureKey | str]
    ) -> dict[FeatureKey | str, LimitStatus]:
        """Fresh limit statuses for several features, counted concurrently."""
        feature_list = list(features)
        subscription, error = await self._load_subscription()

        if error is not None:
            # Without a plan there is nothing to count against; FREE limits apply.
            snapshots = {
                f: UsageSnapshot(feature_key=f, count=0, fetched_at=self.now_provider())
                for f in feature_list
            }
        else:
            snapshots = await self.usage.snapshots(feature_list)

        plan = effective_plan(subscription)
        return {
            f: _status(evaluate(plan, f, snapshots[f]), f, error=error)
            for f in feature_list
        }

    async def can_create(self, feature: FeatureKey | str) -> bool:
        return (await self.check(feature)).can_create
