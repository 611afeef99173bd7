"""Plan and limit table lookups.

All functions are pure. An unknown or not-yet-loaded plan resolves to FREE so
that evaluation never fails before subscription data has arrived.
"""

from lifeos.constants import FEATURE_DISPLAY_NAMES, PLAN_LIMITS, UNLIMITED
from lifeos.models.billing import PlanTier, UserSubscription
from lifeos.models.limits import FeatureKey


def _coerce_plan(plan: PlanTier | str | None) -> PlanTier:
    if isinstance(plan, PlanTier):
        return plan
    try:
        return PlanTier(plan)
    except ValueError:
        return PlanTier.FREE


def _coerce_feature(feature: FeatureKey | str) -> FeatureKey | None:
    if isinstance(feature, FeatureKey):
        return feature
    try:
        return FeatureKey(feature)
    except ValueError:
        return None


def limit_for(plan: PlanTier | str | None, feature: FeatureKey | str) -> int:
    """
    Return the item limit for a (plan, feature) pair.

    Returns:
        A non-negative count, 0 for a gated feature, or UNLIMITED (-1).
        Features missing from the table are unlimited.
    """
    feature_key = _coerce_feature(feature)
    if feature_key is None or feature_key not in PLAN_LIMITS:
        return UNLIMITED
    return PLAN_LIMITS[feature_key].get(_coerce_plan(plan), 0)


def effective_plan(subscription: UserSubscription | None) -> PlanTier:
    """Plan whose limits apply: inactive paid subscriptions fall back to FREE."""
    if subscription is None:
        return PlanTier.FREE
    if not subscription.is_active and subscription.plan != PlanTier.FREE:
        return PlanTier.FREE
    return subscription.plan


def feature_limit(subscription: UserSubscription | None, feature: FeatureKey | str) -> int:
    """Limit for a feature given the user's (possibly missing) subscription."""
    return limit_for(effective_plan(subscription), feature)


def can_access_feature(subscription: UserSubscription | None, feature: FeatureKey | str) -> bool:
    """False only when the feature is fully gated for the effective plan."""
    return feature_limit(subscription, feature) != 0


def max_finite_limit(feature: FeatureKey | str) -> int:
    """Largest finite limit any plan grants for a feature (0 if none)."""
    feature_key = _coerce_feature(feature)
    if feature_key is None or feature_key not in PLAN_LIMITS:
        return 0
    finite = [limit for limit in PLAN_LIMITS[feature_key].values() if limit != UNLIMITED]
    return max(finite, default=0)


def feature_display_name(feature: FeatureKey | str) -> str:
    feature_key = _coerce_feature(feature)
    if feature_key is None:
        return str(feature)
    return FEATURE_DISPLAY_NAMES.get(feature_key, feature_key.value)
