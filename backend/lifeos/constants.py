"""
Business logic constants for the LifeOS client core.

These values are fixed at build time and do not need env-var overrides.
For operational parameters that vary per environment (base URL, timeouts,
page size margins), see config.py.
"""

from lifeos.models.billing import PlanTier
from lifeos.models.limits import FeatureKey

# --- Limit sentinel ---
# Limits are non-negative item counts; -1 means no limit.
UNLIMITED = -1

# --- Plan limits per feature ---
# 0 means the feature is fully gated for the plan.
PLAN_LIMITS: dict[FeatureKey, dict[PlanTier, int]] = {
    FeatureKey.DIARY: {
        PlanTier.FREE: 10,
        PlanTier.PRO: UNLIMITED,
        PlanTier.COUPLE: UNLIMITED,
        PlanTier.LIFETIME: UNLIMITED,
    },
    FeatureKey.IDEAS: {
        PlanTier.FREE: 20,
        PlanTier.PRO: UNLIMITED,
        PlanTier.COUPLE: UNLIMITED,
        PlanTier.LIFETIME: UNLIMITED,
    },
    FeatureKey.TRAVEL: {
        PlanTier.FREE: 5,
        PlanTier.PRO: UNLIMITED,
        PlanTier.COUPLE: UNLIMITED,
        PlanTier.LIFETIME: UNLIMITED,
    },
    FeatureKey.WATCH: {
        PlanTier.FREE: 50,
        PlanTier.PRO: UNLIMITED,
        PlanTier.COUPLE: UNLIMITED,
        PlanTier.LIFETIME: UNLIMITED,
    },
    FeatureKey.GIFTING: {
        PlanTier.FREE: 20,
        PlanTier.PRO: UNLIMITED,
        PlanTier.COUPLE: UNLIMITED,
        PlanTier.LIFETIME: UNLIMITED,
    },
    FeatureKey.SUBSCRIPTIONS: {
        PlanTier.FREE: 5,
        PlanTier.PRO: UNLIMITED,
        PlanTier.COUPLE: UNLIMITED,
        PlanTier.LIFETIME: UNLIMITED,
    },
    FeatureKey.VAULT: {
        PlanTier.FREE: 0,
        PlanTier.PRO: UNLIMITED,
        PlanTier.COUPLE: UNLIMITED,
        PlanTier.LIFETIME: UNLIMITED,
    },
    FeatureKey.DOCUMENTS: {
        PlanTier.FREE: 0,
        PlanTier.PRO: UNLIMITED,
        PlanTier.COUPLE: UNLIMITED,
        PlanTier.LIFETIME: UNLIMITED,
    },
}

FEATURE_DISPLAY_NAMES: dict[FeatureKey, str] = {
    FeatureKey.DIARY: "Diary Entries",
    FeatureKey.IDEAS: "Ideas",
    FeatureKey.TRAVEL: "Travel Plans",
    FeatureKey.WATCH: "Watch Items",
    FeatureKey.GIFTING: "Gift Ideas",
    FeatureKey.SUBSCRIPTIONS: "Subscriptions",
    FeatureKey.VAULT: "Vault Credentials",
    FeatureKey.DOCUMENTS: "Vault Documents",
}

# --- Backend endpoints (relative to settings.api_base_url) ---
USER_SUBSCRIPTION_ENDPOINT = "/user-subscription"
USER_SUBSCRIPTION_CANCEL_ENDPOINT = "/user-subscription/cancel"
PAYMENT_ORDER_ENDPOINT = "/payment/order"
PAYMENT_VERIFY_ENDPOINT = "/payment/verify"

DIARY_ENDPOINT = "/diary"
IDEAS_ENDPOINT = "/ideas"
TRIPS_ENDPOINT = "/trips"
WATCH_ENDPOINT = "/watch"
GIFTING_ENDPOINT = "/gifting"
SUBSCRIPTIONS_ENDPOINT = "/subscriptions"
VAULT_ENDPOINT = "/vault"
VAULT_DOCUMENTS_ENDPOINT = "/vault/documents"

# --- Item statuses ---
ARCHIVED_STATUS = "archived"
CANCELLED_STATUS = "cancelled"
NOT_LIVE_STATUSES: frozenset[str] = frozenset({ARCHIVED_STATUS, CANCELLED_STATUS})
# Recurring subscriptions only count while they can still bill
BILLABLE_SUBSCRIPTION_STATUSES: frozenset[str] = frozenset({"active", "paused"})

# --- Error classification ---
GENERIC_VALIDATION_MESSAGE = "Validation error"
SUBSCRIPTION_ERROR_FIELD = "subscription"
PLAN_TIER_NAMES_LITERAL = "pro/couple/lifetime"
# Matched against individual entries of an ``errors`` array when picking a message
LIMIT_ENTRY_KEYWORDS: tuple[str, ...] = (
    "limit",
    "upgrade",
    PLAN_TIER_NAMES_LITERAL,
    "reached your limit",
)
# Matched against the resolved message when classifying a limit error
LIMIT_MESSAGE_KEYWORDS: tuple[str, ...] = (
    "limit",
    "upgrade",
    "reached your limit",
    PLAN_TIER_NAMES_LITERAL,
    "unlimited access",
)
DEFAULT_ERROR_MESSAGE = "An error occurred. Please try again."
NESTED_ERROR_FALLBACK = "An error occurred"
API_ERROR_FALLBACK = "An error occurred"

# --- Upgrade flow messages ---
ORDER_FAILED_MESSAGE = "Failed to create payment order"
VERIFICATION_FAILED_MESSAGE = "Payment verification failed"
PAYMENT_FAILED_MESSAGE = "Payment failed"
SUBSCRIPTION_LOAD_FAILED_MESSAGE = "Failed to load subscription limit"

# --- Upgrade replay guard ---
# Most recent order ids an orchestrator remembers as already submitted
CONSUMED_ORDER_HISTORY = 100
