"""Feature usage and limit decision models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class FeatureKey(str, Enum):
    """Gated resource classes subject to usage limits."""

    DIARY = "diary"
    IDEAS = "ideas"
    TRAVEL = "travel"
    WATCH = "watch"
    GIFTING = "gifting"
    SUBSCRIPTIONS = "subscriptions"
    VAULT = "vault"
    DOCUMENTS = "documents"


class UsageSnapshot(BaseModel):
    """Point-in-time count of live items for a feature. Never persisted."""

    feature_key: FeatureKey | str
    count: int = Field(default=0, ge=0)
    fetched_at: datetime


class LimitDecision(BaseModel):
    """Permission and remaining capacity for one feature check.

    ``remaining`` is -1 when the limit is unlimited.
    """

    model_config = ConfigDict(frozen=True)

    limit: int
    current_count: int
    remaining: int
    can_create: bool
    is_unlimited: bool


class LimitStatus(LimitDecision):
    """Decision enriched with the loading and error state of the check."""

    feature_key: FeatureKey | str
    display_name: str
    is_loading: bool = False
    error: str | None = None


class FailureKind(str, Enum):
    """How a failed create call should be presented."""

    PLAN_LIMIT = "plan_limit"
    GENERIC = "generic"


class FailureClassification(BaseModel):
    """Presentation verdict for a failed create call."""

    kind: FailureKind
    message: str

    @property
    def requires_upgrade(self) -> bool:
        return self.kind == FailureKind.PLAN_LIMIT
