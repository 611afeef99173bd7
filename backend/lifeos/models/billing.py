"""Subscription plan and payment models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PlanTier(str, Enum):
    """Subscription levels controlling feature limits."""

    FREE = "FREE"
    PRO = "PRO"
    COUPLE = "COUPLE"
    LIFETIME = "LIFETIME"


class BillingCycle(str, Enum):
    """Billing cycle of a paid plan. LIFETIME plans use NONE."""

    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"
    NONE = "NONE"


class CamelModel(BaseModel):
    """Base for payloads exchanged with the backend in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserSubscription(CamelModel):
    """Subscription state of the signed-in user as reported by the backend."""

    plan: PlanTier = PlanTier.FREE
    billing_cycle: BillingCycle = BillingCycle.NONE
    price: float = 0
    started_at: datetime | None = None
    expires_at: datetime | None = None
    is_active: bool = True
    days_remaining: int | None = None


class PaymentOrder(CamelModel):
    """Single-use order correlating one checkout attempt."""

    order_id: str
    amount: int = Field(ge=0)
    currency: str = "INR"
    provider_key: str


class PaymentVerificationResult(CamelModel):
    """Checkout result submitted to the backend for signature verification."""

    order_id: str
    payment_id: str
    signature: str
    plan: PlanTier
    billing_cycle: BillingCycle


class PaymentVerificationResponse(CamelModel):
    """Backend confirmation of a verified payment."""

    subscription: UserSubscription
    payment_id: str | None = None
    order_id: str | None = None


class CheckoutPrefill(BaseModel):
    """Identity prefilled in the checkout widget."""

    email: str | None = None
    name: str | None = None
    phone: str | None = None


class CheckoutOptions(BaseModel):
    """Everything the external checkout widget is constructed with."""

    provider_key: str
    amount: int
    currency: str
    order_id: str
    name: str
    description: str
    prefill: CheckoutPrefill = Field(default_factory=CheckoutPrefill)
    theme_color: str | None = None


class CheckoutSuccess(BaseModel):
    """Payload of the checkout widget's success callback."""

    payment_id: str
    signature: str


class CheckoutFailure(BaseModel):
    """Payload of the checkout widget's payment-failure callback."""

    message: str | None = None


class UpgradeState(str, Enum):
    """States of one upgrade attempt."""

    IDLE = "idle"
    ORDER_REQUESTED = "order_requested"
    CHECKOUT_OPEN = "checkout_open"
    VERIFYING = "verifying"
    CANCELLED = "cancelled"
    APPLIED = "applied"
    FAILED = "failed"


class UpgradeReason(str, Enum):
    """Why an upgrade attempt ended where it did."""

    APPLIED = "applied"
    ORDER_FAILED = "order_failed"
    PAYMENT_FAILED = "payment_failed"
    VERIFICATION_FAILED = "verification_failed"
    USER_CANCELLED = "user_cancelled"


class UpgradeOutcome(BaseModel):
    """Terminal result of an upgrade attempt."""

    state: UpgradeState
    reason: UpgradeReason
    plan: PlanTier
    billing_cycle: BillingCycle
    message: str | None = None
    order_id: str | None = None
    payment_id: str | None = None
    subscription: UserSubscription | None = None

    @property
    def succeeded(self) -> bool:
        return self.state == UpgradeState.APPLIED
