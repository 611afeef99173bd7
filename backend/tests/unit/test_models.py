"""
Tests for Pydantic models in lifeos.models.

Validates camelCase wire aliases, defaults, and field constraints.
"""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from lifeos.models.billing import (
    BillingCycle,
    PaymentOrder,
    PaymentVerificationResult,
    PlanTier,
    UserSubscription,
)
from lifeos.models.limits import FeatureKey, LimitDecision, UsageSnapshot


class TestUserSubscription:
    def test_parses_backend_payload(self):
        subscription = UserSubscription.model_validate(
            {
                "plan": "COUPLE",
                "billingCycle": "YEARLY",
                "price": 1999,
                "startedAt": "2026-01-01T00:00:00Z",
                "expiresAt": None,
                "isActive": True,
                "daysRemaining": 77,
            }
        )

        assert subscription.plan == PlanTier.COUPLE
        assert subscription.billing_cycle == BillingCycle.YEARLY
        assert subscription.started_at == datetime(2026, 1, 1, tzinfo=UTC)
        assert subscription.days_remaining == 77

    def test_defaults_to_active_free(self):
        subscription = UserSubscription()

        assert subscription.plan == PlanTier.FREE
        assert subscription.is_active is True

    def test_rejects_unknown_plan(self):
        with pytest.raises(ValidationError):
            UserSubscription.model_validate({"plan": "GOLD"})


class TestPaymentModels:
    def test_order_parses_provider_key(self):
        order = PaymentOrder.model_validate(
            {"orderId": "order_9", "amount": 9900, "currency": "INR", "providerKey": "rzp_live"}
        )

        assert order.order_id == "order_9"
        assert order.provider_key == "rzp_live"

    def test_verification_result_serializes_camel_case(self):
        result = PaymentVerificationResult(
            order_id="order_9",
            payment_id="pay_9",
            signature="abc",
            plan=PlanTier.PRO,
            billing_cycle=BillingCycle.MONTHLY,
        )

        assert result.model_dump(mode="json", by_alias=True) == {
            "orderId": "order_9",
            "paymentId": "pay_9",
            "signature": "abc",
            "plan": "PRO",
            "billingCycle": "MONTHLY",
        }


class TestLimitModels:
    def test_usage_count_cannot_be_negative(self):
        with pytest.raises(ValidationError):
            UsageSnapshot(feature_key=FeatureKey.IDEAS, count=-1, fetched_at=datetime.now(UTC))

    def test_limit_decision_is_immutable(self):
        decision = LimitDecision(
            limit=5, current_count=1, remaining=4, can_create=True, is_unlimited=False
        )

        with pytest.raises(ValidationError):
            decision.can_create = False
