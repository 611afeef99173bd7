"""
Upgrade/payment orchestration.

One attempt runs through:

    IDLE -> ORDER_REQUESTED -> CHECKOUT_OPEN -> VERIFYING -> APPLIED | FAILED
                                             -> CANCELLED

The backend issues a single-use ``PaymentOrder``, the external checkout widget
collects the payment and reports success (payment id + signature), dismissal
or failure through callbacks, and the backend verifies the signature before
the plan changes. A checkout success callback is never treated as proof of
upgrade on its own.

Only one attempt may be in flight per orchestrator; starting another while
one is active raises ``UpgradeInProgressError`` without creating an order.
"""

import asyncio
from collections import deque
from collections.abc import Callable
from typing import Protocol

import structlog
from pydantic import ValidationError

from lifeos.auth import Session
from lifeos.config import CheckoutConfig
from lifeos.constants import (
    CONSUMED_ORDER_HISTORY,
    DEFAULT_ERROR_MESSAGE,
    ORDER_FAILED_MESSAGE,
    PAYMENT_FAILED_MESSAGE,
    VERIFICATION_FAILED_MESSAGE,
)
from lifeos.models.billing import (
    BillingCycle,
    CheckoutFailure,
    CheckoutOptions,
    CheckoutSuccess,
    PaymentOrder,
    PaymentVerificationResponse,
    PaymentVerificationResult,
    PlanTier,
    UpgradeOutcome,
    UpgradeReason,
    UpgradeState,
)
from lifeos.services.error_classifier import extract_message
from lifeos.services.plan_limits import effective_plan
from lifeos.services.subscription_service import SubscriptionService

logger = structlog.get_logger(__name__)

ACTIVE_UPGRADE_STATES = frozenset(
    {UpgradeState.ORDER_REQUESTED, UpgradeState.CHECKOUT_OPEN, UpgradeState.VERIFYING}
)
TERMINAL_UPGRADE_STATES = frozenset(
    {UpgradeState.APPLIED, UpgradeState.FAILED, UpgradeState.CANCELLED}
)

CheckoutResult = CheckoutSuccess | CheckoutFailure | None


class UpgradeInProgressError(RuntimeError):
    """Raised when an upgrade is started while another one is still active."""


class PaymentProvider(Protocol):
    """Backend contract for payment orders and verification."""

    async def create_payment_order(
        self, plan: PlanTier, billing_cycle: BillingCycle
    ) -> PaymentOrder:
        """Create a fresh single-use order."""

    async def verify_payment(
        self, result: PaymentVerificationResult
    ) -> PaymentVerificationResponse:
        """Verify the checkout signature and apply the plan server-side."""


class CheckoutHandlers:
    """Callbacks handed to the checkout widget. Only the first call counts."""

    def __init__(
        self,
        on_success: Callable[[CheckoutSuccess], None],
        on_dismiss: Callable[[], None],
        on_failure: Callable[[str | None], None],
    ) -> None:
        self.on_success = on_success
        self.on_dismiss = on_dismiss
        self.on_failure = on_failure


class CheckoutWidget(Protocol):
    """External checkout SDK."""

    def open(self, options: CheckoutOptions, handlers: CheckoutHandlers) -> None:
        """Show checkout for one order and later invoke exactly one handler."""


def checkout_description(plan: PlanTier, billing_cycle: BillingCycle) -> str:
    description = f"Upgrade to {plan.value} plan"
    if billing_cycle != BillingCycle.NONE:
        description += f" ({billing_cycle.value})"
    return description


def _failure_message(error: Exception, fallback: str) -> str:
    message = extract_message(error)
    return fallback if message == DEFAULT_ERROR_MESSAGE else message


class UpgradeOrchestrator:
    """Drives one upgrade attempt at a time from order to applied plan."""

    def __init__(
        self,
        payments: PaymentProvider,
        widget: CheckoutWidget,
        subscriptions: SubscriptionService,
        session: Session,
        checkout_config: CheckoutConfig | None = None,
        consumed_order_history: int = CONSUMED_ORDER_HISTORY,
    ) -> None:
        self.payments = payments
        self.widget = widget
        self.subscriptions = subscriptions
        self.session = session
        self.checkout_config = checkout_config or CheckoutConfig()
        self.state = UpgradeState.IDLE
        self.order: PaymentOrder | None = None
        self.last_outcome: UpgradeOutcome | None = None
        self._consumed_orders: deque[str] = deque(maxlen=consumed_order_history)

    @property
    def is_busy(self) -> bool:
        return self.state in ACTIVE_UPGRADE_STATES

    def reset(self) -> None:
        """Return a finished orchestrator to IDLE."""
        if self.is_busy:
            raise UpgradeInProgressError(f"Upgrade attempt is {self.state.value}")
        self.state = UpgradeState.IDLE
        self.order = None

    def _transition(self, state: UpgradeState, **fields) -> None:
        logger.info(
            "upgrade_state_changed",
            from_state=self.state.value,
            to_state=state.value,
            **fields,
        )
        self.state = state

    def _finish(
        self,
        state: UpgradeState,
        reason: UpgradeReason,
        plan: PlanTier,
        billing_cycle: BillingCycle,
        **fields,
    ) -> UpgradeOutcome:
        outcome = UpgradeOutcome(
            state=state,
            reason=reason,
            plan=plan,
            billing_cycle=billing_cycle,
            order_id=self.order.order_id if self.order else None,
            **fields,
        )
        self._transition(state, reason=reason.value, order_id=outcome.order_id)
        # The order is spent whatever happened to it.
        self.order = None
        self.last_outcome = outcome
        return outcome

    async def upgrade(
        self,
        plan: PlanTier,
        billing_cycle: BillingCycle = BillingCycle.MONTHLY,
    ) -> UpgradeOutcome:
        """
        Run a full upgrade attempt.

        Returns:
            The terminal outcome. Failures and cancellations are outcomes,
            not exceptions.

        Raises:
            ValueError: ``plan`` is FREE.
            UpgradeInProgressError: Another attempt has not finished yet.
        """
        if plan == PlanTier.FREE:
            raise ValueError("The FREE plan cannot be purchased")
        if self.is_busy:
            raise UpgradeInProgressError(f"Upgrade attempt is {self.state.value}")
        if plan == PlanTier.LIFETIME:
            billing_cycle = BillingCycle.NONE

        self.session.bind_log_context()
        self.order = None
        self._transition(
            UpgradeState.ORDER_REQUESTED, plan=plan.value, billing_cycle=billing_cycle.value
        )
        try:
            return await self._run(plan, billing_cycle)
        except asyncio.CancelledError:
            logger.warning("upgrade_interrupted", state=self.state.value)
            self._finish(
                UpgradeState.FAILED,
                UpgradeReason.PAYMENT_FAILED,
                plan,
                billing_cycle,
                message="Upgrade interrupted",
            )
            raise

    async def _run(self, plan: PlanTier, billing_cycle: BillingCycle) -> UpgradeOutcome:
        try:
            order = await self.payments.create_payment_order(plan, billing_cycle)
        except Exception as e:
            logger.warning("payment_order_failed", plan=plan.value, error=str(e))
            return self._finish(
                UpgradeState.FAILED,
                UpgradeReason.ORDER_FAILED,
                plan,
                billing_cycle,
                message=_failure_message(e, ORDER_FAILED_MESSAGE),
            )
        self.order = order

        result = await self._checkout(order, plan, billing_cycle)

        if result is None:
            return self._finish(
                UpgradeState.CANCELLED, UpgradeReason.USER_CANCELLED, plan, billing_cycle
            )
        if isinstance(result, CheckoutFailure):
            return self._finish(
                UpgradeState.FAILED,
                UpgradeReason.PAYMENT_FAILED,
                plan,
                billing_cycle,
                message=result.message or PAYMENT_FAILED_MESSAGE,
            )
        return await self._verify(order, result, plan, billing_cycle)

    async def _checkout(
        self, order: PaymentOrder, plan: PlanTier, billing_cycle: BillingCycle
    ) -> CheckoutResult:
        loop = asyncio.get_running_loop()
        settled: asyncio.Future = loop.create_future()

        def settle(value: CheckoutResult) -> None:
            if not settled.done():
                settled.set_result(value)

        # Widgets may call back from outside the event loop thread, and after
        # the attempt is over (interrupted task, closed loop).
        def post(value: CheckoutResult) -> None:
            if settled.done() or loop.is_closed():
                logger.debug("checkout_callback_ignored", order_id=order.order_id)
                return
            try:
                loop.call_soon_threadsafe(settle, value)
            except RuntimeError:
                logger.debug("checkout_callback_ignored", order_id=order.order_id)

        handlers = CheckoutHandlers(
            on_success=post,
            on_dismiss=lambda: post(None),
            on_failure=lambda message: post(CheckoutFailure(message=message)),
        )
        options = CheckoutOptions(
            provider_key=order.provider_key,
            amount=order.amount,
            currency=order.currency,
            order_id=order.order_id,
            name=self.checkout_config.merchant_name,
            description=checkout_description(plan, billing_cycle),
            prefill=self.session.prefill(),
            theme_color=self.checkout_config.theme_color,
        )

        self._transition(UpgradeState.CHECKOUT_OPEN, order_id=order.order_id)
        try:
            self.widget.open(options, handlers)
        except Exception as e:
            logger.warning("checkout_open_failed", order_id=order.order_id, error=str(e))
            return CheckoutFailure(message=str(e) or None)
        return await settled

    async def _verify(
        self,
        order: PaymentOrder,
        payment: CheckoutSuccess,
        plan: PlanTier,
        billing_cycle: BillingCycle,
    ) -> UpgradeOutcome:
        if order.order_id in self._consumed_orders:
            logger.error("payment_order_replayed", order_id=order.order_id)
            return self._finish(
                UpgradeState.FAILED,
                UpgradeReason.VERIFICATION_FAILED,
                plan,
                billing_cycle,
                message=f"Payment order {order.order_id} was already submitted",
                payment_id=payment.payment_id,
            )
        self._consumed_orders.append(order.order_id)

        self._transition(
            UpgradeState.VERIFYING, order_id=order.order_id, payment_id=payment.payment_id
        )
        result = PaymentVerificationResult(
            order_id=order.order_id,
            payment_id=payment.payment_id,
            signature=payment.signature,
            plan=plan,
            billing_cycle=billing_cycle,
        )
        try:
            response = await self.payments.verify_payment(result)
        except ValidationError as e:
            logger.error(
                "payment_verification_response_invalid", order_id=order.order_id, error=str(e)
            )
            return await self._reconcile(plan, billing_cycle, payment)
        except Exception as e:
            logger.warning(
                "payment_verification_failed", order_id=order.order_id, error=str(e)
            )
            return self._finish(
                UpgradeState.FAILED,
                UpgradeReason.VERIFICATION_FAILED,
                plan,
                billing_cycle,
                message=_failure_message(e, VERIFICATION_FAILED_MESSAGE),
                payment_id=payment.payment_id,
            )

        subscription = self.subscriptions.apply(response.subscription)
        return self._finish(
            UpgradeState.APPLIED,
            UpgradeReason.APPLIED,
            plan,
            billing_cycle,
            payment_id=payment.payment_id,
            subscription=subscription,
        )

    async def _reconcile(
        self, plan: PlanTier, billing_cycle: BillingCycle, payment: CheckoutSuccess
    ) -> UpgradeOutcome:
        """Settle an attempt whose verification reply could not be read.

        The backend may already have applied the plan, so the subscription is
        re-read and the attempt counts as applied only if it shows the target plan.
        """
        try:
            subscription = await self.subscriptions.refresh()
        except Exception as e:
            logger.warning("subscription_reconcile_failed", error=str(e))
            subscription = None

        if subscription is not None and effective_plan(subscription) == plan:
            return self._finish(
                UpgradeState.APPLIED,
                UpgradeReason.APPLIED,
                plan,
                billing_cycle,
                payment_id=payment.payment_id,
                subscription=subscription,
            )
        return self._finish(
            UpgradeState.FAILED,
            UpgradeReason.VERIFICATION_FAILED,
            plan,
            billing_cycle,
            message=VERIFICATION_FAILED_MESSAGE,
            payment_id=payment.payment_id,
        )
