"""
LifeOS client core - wiring of the limit and upgrade services.

Builds every collaborator once from an explicit ``Session`` so nothing reads
ambient auth state.

Usage:
    core = create_core(Session(token="...", user=user), widget=checkout_widget)
    status = await core.limits.check(FeatureKey.IDEAS)
    if not status.can_create:
        outcome = await core.upgrades.upgrade(PlanTier.PRO, BillingCycle.YEARLY)
    await core.close()
"""

import httpx
import structlog

from lifeos.auth import Session
from lifeos.config import Settings, get_settings
from lifeos.logging_config import setup_logging
from lifeos.services.api_client import LifeOSClient
from lifeos.services.limit_evaluator import SubscriptionLimitService
from lifeos.services.subscription_service import SubscriptionService
from lifeos.services.upgrade_orchestrator import CheckoutWidget, UpgradeOrchestrator
from lifeos.services.usage_aggregator import UsageAggregator, build_default_providers

logger = structlog.get_logger(__name__)


class LifeOSCore:
    """Services sharing one authenticated client."""

    def __init__(
        self,
        client: LifeOSClient,
        subscriptions: SubscriptionService,
        usage: UsageAggregator,
        limits: SubscriptionLimitService,
        upgrades: UpgradeOrchestrator,
    ) -> None:
        self.client = client
        self.subscriptions = subscriptions
        self.usage = usage
        self.limits = limits
        self.upgrades = upgrades

    async def close(self) -> None:
        await self.client.close()


def create_core(
    session: Session,
    *,
    widget: CheckoutWidget,
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    configure_logging: bool = False,
) -> LifeOSCore:
    """Create the client core for one user session."""
    settings = settings or get_settings()
    if configure_logging:
        setup_logging(settings.debug)

    client = LifeOSClient(session, settings, transport=transport)
    subscriptions = SubscriptionService(client)
    usage = UsageAggregator(build_default_providers(client), settings.usage)
    limits = SubscriptionLimitService(subscriptions, usage)
    upgrades = UpgradeOrchestrator(
        client, widget, subscriptions, session, checkout_config=settings.checkout
    )

    logger.info("core_initialized", api_base_url=settings.api_base_url)
    return LifeOSCore(client, subscriptions, usage, limits, upgrades)
