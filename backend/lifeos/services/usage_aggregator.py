"""
Usage aggregation for gated features.

Each feature has exactly one registered ``CountProvider`` which fetches a
bounded page of that resource type. The aggregator filters the page with the
provider's live-item predicate and returns the count.

Counting failures never propagate: they are logged and degrade to 0. The
client-side check is a UX optimization only, the backend enforces limits on
create.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from datetime import UTC, datetime
from typing import Any

import structlog

from lifeos.config import UsageConfig
from lifeos.constants import (
    ARCHIVED_STATUS,
    BILLABLE_SUBSCRIPTION_STATUSES,
    DIARY_ENDPOINT,
    GIFTING_ENDPOINT,
    IDEAS_ENDPOINT,
    NOT_LIVE_STATUSES,
    SUBSCRIPTIONS_ENDPOINT,
    TRIPS_ENDPOINT,
    VAULT_DOCUMENTS_ENDPOINT,
    VAULT_ENDPOINT,
    WATCH_ENDPOINT,
)
from lifeos.models.limits import FeatureKey, UsageSnapshot
from lifeos.services.api_client import LifeOSClient
from lifeos.services.plan_limits import max_finite_limit

logger = structlog.get_logger(__name__)

Item = dict[str, Any]
ItemFetcher = Callable[[int], Awaitable[list[Item]]]
LivePredicate = Callable[[Item], bool]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _feature_name(feature: FeatureKey | str) -> str:
    return feature.value if isinstance(feature, FeatureKey) else str(feature)


def is_live(item: Item) -> bool:
    """Default predicate: not archived, not cancelled."""
    if item.get("isArchived") is True:
        return False
    return item.get("status") not in NOT_LIVE_STATUSES


def is_not_archived(item: Item) -> bool:
    return item.get("status") != ARCHIVED_STATUS


def is_billable_subscription(item: Item) -> bool:
    return item.get("status") in BILLABLE_SUBSCRIPTION_STATUSES


class CountProvider:
    """Fetches one page of a resource collection for counting."""

    def __init__(
        self,
        fetch: ItemFetcher,
        *,
        is_live: LivePredicate = is_live,
        page_size: int | None = None,
    ) -> None:
        """
        Args:
            fetch:     Coroutine function taking a page size and returning items.
            is_live:   Predicate selecting the items that count toward usage.
            page_size: Fixed page size; derived from the plan table when None.
        """
        self.fetch = fetch
        self.is_live = is_live
        self.page_size = page_size


def _extract_items(data: Any, collection_key: str | None, path: str) -> list[Item]:
    items = data.get(collection_key) if collection_key and isinstance(data, dict) else data
    if items is None:
        return []
    if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
        raise ValueError(f"Malformed collection returned by {path}")
    return items


def resource_fetcher(
    client: LifeOSClient,
    path: str,
    *,
    collection_key: str | None = None,
    params: dict[str, Any] | None = None,
) -> ItemFetcher:
    """Build a fetcher for ``GET <path>?limit=<page_size>`` returning the item list."""

    async def fetch(page_size: int) -> list[Item]:
        query = {**(params or {}), "limit": page_size}
        data = await client.list_resource(path, params=query)
        return _extract_items(data, collection_key, path)

    return fetch


def build_default_providers(client: LifeOSClient) -> dict[FeatureKey, CountProvider]:
    """Registration table of count providers for every built-in feature."""
    return {
        FeatureKey.DIARY: CountProvider(
            resource_fetcher(
                client, DIARY_ENDPOINT, collection_key="entries", params={"isArchived": "false"}
            ),
        ),
        FeatureKey.IDEAS: CountProvider(
            resource_fetcher(client, IDEAS_ENDPOINT, collection_key="ideas"),
            is_live=is_not_archived,
        ),
        FeatureKey.TRAVEL: CountProvider(
            resource_fetcher(client, TRIPS_ENDPOINT, collection_key="trips"),
        ),
        FeatureKey.WATCH: CountProvider(
            resource_fetcher(client, WATCH_ENDPOINT, collection_key="items"),
        ),
        FeatureKey.GIFTING: CountProvider(
            resource_fetcher(client, GIFTING_ENDPOINT, collection_key="ideas"),
            is_live=is_not_archived,
        ),
        FeatureKey.SUBSCRIPTIONS: CountProvider(
            resource_fetcher(client, SUBSCRIPTIONS_ENDPOINT, collection_key="subscriptions"),
            is_live=is_billable_subscription,
        ),
        FeatureKey.VAULT: CountProvider(
            resource_fetcher(client, VAULT_ENDPOINT),
        ),
        FeatureKey.DOCUMENTS: CountProvider(
            resource_fetcher(client, VAULT_DOCUMENTS_ENDPOINT, params={"isArchived": "false"}),
        ),
    }


class UsageAggregator:
    """Counts live items per feature, tolerating provider failures."""

    def __init__(
        self,
        providers: dict[FeatureKey | str, CountProvider],
        config: UsageConfig | None = None,
        now_provider=_utcnow,
    ) -> None:
        self.providers = dict(providers)
        self.config = config or UsageConfig()
        self.now_provider = now_provider

    def register(self, feature: FeatureKey | str, provider: CountProvider) -> None:
        """Add or replace the count provider for a feature."""
        self.providers[feature] = provider

    def page_size_for(self, feature: FeatureKey | str) -> int:
        """Page size large enough to cover every finite limit of the feature."""
        provider = self.providers.get(feature)
        if provider is not None and provider.page_size is not None:
            return provider.page_size
        return max(
            self.config.min_page_size,
            max_finite_limit(feature) + self.config.page_size_margin,
        )

    async def current_usage(self, feature: FeatureKey | str) -> int:
        """Count live items for a feature. Returns 0 on any failure."""
        provider = self.providers.get(feature)
        if provider is None:
            logger.warning("usage_provider_missing", feature=_feature_name(feature))
            return 0

        page_size = self.page_size_for(feature)
        try:
            items = await provider.fetch(page_size)
            count = sum(1 for item in items if provider.is_live(item))
        except Exception as e:
            logger.warning(
                "usage_count_failed",
                feature=_feature_name(feature),
                error=str(e),
                error_type=type(e).__name__,
            )
            return 0

        logger.debug("usage_counted", feature=_feature_name(feature), count=count, page_size=page_size)
        return count

    async def snapshot(self, feature: FeatureKey | str) -> UsageSnapshot:
        count = await self.current_usage(feature)
        return UsageSnapshot(feature_key=feature, count=count, fetched_at=self.now_provider())

    async def snapshots(
        self, features: Iterable[FeatureKey | str]
    ) -> dict[FeatureKey | str, UsageSnapshot]:
        """Snapshot several features concurrently. Results are independent."""
        feature_list = list(features)
        results = await asyncio.gather(*(self.snapshot(f) for f in feature_list))
        return dict(zip(feature_list, results))
