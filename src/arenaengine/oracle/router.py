"""Dispatch fetch_sample to the adapter registered for the oracle's provider."""

from __future__ import annotations

from typing import TYPE_CHECKING

from arenaengine.errors import UnknownFeed
from arenaengine.models.arena import MarketOracle
from arenaengine.models.oracle import FeedSample
from arenaengine.oracle.base import OracleAdapter
from arenaengine.oracle.catalog import FeedCatalog
from arenaengine.oracle.providers import ADAPTERS, ChainlinkAdapter
from arenaengine.oracle.rate_limit import TokenBucket

if TYPE_CHECKING:
    from arenaengine.config.settings import Settings


class OracleRouter:
    """Holds one adapter per provider."""

    def __init__(self, adapters: dict[str, OracleAdapter]) -> None:
        self._adapters = dict(adapters)

    def adapter(self, provider: str) -> OracleAdapter:
        adapter = self._adapters.get(provider)
        if adapter is None:
            raise UnknownFeed(f"no adapter for provider {provider}")
        return adapter

    async def fetch_sample(self, oracle: MarketOracle) -> FeedSample:
        return await self.adapter(oracle.provider).fetch_sample(oracle)

    async def aclose(self) -> None:
        for adapter in self._adapters.values():
            await adapter.aclose()


def build_router(settings: Settings, catalog: FeedCatalog | None = None) -> OracleRouter:
    """Create adapters for every provider from settings."""
    catalog = catalog or FeedCatalog.from_config(settings.feed_catalog)
    base_urls = {
        "pyth": settings.pyth_base_url,
        "chainlink": settings.chainlink_base_url,
        "switchboard": settings.switchboard_base_url,
    }
    adapters: dict[str, OracleAdapter] = {}
    for provider, cls in ADAPTERS.items():
        kwargs = dict(
            timeout_sec=settings.oracle_request_timeout_sec,
            known_feeds=catalog.known_feed_ids(provider),
            rate_limiter=TokenBucket(rate=settings.oracle_rate_limit_per_sec),
        )
        if cls is ChainlinkAdapter:
            kwargs["default_confidence"] = settings.chainlink_default_confidence
        adapters[provider] = cls(base_urls[provider], **kwargs)
    return OracleRouter(adapters)
