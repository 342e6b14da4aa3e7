"""Known feeds per provider, from config."""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import ValidationError

from arenaengine.models.oracle import FeedInfo

log = structlog.get_logger(__name__)


class FeedCatalog:
    """Feeds each provider is known to serve. A provider with no entries is unrestricted."""

    def __init__(self, feeds: list[FeedInfo] | None = None) -> None:
        self._feeds: dict[str, dict[str, FeedInfo]] = {}
        for feed in feeds or []:
            self._feeds.setdefault(feed.provider, {})[feed.id] = feed

    @classmethod
    def from_config(cls, rows: list[dict[str, Any]]) -> FeedCatalog:
        feeds = []
        for row in rows:
            try:
                feeds.append(FeedInfo(**row))
            except ValidationError as e:
                log.warning("skip_catalog_feed", feed_id=row.get("id"), error=str(e))
        return cls(feeds)

    def known_feed_ids(self, provider: str) -> set[str] | None:
        feeds = self._feeds.get(provider)
        if not feeds:
            return None
        return set(feeds)

    def is_known(self, provider: str, feed_id: str) -> bool:
        known = self.known_feed_ids(provider)
        return known is None or feed_id in known

    def get(self, provider: str, feed_id: str) -> FeedInfo | None:
        return self._feeds.get(provider, {}).get(feed_id)

    def feeds(self) -> list[FeedInfo]:
        return [f for by_id in self._feeds.values() for f in by_id.values()]

    def by_provider(self) -> dict[str, list[FeedInfo]]:
        return {p: list(by_id.values()) for p, by_id in self._feeds.items()}
