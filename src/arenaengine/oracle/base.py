"""Abstract oracle adapter: one implementation per provider, selected by MarketOracle.provider."""

from __future__ import annotations

import asyncio
import json
import math
import time
from abc import ABC, abstractmethod
from typing import Any, Callable

import httpx
import structlog

from arenaengine.errors import OracleDataCorrupt, OracleUnavailable, UnknownFeed
from arenaengine.models.arena import MarketOracle
from arenaengine.models.oracle import FeedSample
from arenaengine.oracle.rate_limit import TokenBucket

log = structlog.get_logger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def _float(s: Any) -> float:
    """Parse a provider number. Raises OracleDataCorrupt instead of guessing."""
    if isinstance(s, bool) or s is None:
        raise OracleDataCorrupt(f"not a number: {s!r}")
    try:
        value = float(s)
    except (TypeError, ValueError) as e:
        raise OracleDataCorrupt(f"not a number: {s!r}") from e
    if not math.isfinite(value):
        raise OracleDataCorrupt(f"not finite: {s!r}")
    return value


# Widest exponent any provider uses for fixed-point prices
MAX_EXPONENT = 36


def _scaled(mantissa: float, exponent: int) -> float:
    """mantissa x 10**exponent. Raises OracleDataCorrupt when out of range or not finite."""
    if abs(exponent) > MAX_EXPONENT:
        raise OracleDataCorrupt(f"exponent out of range: {exponent}")
    try:
        if exponent < 0:
            value = mantissa / (10.0 ** -exponent)
        else:
            value = mantissa * (10.0 ** exponent)
    except OverflowError as e:
        raise OracleDataCorrupt(f"{mantissa}e{exponent} overflows") from e
    if not math.isfinite(value):
        raise OracleDataCorrupt(f"{mantissa}e{exponent} is not finite")
    return value


def clamp_confidence(c: float) -> float:
    return max(0.0, min(1.0, c))


class OracleAdapter(ABC):
    """Fetch one FeedSample from a provider. Implement parse_payload and feed_path per provider."""

    provider: str = ""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_sec: float = 5.0,
        known_feeds: set[str] | None = None,
        client: httpx.AsyncClient | None = None,
        rate_limiter: TokenBucket | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = timeout_sec
        self.known_feeds = known_feeds
        self.rate_limiter = rate_limiter
        self.clock = clock
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout_sec)
        return self._client

    @abstractmethod
    def request(self, feed_id: str) -> tuple[str, dict[str, Any]]:
        """Return (path, query params) for the latest value of feed_id."""
        ...

    @abstractmethod
    def parse_payload(self, feed_id: str, payload: Any, received_ts: int) -> FeedSample:
        """Convert a provider payload to a FeedSample. Raise OracleDataCorrupt if malformed."""
        ...

    async def _fetch_payload(self, feed_id: str) -> Any:
        path, params = self.request(feed_id)
        resp = await self._get_client().get(path, params=params)
        if resp.status_code == 404:
            raise UnknownFeed(f"{self.provider} does not serve feed {feed_id}", feed_id=feed_id)
        if resp.status_code == 429 or resp.status_code >= 500:
            raise OracleUnavailable(f"{self.provider} returned {resp.status_code}", feed_id=feed_id)
        if resp.status_code >= 400:
            raise OracleDataCorrupt(f"{self.provider} rejected request: {resp.status_code}", feed_id=feed_id)
        try:
            return resp.json()
        except json.JSONDecodeError as e:
            raise OracleDataCorrupt(f"{self.provider} sent invalid JSON", feed_id=feed_id) from e

    async def fetch_sample(self, oracle: MarketOracle) -> FeedSample:
        """Fetch and normalize the latest sample. Never waits longer than timeout_sec on the network."""
        if oracle.provider != self.provider:
            raise UnknownFeed(f"feed {oracle.feed_id} belongs to {oracle.provider}, not {self.provider}")
        if self.known_feeds is not None and oracle.feed_id not in self.known_feeds:
            raise UnknownFeed(f"{self.provider} does not serve feed {oracle.feed_id}", feed_id=oracle.feed_id)
        if self.rate_limiter is not None:
            await self.rate_limiter.acquire()
        try:
            payload = await asyncio.wait_for(self._fetch_payload(oracle.feed_id), timeout=self.timeout_sec)
        except asyncio.TimeoutError as e:
            raise OracleUnavailable(f"{self.provider} timed out", feed_id=oracle.feed_id) from e
        except httpx.HTTPError as e:
            raise OracleUnavailable(f"{self.provider} request failed: {e}", feed_id=oracle.feed_id) from e
        try:
            sample = self.parse_payload(oracle.feed_id, payload, self.clock())
        except (TypeError, ValueError, ArithmeticError) as e:
            # payload shape the parser did not expect; pydantic errors land here too
            raise OracleDataCorrupt(f"{self.provider} payload rejected: {e}", feed_id=oracle.feed_id) from e
        log.debug("oracle_sample", provider=self.provider, feed_id=oracle.feed_id, value=sample.value, confidence=sample.confidence)
        return sample

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
