"""Oracle polling - one task per distinct feed, fanned out to every arena tracking it."""

from __future__ import annotations

import asyncio
from typing import Callable

import structlog

from arenaengine.errors import ArenaNotFound, OracleDataCorrupt, OracleUnavailable, UnknownFeed
from arenaengine.models.arena import MarketOracle
from arenaengine.models.oracle import FeedSample
from arenaengine.oracle.aggregator import OracleAggregator
from arenaengine.oracle.rate_limit import backoff_delay
from arenaengine.oracle.router import OracleRouter

log = structlog.get_logger(__name__)

FeedKey = tuple[str, str]


class OraclePoller:
    """Polls each feed at its updateFrequency. A failing feed only backs off its own task."""

    def __init__(
        self,
        router: OracleRouter,
        aggregator: OracleAggregator,
        *,
        backoff_max_sec: float = 60.0,
        on_sample: Callable[[str, FeedSample], None] | None = None,
    ) -> None:
        self.router = router
        self.aggregator = aggregator
        self.backoff_max_sec = backoff_max_sec
        self.on_sample = on_sample
        self._tasks: dict[FeedKey, asyncio.Task] = {}
        self._sample_count = 0
        self._rejected: set[FeedKey] = set()

    def _feeds(self) -> dict[FeedKey, MarketOracle]:
        feeds: dict[FeedKey, MarketOracle] = {}
        for oracle in self.aggregator.tracked().values():
            key = (oracle.provider, oracle.feed_id)
            current = feeds.get(key)
            # Poll at the fastest cadence any subscriber asks for
            if current is None or oracle.update_frequency < current.update_frequency:
                feeds[key] = oracle
        return feeds

    def _fan_out(self, sample: FeedSample) -> int:
        delivered = 0
        for arena_id, oracle in self.aggregator.tracked().items():
            if (oracle.provider, oracle.feed_id) != (sample.provider, sample.feed_id):
                continue
            try:
                accepted = self.aggregator.add_sample(arena_id, sample)
            except ArenaNotFound:
                # arena finished while the fetch was in flight
                continue
            if accepted:
                delivered += 1
                if self.on_sample is not None:
                    self.on_sample(arena_id, sample)
        return delivered

    async def poll_once(self, oracle: MarketOracle) -> FeedSample:
        """Fetch one sample and deliver it to every subscribed arena."""
        sample = await self.router.fetch_sample(oracle)
        self._sample_count += 1
        self._fan_out(sample)
        return sample

    async def _run_feed(self, oracle: MarketOracle, stop: asyncio.Event) -> None:
        attempt = 0
        while not stop.is_set():
            delay = float(oracle.update_frequency)
            try:
                await self.poll_once(oracle)
                attempt = 0
            except OracleUnavailable as e:
                attempt += 1
                delay = backoff_delay(attempt, base_delay=1.0, max_delay=self.backoff_max_sec)
                log.warning("oracle_unavailable", provider=oracle.provider, feed_id=oracle.feed_id, error=e.message, delay=delay)
            except OracleDataCorrupt as e:
                log.error("oracle_data_corrupt", provider=oracle.provider, feed_id=oracle.feed_id, error=e.message)
            except UnknownFeed as e:
                log.error("oracle_unknown_feed", provider=oracle.provider, feed_id=oracle.feed_id, error=e.message)
                self._rejected.add((oracle.provider, oracle.feed_id))
                return
            try:
                await asyncio.wait_for(stop.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass

    def _sync_tasks(self, stop: asyncio.Event) -> None:
        feeds = self._feeds()
        for key, oracle in feeds.items():
            if key in self._rejected:
                continue
            task = self._tasks.get(key)
            if task is None or task.done():
                self._tasks[key] = asyncio.create_task(self._run_feed(oracle, stop))
                log.info("oracle_feed_polling", provider=key[0], feed_id=key[1], every_sec=oracle.update_frequency)
        for key in list(self._tasks):
            if key not in feeds:
                self._tasks.pop(key).cancel()
                log.info("oracle_feed_stopped", provider=key[0], feed_id=key[1])

    async def run(self, stop_event: asyncio.Event | None = None, sync_interval_sec: float = 1.0) -> None:
        """Run until stop_event is set, starting/stopping feed tasks as arenas come and go."""
        stop = stop_event or asyncio.Event()
        try:
            while not stop.is_set():
                self._sync_tasks(stop)
                try:
                    await asyncio.wait_for(stop.wait(), timeout=sync_interval_sec)
                except asyncio.TimeoutError:
                    pass
        finally:
            for task in self._tasks.values():
                task.cancel()
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)
            self._tasks.clear()
            log.info("oracle_polling_stopped", samples=self._sample_count)
