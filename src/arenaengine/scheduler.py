"""Background orchestrator - oracle polling, odds refresh and lifecycle ticks in one event loop."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable

import structlog

from arenaengine.oracle.poller import OraclePoller
from arenaengine.oracle.router import OracleRouter
from arenaengine.service import ArenaService

log = structlog.get_logger(__name__)


async def _every(interval_sec: float, fn: Callable[[], None], stop: asyncio.Event, name: str) -> None:
    """Call fn every interval until stop is set. A failing call is logged and the loop keeps going."""
    while not stop.is_set():
        try:
            fn()
        except Exception:
            log.exception("scheduled_job_failed", job=name)
        try:
            await asyncio.wait_for(stop.wait(), timeout=interval_sec)
        except asyncio.TimeoutError:
            pass


class ArenaScheduler:
    """Runs the poller, the odds interval and the lifecycle tick until stopped."""

    def __init__(
        self,
        service: ArenaService,
        router: OracleRouter | None = None,
        *,
        tick_interval_sec: float = 1.0,
        odds_interval_sec: float = 5.0,
        oracle_backoff_max_sec: float = 60.0,
    ) -> None:
        self.service = service
        self.router = router
        self.tick_interval_sec = tick_interval_sec
        self.odds_interval_sec = odds_interval_sec
        self.poller: OraclePoller | None = None
        if router is not None:
            store = service.store
            self.poller = OraclePoller(
                router,
                service.aggregator,
                backoff_max_sec=oracle_backoff_max_sec,
                on_sample=store.on_sample if store is not None else None,
            )
        self._start_ts: float | None = None
        self._ticks = 0

    def _tick(self) -> None:
        self._ticks += 1
        self.service.tick()

    async def run(self, stop_event: asyncio.Event | None = None) -> None:
        """Run until stop_event is set."""
        stop = stop_event or asyncio.Event()
        self._start_ts = time.time()
        jobs = [
            _every(self.tick_interval_sec, self._tick, stop, "lifecycle_tick"),
            _every(self.odds_interval_sec, self.service.refresh_odds, stop, "odds_refresh"),
        ]
        if self.poller is not None:
            jobs.append(self.poller.run(stop_event=stop))
        log.info("scheduler_started", tick_sec=self.tick_interval_sec, odds_sec=self.odds_interval_sec, polling=self.poller is not None)
        await asyncio.gather(*jobs)
        log.info("scheduler_stopped", ticks=self._ticks)

    def get_status(self) -> dict[str, Any]:
        elapsed = (time.time() - self._start_ts) if self._start_ts else 0
        return {"ticks": self._ticks, "elapsed_sec": round(elapsed, 1), "arenas": len(self.service.lifecycle.arena_ids())}

    async def close(self) -> None:
        if self.router is not None:
            await self.router.aclose()
