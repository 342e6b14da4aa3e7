"""Oracle aggregator - per-arena rolling sample window, resolved into one ResolutionValue."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from threading import Lock

import structlog

from arenaengine.errors import ArenaNotFound, InsufficientConfidence, StaleData
from arenaengine.models.arena import MarketOracle
from arenaengine.models.oracle import FeedSample, ResolutionValue

log = structlog.get_logger(__name__)


@dataclass
class _ArenaWindow:
    oracle: MarketOracle
    window_ms: int
    samples: deque[FeedSample] = field(default_factory=deque)


def window_length_ms(oracle: MarketOracle, dispute_period_sec: int) -> int:
    """max(3 x updateFrequency, dispute period), in ms."""
    return max(3 * oracle.update_frequency, dispute_period_sec) * 1000


def resolve_window(
    arena_id: str,
    oracle: MarketOracle,
    samples: list[FeedSample],
    window_ms: int,
    now: int,
) -> ResolutionValue:
    """Pure resolution of a sample list at time `now`.

    Drops samples older than the window, then those below the oracle's minimum
    confidence. The value is the confidence-weighted mean of what remains; the
    aggregate confidence is the best single sample's, never amplified.
    """
    in_window = [s for s in samples if now - s.timestamp <= window_ms]
    confident = [s for s in in_window if s.confidence >= oracle.minimum_confidence]
    weight = sum(s.confidence for s in confident)
    if not confident or weight <= 0:
        raise InsufficientConfidence(
            f"no sample meets confidence {oracle.minimum_confidence}",
            arena_id=arena_id,
            window_size=len(in_window),
        )
    latest = max(confident, key=lambda s: s.timestamp)
    age_ms = now - latest.timestamp
    if age_ms > 2 * oracle.update_frequency * 1000:
        raise StaleData(f"latest sample is {age_ms} ms old", arena_id=arena_id, age_ms=age_ms)
    # normalized weights keep the mean finite for any finite samples
    value = sum(s.value * (s.confidence / weight) for s in confident)
    return ResolutionValue(
        arena_id=arena_id,
        provider=oracle.provider,
        feed_id=oracle.feed_id,
        value=value,
        confidence=max(s.confidence for s in confident),
        sample_count=len(confident),
        timestamp=latest.timestamp,
    )


class OracleAggregator:
    """Owns the sample windows. One window per arena, bounded by time and count."""

    def __init__(self, max_samples: int = 1000) -> None:
        self.max_samples = max_samples
        self._windows: dict[str, _ArenaWindow] = {}
        self._lock = Lock()

    def track(self, arena_id: str, oracle: MarketOracle, dispute_period_sec: int) -> None:
        with self._lock:
            if arena_id not in self._windows:
                self._windows[arena_id] = _ArenaWindow(
                    oracle=oracle,
                    window_ms=window_length_ms(oracle, dispute_period_sec),
                    samples=deque(maxlen=self.max_samples),
                )

    def untrack(self, arena_id: str) -> None:
        with self._lock:
            self._windows.pop(arena_id, None)

    def tracked(self) -> dict[str, MarketOracle]:
        with self._lock:
            return {aid: w.oracle for aid, w in self._windows.items()}

    def _window(self, arena_id: str) -> _ArenaWindow:
        w = self._windows.get(arena_id)
        if w is None:
            raise ArenaNotFound(f"no oracle window for arena {arena_id}")
        return w

    def add_sample(self, arena_id: str, sample: FeedSample) -> bool:
        """Append a sample. Returns False if it is not newer than the latest held sample."""
        with self._lock:
            w = self._window(arena_id)
            if sample.feed_id != w.oracle.feed_id:
                log.warning("oracle_sample_feed_mismatch", arena_id=arena_id, expected=w.oracle.feed_id, got=sample.feed_id)
                return False
            if w.samples and sample.timestamp <= w.samples[-1].timestamp:
                return False
            w.samples.append(sample)
            cutoff = sample.timestamp - w.window_ms
            while w.samples and w.samples[0].timestamp < cutoff:
                w.samples.popleft()
            return True

    def window(self, arena_id: str) -> list[FeedSample]:
        with self._lock:
            return list(self._window(arena_id).samples)

    def resolve(self, arena_id: str, now: int) -> ResolutionValue:
        with self._lock:
            w = self._window(arena_id)
            samples = list(w.samples)
            oracle, window_ms = w.oracle, w.window_ms
        return resolve_window(arena_id, oracle, samples, window_ms, now)
