"""Switchboard on-demand feeds via the crossbar simulate endpoint."""

from __future__ import annotations

import statistics
from typing import Any

from arenaengine.errors import OracleDataCorrupt
from arenaengine.models.oracle import FeedSample
from arenaengine.oracle.base import OracleAdapter, _float, clamp_confidence


class SwitchboardAdapter(OracleAdapter):
    """GET /simulate/<feed> -> [{feedHash, results: [...]}]. Median value, stdev-based confidence."""

    provider = "switchboard"

    def request(self, feed_id: str) -> tuple[str, dict[str, Any]]:
        return f"/simulate/{feed_id}", {}

    def parse_payload(self, feed_id: str, payload: Any, received_ts: int) -> FeedSample:
        entries = payload if isinstance(payload, list) else [payload]
        entry = next((e for e in entries if isinstance(e, dict) and e.get("feedHash") == feed_id), None)
        if entry is None and len(entries) == 1 and isinstance(entries[0], dict):
            entry = entries[0]
        if entry is None:
            raise OracleDataCorrupt(f"switchboard payload has no entry for {feed_id}", feed_id=feed_id)
        raw_results = entry.get("results") or []
        if not isinstance(raw_results, list):
            raise OracleDataCorrupt("switchboard results is not a list", feed_id=feed_id)
        results = [_float(r) for r in raw_results]
        if not results:
            raise OracleDataCorrupt("switchboard entry has no results", feed_id=feed_id)
        median = statistics.median(results)
        spread = statistics.pstdev(results) if len(results) > 1 else 0.0
        confidence = clamp_confidence(1.0 - spread / abs(median)) if median else 0.0
        return FeedSample(
            provider="switchboard",
            feed_id=feed_id,
            value=median,
            confidence=confidence,
            timestamp=received_ts,
        )
