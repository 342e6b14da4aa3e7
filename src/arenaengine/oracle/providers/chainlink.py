"""Chainlink data feeds, read through a gateway exposing latestRoundData as JSON."""

from __future__ import annotations

from typing import Any

from arenaengine.errors import OracleDataCorrupt
from arenaengine.models.oracle import FeedSample
from arenaengine.oracle.base import OracleAdapter, _float, _scaled, clamp_confidence


class ChainlinkAdapter(OracleAdapter):
    """GET /feeds/<feed> -> {answer, decimals, updatedAt, confidence?}."""

    provider = "chainlink"

    def __init__(self, base_url: str, *, default_confidence: float = 0.99, **kwargs: Any) -> None:
        super().__init__(base_url, **kwargs)
        self.default_confidence = default_confidence

    def request(self, feed_id: str) -> tuple[str, dict[str, Any]]:
        return f"/feeds/{feed_id}", {}

    def parse_payload(self, feed_id: str, payload: Any, received_ts: int) -> FeedSample:
        if not isinstance(payload, dict) or "answer" not in payload:
            raise OracleDataCorrupt("chainlink payload has no answer", feed_id=feed_id)
        answer = _float(payload.get("answer"))
        decimals = int(_float(payload.get("decimals", 0)))
        if decimals < 0:
            raise OracleDataCorrupt(f"negative decimals: {decimals}", feed_id=feed_id)
        value = _scaled(answer, -decimals)
        confidence = payload.get("confidence")
        confidence = self.default_confidence if confidence is None else _float(confidence)
        if not 0 <= confidence <= 1:
            raise OracleDataCorrupt(f"confidence out of range: {confidence}", feed_id=feed_id)
        updated_at = payload.get("updatedAt")
        timestamp = int(_float(updated_at) * 1000) if updated_at is not None else received_ts
        return FeedSample(
            provider="chainlink",
            feed_id=feed_id,
            value=value,
            confidence=clamp_confidence(confidence),
            timestamp=timestamp,
        )
