"""Pyth Hermes price feeds."""

from __future__ import annotations

from typing import Any

from arenaengine.errors import OracleDataCorrupt
from arenaengine.models.oracle import FeedSample
from arenaengine.oracle.base import OracleAdapter, _float, _scaled, clamp_confidence


class PythAdapter(OracleAdapter):
    """GET /v2/updates/price/latest?ids[]=<feed>. Confidence derived from the conf interval."""

    provider = "pyth"

    def request(self, feed_id: str) -> tuple[str, dict[str, Any]]:
        return "/v2/updates/price/latest", {"ids[]": feed_id, "parsed": "true"}

    def parse_payload(self, feed_id: str, payload: Any, received_ts: int) -> FeedSample:
        if not isinstance(payload, dict):
            raise OracleDataCorrupt("pyth payload is not an object", feed_id=feed_id)
        parsed = payload.get("parsed") or []
        if not isinstance(parsed, list):
            raise OracleDataCorrupt("pyth parsed field is not a list", feed_id=feed_id)
        entry = None
        for item in parsed:
            if isinstance(item, dict) and str(item.get("id", "")).lower().removeprefix("0x") == feed_id.lower().removeprefix("0x"):
                entry = item
                break
        if entry is None:
            raise OracleDataCorrupt(f"pyth payload has no entry for {feed_id}", feed_id=feed_id)
        price = entry.get("price")
        if not isinstance(price, dict):
            raise OracleDataCorrupt("pyth entry has no price", feed_id=feed_id)
        raw_price = _float(price.get("price"))
        conf = _float(price.get("conf"))
        expo = int(_float(price.get("expo")))
        publish_time = price.get("publish_time")
        value = _scaled(raw_price, expo)
        confidence = clamp_confidence(1.0 - conf / abs(raw_price)) if raw_price else 0.0
        timestamp = int(_float(publish_time) * 1000) if publish_time is not None else received_ts
        return FeedSample(
            provider="pyth",
            feed_id=feed_id,
            value=value,
            confidence=confidence,
            timestamp=timestamp,
        )
