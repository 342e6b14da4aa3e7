"""OddsSnapshot - derived, never persisted as source of truth."""

from __future__ import annotations

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel

from arenaengine.models.money import Amount

Trend = Literal["up", "down", "flat"]


class OddsSnapshot(BaseModel):
    option: str
    value: float | None  # pool-implied multiplier; None without liquidity
    total_staked: Amount = Decimal(0)
    participant_count: int = 0
    trend: Trend = "flat"
    percentage_change: float | None = None
    insufficient_liquidity: bool = False
    timestamp: int = 0
