"""Settlement - finalized payout mapping emitted at `settled`."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from arenaengine.models.money import Amount
from arenaengine.models.oracle import ResolutionValue


class FeeBreakdown(BaseModel):
    platform: Amount = Decimal(0)
    referral: Amount = Decimal(0)
    community: Amount = Decimal(0)

    @property
    def total(self) -> Decimal:
        return self.platform + self.referral + self.community


class Settlement(BaseModel):
    arena_id: str
    idempotency_key: str
    resolution: ResolutionValue
    winning_options: list[str] = Field(default_factory=list)
    gross_pool: Amount = Decimal(0)
    fees: FeeBreakdown = Field(default_factory=FeeBreakdown)
    net_pool: Amount = Decimal(0)
    payouts: dict[str, Amount] = Field(default_factory=dict)
    dust: Amount = Decimal(0)
    refunded: bool = False
    settled_ts: int = 0
