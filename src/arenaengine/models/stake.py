"""Stake, OptionTotals - the ledger's records."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from arenaengine.models.money import Amount


class Stake(BaseModel):
    """A participant's wager on one outcome option. Never mutated after acceptance."""

    model_config = ConfigDict(frozen=True)

    stake_id: str
    arena_id: str
    participant_id: str
    option: str
    amount: Amount = Field(..., ge=0)
    timestamp: int


class OptionTotals(BaseModel):
    total_staked: Amount = Decimal(0)
    participant_count: int = 0
