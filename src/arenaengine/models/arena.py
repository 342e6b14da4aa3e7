"""Arena, MarketOracle, PrizeStructure - the arena configuration and its lifecycle state."""

from __future__ import annotations

import time
import uuid
from decimal import Decimal
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from arenaengine.models.money import Amount

OracleProvider = Literal["pyth", "chainlink", "switchboard"]
MatchTypeId = Literal["standard", "tournament", "survivor", "group", "points_based", "double_elim"]
PredictionScope = Literal["crypto_price", "sports_outcome", "event_result", "binary_outcome"]
PredictionType = Literal["binary", "numeric", "multi_choice"]


class ArenaStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    PREDICTION_CLOSED = "prediction_closed"
    DISPUTE_WINDOW = "dispute_window"
    RESOLVED = "resolved"
    SETTLED = "settled"
    CANCELLED = "cancelled"
    RESOLUTION_FAILED = "resolution_failed"


class _Model(BaseModel):
    """Accepts both snake_case and the frontend's camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MarketOracle(_Model):
    """Reference to an external feed. The arena never holds feed data itself."""

    provider: OracleProvider
    feed_id: str = Field(..., min_length=1)
    update_frequency: int = Field(..., gt=0, description="Seconds between provider updates")
    minimum_confidence: float = Field(..., ge=0, le=1)


class Rounds(_Model):
    current: int = Field(1, ge=1)
    total: int = Field(1, ge=1)
    time_per_round: int = Field(..., description="Seconds")


class Players(_Model):
    current: int = Field(0, ge=0)
    minimum: int
    maximum: int


class PrizeTier(_Model):
    position: int = Field(..., ge=1)
    percentage: float = Field(..., ge=0, le=100)


class PrizeStructure(_Model):
    total_pool: Amount = Decimal(0)
    distribution: list[PrizeTier] = Field(default_factory=list)
    platform_fee: float = Field(0.0, ge=0, le=100)
    referral_reward: float = Field(0.0, ge=0, le=100)
    community_incentive: float = Field(0.0, ge=0, le=100)

    @property
    def fee_percentage(self) -> float:
        return self.platform_fee + self.referral_reward + self.community_incentive


class ValidationRules(_Model):
    minimum_stake: Amount
    maximum_stake: Amount
    prediction_window: int = Field(..., gt=0, description="Seconds after activation")
    dispute_period: int = Field(..., ge=0, description="Seconds")


class PredictionRange(_Model):
    min: float
    max: float


class NumericBracket(_Model):
    """Numeric outcome option covering [min, max)."""

    option: str
    min: float
    max: float


class Predictions(_Model):
    type: PredictionType = "binary"
    options: list[str] = Field(default_factory=list)
    range: PredictionRange | None = None
    # binary: resolution value >= threshold resolves to the first option
    threshold: float | None = None
    brackets: list[NumericBracket] = Field(default_factory=list)

    def option_names(self) -> list[str]:
        if self.type == "numeric" and self.brackets:
            return [b.option for b in self.brackets]
        if self.type == "binary" and not self.options:
            return ["yes", "no"]
        return list(self.options)


def _arena_id() -> str:
    return uuid.uuid4().hex[:12]


def _now_ms() -> int:
    return int(time.time() * 1000)


class Arena(_Model):
    """One prediction competition instance."""

    id: str = Field(default_factory=_arena_id)
    name: str = ""
    creator: str = ""
    timestamp: int = Field(default_factory=_now_ms)
    match_type: MatchTypeId = "standard"
    prediction_scope: PredictionScope = "event_result"
    status: ArenaStatus = ArenaStatus.PENDING
    rounds: Rounds
    players: Players
    prize_structure: PrizeStructure
    entry_fee: Amount = Decimal(0)
    predictions: Predictions = Field(default_factory=Predictions)
    validation_rules: ValidationRules
    oracle: MarketOracle
    participants: list[str] = Field(default_factory=list)
    # Lifecycle bookkeeping (ms epoch)
    scheduled_start_ts: int | None = None
    registration_deadline_ts: int | None = None
    activated_ts: int | None = None
    prediction_closed_ts: int | None = None
    dispute_started_ts: int | None = None
    resolved_ts: int | None = None
    settled_ts: int | None = None
    cancelled_reason: str | None = None

    def prediction_window_end_ts(self) -> int | None:
        if self.activated_ts is None:
            return None
        return self.activated_ts + self.validation_rules.prediction_window * 1000
