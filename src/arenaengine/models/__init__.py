"""Canonical schema (Pydantic) - Arena, FeedSample, Stake, OddsSnapshot, Settlement."""

from arenaengine.models.arena import (
    Arena,
    ArenaStatus,
    MarketOracle,
    NumericBracket,
    Players,
    Predictions,
    PrizeStructure,
    PrizeTier,
    Rounds,
    ValidationRules,
)
from arenaengine.models.money import parse_amount
from arenaengine.models.odds import OddsSnapshot
from arenaengine.models.oracle import FeedInfo, FeedSample, ResolutionValue
from arenaengine.models.settlement import FeeBreakdown, Settlement
from arenaengine.models.stake import OptionTotals, Stake

__all__ = [
    "Arena",
    "ArenaStatus",
    "MarketOracle",
    "NumericBracket",
    "Players",
    "Predictions",
    "PrizeStructure",
    "PrizeTier",
    "Rounds",
    "ValidationRules",
    "FeedInfo",
    "FeedSample",
    "ResolutionValue",
    "Stake",
    "OptionTotals",
    "OddsSnapshot",
    "FeeBreakdown",
    "Settlement",
    "parse_amount",
]
