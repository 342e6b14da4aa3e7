"""Competition formats and their player bounds / payout rules."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

from arenaengine.models.arena import MatchTypeId

# pool: winning-option backers share the net pool pro rata.
# ranked: winning backers are ranked and paid by prizeStructure.distribution tiers.
PayoutMode = Literal["pool", "ranked"]


class MatchType(BaseModel):
    id: MatchTypeId
    label: str
    description: str
    rounds: Literal["fixed", "variable"]
    elimination_rules: str
    scoring_mechanism: str
    winners: str
    payout_mode: PayoutMode
    min_players: int
    max_players: int | None = None


MATCH_TYPES: dict[str, MatchType] = {
    m.id: m
    for m in [
        MatchType(
            id="standard",
            label="Standard",
            description="Head-to-head prediction battles",
            rounds="fixed",
            elimination_rules="single elimination",
            scoring_mechanism="elimination",
            winners="single winner",
            payout_mode="pool",
            min_players=2,
            max_players=2,
        ),
        MatchType(
            id="tournament",
            label="Tournament",
            description="Bracketed tournament format",
            rounds="variable",
            elimination_rules="bracket elimination",
            scoring_mechanism="bracket",
            winners="tiered prizes",
            payout_mode="ranked",
            min_players=8,
            max_players=32,
        ),
        MatchType(
            id="survivor",
            label="Survivor",
            description="Last predictors standing split the pool",
            rounds="variable",
            elimination_rules="eliminated on a wrong call",
            scoring_mechanism="threshold",
            winners="all survivors",
            payout_mode="pool",
            min_players=2,
            max_players=1000,
        ),
        MatchType(
            id="group",
            label="Group",
            description="Group-based competitions",
            rounds="fixed",
            elimination_rules="group stage",
            scoring_mechanism="group_points",
            winners="top performers",
            payout_mode="ranked",
            min_players=4,
            max_players=16,
        ),
        MatchType(
            id="points_based",
            label="Points Based",
            description="Cumulative points across rounds",
            rounds="fixed",
            elimination_rules="none",
            scoring_mechanism="cumulative",
            winners="top scorers",
            payout_mode="ranked",
            min_players=2,
            max_players=10000,
        ),
        MatchType(
            id="double_elim",
            label="Double Elimination",
            description="Double elimination tournament",
            rounds="variable",
            elimination_rules="double elimination",
            scoring_mechanism="double_chance",
            winners="bracket winner",
            payout_mode="pool",
            min_players=4,
            max_players=16,
        ),
    ]
}


def get_match_type(match_type_id: str) -> MatchType:
    try:
        return MATCH_TYPES[match_type_id]
    except KeyError:
        raise KeyError(f"unknown match type: {match_type_id}") from None
