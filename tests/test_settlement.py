"""Settlement math and outcome mapping."""

from decimal import Decimal

import pytest

from arenaengine.lifecycle import compute_settlement, idempotency_key, winning_options
from arenaengine.models import ResolutionValue, Stake

from conftest import T0


def _resolution(value: float, arena_id: str = "arena-btc") -> ResolutionValue:
    return ResolutionValue(
        arena_id=arena_id,
        provider="pyth",
        feed_id="btc-usd",
        value=value,
        confidence=0.99,
        sample_count=3,
        timestamp=T0,
    )


def _stake(pid: str, option: str, amount: str, ts: int = T0, arena_id: str = "arena-btc") -> Stake:
    return Stake(
        stake_id=f"stk_{pid}_{ts}",
        arena_id=arena_id,
        participant_id=pid,
        option=option,
        amount=amount,
        timestamp=ts,
    )


def test_binary_outcome_uses_threshold(make_arena):
    arena = make_arena()
    assert winning_options(arena, _resolution(60000.0)) == ["yes"]
    assert winning_options(arena, _resolution(59999.99)) == ["no"]


def test_numeric_outcome_uses_half_open_brackets(make_arena):
    arena = make_arena(
        predictions={
            "type": "numeric",
            "options": [],
            "threshold": None,
            "brackets": [
                {"option": "low", "min": 0, "max": 50000},
                {"option": "high", "min": 50000, "max": 100000},
            ],
        }
    )
    assert winning_options(arena, _resolution(50000.0)) == ["high"]
    assert winning_options(arena, _resolution(49999.0)) == ["low"]
    assert winning_options(arena, _resolution(100000.0)) == []


def test_multi_choice_outcome_by_index(make_arena):
    arena = make_arena(predictions={"type": "multi_choice", "options": ["a", "b", "c"], "threshold": None})
    assert winning_options(arena, _resolution(1.2)) == ["b"]
    assert winning_options(arena, _resolution(7)) == []


def test_pool_payout_is_pro_rata_after_fees(make_arena):
    arena = make_arena(prizeStructure={"platformFee": 2.5, "referralReward": 1, "communityIncentive": 0.5})
    stakes = [_stake("p1", "yes", "30"), _stake("p2", "yes", "10"), _stake("p3", "no", "60")]
    s = compute_settlement(arena, stakes, _resolution(61000.0), payout_mode="pool", precision=6, now=T0)
    assert s.gross_pool == Decimal(100)
    assert s.fees.platform == Decimal("2.5")
    assert s.fees.referral == Decimal("1")
    assert s.fees.community == Decimal("0.5")
    assert s.net_pool == Decimal(96)
    assert s.payouts == {"p1": Decimal(72), "p2": Decimal(24)}
    assert s.dust == Decimal(0)
    assert not s.refunded


def test_rounding_down_reports_dust(make_arena):
    arena = make_arena()
    stakes = [_stake(p, "yes", "10") for p in ("p1", "p2", "p3")] + [_stake("p4", "no", "10")]
    s = compute_settlement(arena, stakes, _resolution(61000.0), precision=2)
    assert all(v == Decimal("13.33") for v in s.payouts.values())
    assert s.dust == Decimal("0.01")
    assert sum(s.payouts.values()) + s.dust == s.net_pool


def test_no_winning_backers_refunds_everyone_without_fees(make_arena):
    arena = make_arena(prizeStructure={"platformFee": 5})
    stakes = [_stake("p1", "no", "20"), _stake("p2", "no", "5.5")]
    s = compute_settlement(arena, stakes, _resolution(70000.0))
    assert s.refunded
    assert s.fees.total == Decimal(0)
    assert s.payouts == {"p1": Decimal(20), "p2": Decimal("5.5")}


def test_ranked_payout_follows_tiers(make_arena):
    arena = make_arena(
        matchType="tournament",
        players={"minimum": 8, "maximum": 32},
        prizeStructure={"distribution": [{"position": 1, "percentage": 60}, {"position": 2, "percentage": 40}]},
    )
    stakes = [
        _stake("p1", "yes", "10", ts=T0 + 2),
        _stake("p2", "yes", "30", ts=T0 + 3),
        _stake("p3", "yes", "10", ts=T0 + 1),
        _stake("p4", "no", "50", ts=T0),
    ]
    s = compute_settlement(arena, stakes, _resolution(61000.0), payout_mode="ranked")
    # p2 ranks first by stake; p3 beats p1 on the earlier stake
    assert s.payouts["p2"] == Decimal(60)
    assert s.payouts["p3"] == Decimal(40)
    assert s.payouts["p1"] == Decimal(0)


def test_ranked_unclaimed_tiers_fold_back_pro_rata(make_arena):
    arena = make_arena(
        matchType="tournament",
        players={"minimum": 8, "maximum": 32},
        prizeStructure={
            "distribution": [
                {"position": 1, "percentage": 50},
                {"position": 2, "percentage": 30},
                {"position": 3, "percentage": 20},
            ]
        },
    )
    stakes = [_stake("p1", "yes", "30"), _stake("p2", "yes", "10", ts=T0 + 1), _stake("p3", "no", "60")]
    s = compute_settlement(arena, stakes, _resolution(61000.0), payout_mode="ranked")
    # tier 3 (20) has no claimant: 15 to p1, 5 to p2
    assert s.payouts == {"p1": Decimal(65), "p2": Decimal(35)}


def test_settlement_is_deterministic(make_arena):
    arena = make_arena()
    stakes = [_stake("p1", "yes", "7.77"), _stake("p2", "no", "3")]
    a = compute_settlement(arena, stakes, _resolution(61000.0), now=T0)
    b = compute_settlement(arena, list(reversed(stakes)), _resolution(61000.0), now=T0)
    assert a == b
    assert a.idempotency_key == idempotency_key("arena-btc", _resolution(61000.0))


@pytest.mark.parametrize("value", [0.0, 59999.0, 60000.0, 1e9])
def test_payouts_never_exceed_net_pool(make_arena, value):
    arena = make_arena(prizeStructure={"platformFee": 3})
    stakes = [_stake("p1", "yes", "33.333333"), _stake("p2", "no", "66.666667"), _stake("p3", "yes", "11")]
    s = compute_settlement(arena, stakes, _resolution(value))
    assert sum(s.payouts.values()) <= s.net_pool
    assert s.dust >= 0


@pytest.mark.parametrize("value", [float("nan"), float("inf")])
def test_non_finite_value_has_no_winner(make_arena, value):
    arena = make_arena(predictions={"type": "multi_choice", "options": ["a", "b", "c"], "threshold": None})
    # model_construct skips validation, as a value restored from elsewhere would
    resolution = ResolutionValue.model_construct(**dict(_resolution(1.0), value=value))
    assert winning_options(arena, resolution) == []
    assert winning_options(make_arena(), resolution) == []
