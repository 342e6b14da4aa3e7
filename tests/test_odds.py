"""Odds engine: pool-implied values, liquidity flag, trend against the lookback baseline."""

from decimal import Decimal

import pytest

from arenaengine.ledger import StakingLedger
from arenaengine.models import ArenaStatus
from arenaengine.odds import OddsEngine
from arenaengine.odds.engine import OddsHistory, classify_trend, implied_value

from conftest import T0


@pytest.fixture
def open_arena(make_arena):
    arena = make_arena()
    arena.status = ArenaStatus.ACTIVE
    arena.activated_ts = T0
    return arena


def test_scenario_odds(open_arena):
    ledger = StakingLedger()
    ledger.record_stake(open_arena, "p1", "yes", 50, T0 + 1000)
    ledger.record_stake(open_arena, "p2", "no", 20, T0 + 2000)
    odds = OddsEngine(ledger).compute_odds(open_arena, T0 + 3000)
    assert odds["yes"].value == pytest.approx(1.4)
    assert odds["no"].value == pytest.approx(3.5)
    assert odds["yes"].participant_count == 1
    assert not odds["yes"].insufficient_liquidity


def test_odds_times_stake_equals_pool(open_arena):
    ledger = StakingLedger()
    for i, (option, amount) in enumerate([("yes", "13.37"), ("no", "7"), ("yes", "41.1"), ("no", "99.99")]):
        ledger.record_stake(open_arena, f"p{i}", option, amount, T0 + 1000 + i)
    odds = OddsEngine(ledger).compute_odds(open_arena, T0 + 5000)
    pool = float(ledger.pool(open_arena.id))
    for option in ("yes", "no"):
        assert odds[option].value * float(odds[option].total_staked) == pytest.approx(pool)


def test_unstaked_option_has_no_value(open_arena):
    ledger = StakingLedger()
    ledger.record_stake(open_arena, "p1", "yes", 10, T0 + 1000)
    odds = OddsEngine(ledger).compute_odds(open_arena, T0 + 2000)
    assert odds["no"].value is None
    assert odds["no"].insufficient_liquidity
    assert odds["no"].trend == "flat"
    assert odds["yes"].value == pytest.approx(1.0)


def test_empty_arena_lists_every_option(open_arena):
    odds = OddsEngine(StakingLedger()).compute_odds(open_arena, T0)
    assert set(odds) == {"yes", "no"}
    assert all(o.insufficient_liquidity for o in odds.values())


def test_trend_against_lookback(open_arena):
    ledger = StakingLedger()
    engine = OddsEngine(ledger, lookback_sec=60, flat_epsilon_pct=0.1)
    ledger.record_stake(open_arena, "p1", "yes", 50, T0 + 1000)
    ledger.record_stake(open_arena, "p2", "no", 50, T0 + 1000)
    first = engine.compute_odds(open_arena, T0 + 2000)
    assert first["yes"].trend == "flat"
    ledger.record_stake(open_arena, "p3", "no", 100, T0 + 30_000)
    later = engine.compute_odds(open_arena, T0 + 70_000)
    # yes: 2.0 -> 4.0, no: 2.0 -> 1.333
    assert later["yes"].trend == "up"
    assert later["yes"].percentage_change == pytest.approx(100.0)
    assert later["no"].trend == "down"


def test_classify_trend_epsilon():
    assert classify_trend(2.0, 2.001, 0.1)[0] == "flat"
    assert classify_trend(2.1, 2.0, 0.1)[0] == "up"
    assert classify_trend(1.9, 2.0, 0.1)[0] == "down"
    assert classify_trend(None, 2.0, 0.1) == ("flat", None)


def test_history_baseline_prefers_entry_at_lookback():
    h = OddsHistory()
    h.push(0, {"a": 1.0})
    h.push(50_000, {"a": 2.0})
    h.push(90_000, {"a": 3.0})
    assert h.baseline(110_000, 60_000) == {"a": 2.0}
    assert h.baseline(10_000, 60_000) == {"a": 1.0}  # nothing old enough yet: oldest


def test_implied_value_zero_stake():
    assert implied_value(Decimal(10), Decimal(0)) is None
    assert implied_value(Decimal(10), Decimal(4)) == 2.5
