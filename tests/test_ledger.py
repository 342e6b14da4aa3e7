"""Staking ledger: validation order, totals, concurrency."""

import threading
from decimal import Decimal

import pytest

from arenaengine.errors import (
    AboveMaximumStake,
    ArenaNotOpen,
    BelowMinimumStake,
    InputValidationError,
    InvalidOption,
    PredictionWindowClosed,
)
from arenaengine.ledger import StakeBook, StakingLedger
from arenaengine.models import ArenaStatus, parse_amount
from arenaengine.models.money import split_amount

from conftest import T0


@pytest.fixture
def open_arena(make_arena):
    arena = make_arena()
    arena.status = ArenaStatus.ACTIVE
    arena.activated_ts = T0
    return arena


def test_parse_amount_accepts_display_strings():
    assert parse_amount("5 USDC") == Decimal("5")
    assert parse_amount("1,000.50 USDC") == Decimal("1000.50")
    assert parse_amount(7) == Decimal(7)
    assert parse_amount(0.1) == Decimal("0.1")
    with pytest.raises(ValueError):
        parse_amount("lots")
    with pytest.raises(ValueError):
        parse_amount(True)
    with pytest.raises(ValueError):
        parse_amount("5 USDC extra")


def test_amount_symbol_must_match_currency():
    assert split_amount("5 usdc") == (Decimal(5), "USDC")
    assert split_amount("5") == (Decimal(5), None)
    assert parse_amount("5 usdc", symbol="USDC") == Decimal(5)
    assert parse_amount(5, symbol="USDC") == Decimal(5)
    with pytest.raises(ValueError, match="expected USDC, got ETH"):
        parse_amount("5 ETH", symbol="USDC")


def test_stake_in_another_currency_is_rejected(open_arena):
    ledger = StakingLedger(currency_symbol="USDC")
    with pytest.raises(InputValidationError):
        ledger.record_stake(open_arena, "p1", "yes", "50 ETH", T0 + 1000)
    ledger.record_stake(open_arena, "p1", "yes", "50 USDC", T0 + 1000)
    assert ledger.book(open_arena.id).pool() == Decimal(50)


def test_stake_scenario_totals(open_arena):
    """min 5 / max 100: 3 fails, then 50 on yes and 20 on no."""
    ledger = StakingLedger()
    with pytest.raises(BelowMinimumStake):
        ledger.record_stake(open_arena, "p1", "yes", 3, T0 + 1000)
    ledger.record_stake(open_arena, "p1", "yes", 50, T0 + 2000)
    ledger.record_stake(open_arena, "p2", "no", "20 USDC", T0 + 3000)
    totals = ledger.totals(open_arena.id)
    assert totals["yes"].total_staked == Decimal(50)
    assert totals["yes"].participant_count == 1
    assert totals["no"].total_staked == Decimal(20)
    assert totals["no"].participant_count == 1
    assert ledger.pool(open_arena.id) == Decimal(70)


def test_above_maximum(open_arena):
    ledger = StakingLedger()
    with pytest.raises(AboveMaximumStake):
        ledger.record_stake(open_arena, "p1", "yes", "100.01", T0 + 1000)
    assert ledger.stakes(open_arena.id) == []


def test_bounds_are_inclusive(open_arena):
    ledger = StakingLedger()
    ledger.record_stake(open_arena, "p1", "yes", 5, T0 + 1000)
    ledger.record_stake(open_arena, "p1", "yes", 100, T0 + 1001)
    assert ledger.pool(open_arena.id) == Decimal(105)
    # same participant twice counts once
    assert ledger.totals(open_arena.id)["yes"].participant_count == 1


def test_unknown_option_rejected(open_arena):
    with pytest.raises(InvalidOption):
        StakingLedger().record_stake(open_arena, "p1", "maybe", 10, T0 + 1000)


def test_unparseable_amount_is_input_error(open_arena):
    with pytest.raises(InputValidationError):
        StakingLedger().record_stake(open_arena, "p1", "yes", "ten", T0 + 1000)


def test_pending_arena_is_not_open(make_arena):
    with pytest.raises(ArenaNotOpen):
        StakingLedger().record_stake(make_arena(), "p1", "yes", 10, T0)


@pytest.mark.parametrize("offset_sec", [600, 601, 3600, 86400 * 30])
def test_stake_after_window_always_fails(open_arena, offset_sec):
    ledger = StakingLedger()
    with pytest.raises(PredictionWindowClosed):
        ledger.record_stake(open_arena, "p1", "yes", 10, T0 + offset_sec * 1000)


def test_stake_on_closed_arena_fails(open_arena):
    open_arena.status = ArenaStatus.PREDICTION_CLOSED
    with pytest.raises(PredictionWindowClosed):
        StakingLedger().record_stake(open_arena, "p1", "yes", 10, T0 + 1000)


def test_on_stake_hook_sees_accepted_stakes_only(open_arena):
    seen = []
    ledger = StakingLedger(on_stake=seen.append)
    stake_id = ledger.record_stake(open_arena, "p1", "yes", 10, T0 + 1000)
    with pytest.raises(BelowMinimumStake):
        ledger.record_stake(open_arena, "p1", "yes", 1, T0 + 1000)
    assert [s.stake_id for s in seen] == [stake_id]
    assert stake_id.startswith("stk_")


def test_concurrent_stakes_keep_totals_consistent(open_arena):
    ledger = StakingLedger()
    per_thread = 50

    def worker(pid: str, option: str) -> None:
        for _ in range(per_thread):
            ledger.record_stake(open_arena, pid, option, "5.5", T0 + 1000)

    threads = [threading.Thread(target=worker, args=(f"p{i}", "yes" if i % 2 else "no")) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    totals = ledger.totals(open_arena.id)
    stakes = ledger.stakes(open_arena.id)
    assert len(stakes) == 8 * per_thread
    assert sum(t.total_staked for t in totals.values()) == sum(s.amount for s in stakes)
    assert totals["yes"].participant_count == 4


def test_totals_are_copies(open_arena):
    ledger = StakingLedger()
    ledger.record_stake(open_arena, "p1", "yes", 10, T0 + 1000)
    snapshot = ledger.totals(open_arena.id)
    ledger.record_stake(open_arena, "p2", "yes", 10, T0 + 2000)
    assert snapshot["yes"].total_staked == Decimal(10)


def test_book_rebuild_from_log_matches(open_arena):
    ledger = StakingLedger()
    ledger.record_stake(open_arena, "p1", "yes", 10, T0 + 1000)
    ledger.record_stake(open_arena, "p2", "no", 30, T0 + 2000)
    rebuilt = StakeBook.from_stakes(open_arena.id, ledger.stakes(open_arena.id))
    assert rebuilt.totals() == ledger.totals(open_arena.id)
    assert len(rebuilt) == 2
