"""Payout computation for a resolved arena. Pure: same stakes + resolution -> same Settlement."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from arenaengine.match_types import PayoutMode
from arenaengine.models.arena import Arena
from arenaengine.models.money import quantize_down
from arenaengine.models.oracle import ResolutionValue
from arenaengine.models.settlement import FeeBreakdown, Settlement
from arenaengine.models.stake import Stake
from arenaengine.lifecycle.outcome import winning_options


def idempotency_key(arena_id: str, resolution: ResolutionValue) -> str:
    return f"{arena_id}:{resolution.digest()}"


def _pct(p: float) -> Decimal:
    return Decimal(str(p)) / Decimal(100)


def _pro_rata(amount: Decimal, weights: dict[str, Decimal]) -> dict[str, Decimal]:
    total = sum(weights.values(), Decimal(0))
    if total <= 0:
        return {}
    return {pid: amount * w / total for pid, w in weights.items()}


def _ranked(
    net_pool: Decimal,
    weights: dict[str, Decimal],
    first_ts: dict[str, int],
    tiers: list[tuple[int, float]],
) -> dict[str, Decimal]:
    """Pay tiers in rank order; tiers with nobody to claim them fold back pro rata."""
    ranking = sorted(weights, key=lambda pid: (-weights[pid], first_ts[pid], pid))
    payouts = {pid: Decimal(0) for pid in ranking}
    unclaimed = Decimal(0)
    for i, (_, pct) in enumerate(sorted(tiers)):
        share = net_pool * _pct(pct)
        if i < len(ranking):
            payouts[ranking[i]] += share
        else:
            unclaimed += share
    for pid, extra in _pro_rata(unclaimed, weights).items():
        payouts[pid] += extra
    return payouts


def compute_settlement(
    arena: Arena,
    stakes: Iterable[Stake],
    resolution: ResolutionValue,
    *,
    payout_mode: PayoutMode = "pool",
    precision: int = 6,
    now: int = 0,
) -> Settlement:
    """Deduct fees from the gross pool and distribute the rest to winning-option backers.

    If nobody backed a winning option every stake is refunded in full and no fee is taken.
    Amounts round down to `precision`; what rounding leaves behind is reported as dust.
    """
    stakes = list(stakes)
    winners = winning_options(arena, resolution)
    gross = sum((s.amount for s in stakes), Decimal(0))

    staked: dict[str, Decimal] = {}
    weights: dict[str, Decimal] = {}
    first_ts: dict[str, int] = {}
    for s in stakes:
        staked[s.participant_id] = staked.get(s.participant_id, Decimal(0)) + s.amount
        if s.option in winners and s.amount > 0:
            weights[s.participant_id] = weights.get(s.participant_id, Decimal(0)) + s.amount
            first_ts[s.participant_id] = min(first_ts.get(s.participant_id, s.timestamp), s.timestamp)

    if not weights:
        payouts = {pid: quantize_down(amount, precision) for pid, amount in staked.items()}
        return Settlement(
            arena_id=arena.id,
            idempotency_key=idempotency_key(arena.id, resolution),
            resolution=resolution,
            winning_options=winners,
            gross_pool=gross,
            net_pool=gross,
            payouts=payouts,
            dust=gross - sum(payouts.values(), Decimal(0)),
            refunded=True,
            settled_ts=now,
        )

    prize = arena.prize_structure
    fees = FeeBreakdown(
        platform=quantize_down(gross * _pct(prize.platform_fee), precision),
        referral=quantize_down(gross * _pct(prize.referral_reward), precision),
        community=quantize_down(gross * _pct(prize.community_incentive), precision),
    )
    net = gross - fees.total
    if payout_mode == "ranked" and prize.distribution:
        tiers = [(t.position, t.percentage) for t in prize.distribution]
        raw = _ranked(net, weights, first_ts, tiers)
    else:
        raw = _pro_rata(net, weights)
    payouts = {pid: quantize_down(amount, precision) for pid, amount in raw.items()}
    return Settlement(
        arena_id=arena.id,
        idempotency_key=idempotency_key(arena.id, resolution),
        resolution=resolution,
        winning_options=winners,
        gross_pool=gross,
        fees=fees,
        net_pool=net,
        payouts=payouts,
        dust=net - sum(payouts.values(), Decimal(0)),
        refunded=False,
        settled_ts=now,
    )
