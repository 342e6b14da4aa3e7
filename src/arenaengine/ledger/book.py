"""Per-arena stake book - append-only stake log with incrementally maintained totals."""

from __future__ import annotations

from decimal import Decimal
from threading import Lock
from typing import Iterable

import structlog

from arenaengine.models.stake import OptionTotals, Stake

log = structlog.get_logger(__name__)


class StakeBook:
    """Stakes for one arena. Writers serialize on the book lock; readers get copies."""

    __slots__ = ("arena_id", "_stakes", "_totals", "_backers", "_lock", "version")

    def __init__(self, arena_id: str) -> None:
        self.arena_id = arena_id
        self._stakes: list[Stake] = []
        # option -> running total / participant -> amount staked on that option
        self._totals: dict[str, Decimal] = {}
        self._backers: dict[str, dict[str, Decimal]] = {}
        self._lock = Lock()
        self.version = 0

    @property
    def lock(self) -> Lock:
        return self._lock

    def append(self, stake: Stake) -> None:
        """Append an accepted stake. Caller holds `lock` when validation must be atomic with the write."""
        if stake.arena_id != self.arena_id:
            log.warning("stake_arena_mismatch", expected=self.arena_id, got=stake.arena_id)
            return
        self._stakes.append(stake)
        self._totals[stake.option] = self._totals.get(stake.option, Decimal(0)) + stake.amount
        backers = self._backers.setdefault(stake.option, {})
        backers[stake.participant_id] = backers.get(stake.participant_id, Decimal(0)) + stake.amount
        self.version += 1

    @classmethod
    def from_stakes(cls, arena_id: str, stakes: Iterable[Stake]) -> StakeBook:
        """Rebuild a book from a stake log (replay). Same log -> same totals."""
        book = cls(arena_id)
        for stake in stakes:
            book.append(stake)
        return book

    def totals(self) -> dict[str, OptionTotals]:
        with self._lock:
            return {
                option: OptionTotals(total_staked=total, participant_count=len(self._backers.get(option, {})))
                for option, total in self._totals.items()
            }

    def pool(self) -> Decimal:
        with self._lock:
            return sum(self._totals.values(), Decimal(0))

    def stakes(self) -> list[Stake]:
        with self._lock:
            return list(self._stakes)

    def backers(self, option: str) -> dict[str, Decimal]:
        """participant -> total staked on option."""
        with self._lock:
            return dict(self._backers.get(option, {}))

    def __len__(self) -> int:
        return len(self._stakes)
