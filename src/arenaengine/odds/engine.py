"""Odds engine - pool-implied multipliers per option, with trend against a lookback snapshot."""

from __future__ import annotations

from collections import deque
from decimal import Decimal
from threading import Lock

import structlog

from arenaengine.ledger.engine import StakingLedger
from arenaengine.models.arena import Arena
from arenaengine.models.odds import OddsSnapshot, Trend
from arenaengine.models.stake import OptionTotals

log = structlog.get_logger(__name__)


def implied_value(pool: Decimal, option_total: Decimal) -> float | None:
    """pool / option stake. None when the option has no stake."""
    if option_total <= 0:
        return None
    return float(pool / option_total)


def classify_trend(current: float | None, previous: float | None, epsilon_pct: float) -> tuple[Trend, float | None]:
    """Return (trend, percentage change). Flat when either side is missing or within epsilon."""
    if current is None or previous is None or previous == 0:
        return "flat", None
    change = (current - previous) / previous * 100.0
    if abs(change) <= epsilon_pct:
        return "flat", change
    return ("up" if change > 0 else "down"), change


class OddsHistory:
    """Rolling per-arena history of computed values, trimmed to what one lookback needs."""

    def __init__(self, maxlen: int = 1000) -> None:
        self._entries: deque[tuple[int, dict[str, float | None]]] = deque(maxlen=maxlen)

    def push(self, ts: int, values: dict[str, float | None]) -> None:
        self._entries.append((ts, dict(values)))

    def baseline(self, now: int, lookback_ms: int) -> dict[str, float | None] | None:
        """Latest entry at least lookback old; the oldest entry if none is that old yet."""
        if not self._entries:
            return None
        cutoff = now - lookback_ms
        chosen = self._entries[0][1]
        for ts, values in self._entries:
            if ts > cutoff:
                break
            chosen = values
        return chosen

    def trim(self, now: int, lookback_ms: int) -> None:
        cutoff = now - lookback_ms
        while len(self._entries) >= 2 and self._entries[1][0] <= cutoff:
            self._entries.popleft()

    def __len__(self) -> int:
        return len(self._entries)


class OddsEngine:
    """Reads ledger totals, never mutates them."""

    def __init__(
        self,
        ledger: StakingLedger,
        lookback_sec: float = 300.0,
        flat_epsilon_pct: float = 0.1,
    ) -> None:
        self.ledger = ledger
        self.lookback_ms = int(lookback_sec * 1000)
        self.flat_epsilon_pct = flat_epsilon_pct
        self._history: dict[str, OddsHistory] = {}
        self._lock = Lock()

    def compute_odds(self, arena: Arena, now: int) -> dict[str, OddsSnapshot]:
        totals = self.ledger.totals(arena.id)
        options = arena.predictions.option_names()
        for option in totals:
            if option not in options:
                options.append(option)
        pool = sum((t.total_staked for t in totals.values()), Decimal(0))
        values = {
            option: implied_value(pool, totals.get(option, OptionTotals()).total_staked)
            for option in options
        }
        with self._lock:
            history = self._history.setdefault(arena.id, OddsHistory())
            baseline = history.baseline(now, self.lookback_ms) or {}
            history.push(now, values)
            history.trim(now, self.lookback_ms)
        out: dict[str, OddsSnapshot] = {}
        for option in options:
            t = totals.get(option, OptionTotals())
            trend, change = classify_trend(values[option], baseline.get(option), self.flat_epsilon_pct)
            out[option] = OddsSnapshot(
                option=option,
                value=values[option],
                total_staked=t.total_staked,
                participant_count=t.participant_count,
                trend=trend,
                percentage_change=round(change, 4) if change is not None else None,
                insufficient_liquidity=values[option] is None,
                timestamp=now,
            )
        log.debug("odds_computed", arena_id=arena.id, pool=str(pool), options=len(out))
        return out

    def forget(self, arena_id: str) -> None:
        with self._lock:
            self._history.pop(arena_id, None)
