"""Deterministic replay of the stake log - rebuild totals and odds history from persisted stakes."""

from __future__ import annotations

from typing import Any

from arenaengine.ledger.book import StakeBook
from arenaengine.models.stake import OptionTotals
from arenaengine.storage.stakes import stream_stakes


def replay_stake_book(
    conn: Any,
    arena_id: str,
    start_ts: int | None = None,
    end_ts: int | None = None,
) -> StakeBook:
    """Rebuild a StakeBook from the log. Same log + params -> same totals."""
    return StakeBook.from_stakes(arena_id, stream_stakes(conn, arena_id=arena_id, start_ts=start_ts, end_ts=end_ts))


def replay_to_pool_series(conn: Any, arena_id: str) -> list[tuple[int, dict[str, OptionTotals]]]:
    """[(timestamp, totals after that stake), ...] in append order."""
    book = StakeBook(arena_id)
    out: list[tuple[int, dict[str, OptionTotals]]] = []
    for stake in stream_stakes(conn, arena_id=arena_id):
        book.append(stake)
        out.append((stake.timestamp, book.totals()))
    return out
