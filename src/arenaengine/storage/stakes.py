"""Stake log append and query."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterator

from arenaengine.models.stake import Stake

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection


def _row(stake: Stake) -> list[Any]:
    return [
        stake.stake_id,
        stake.arena_id,
        stake.participant_id,
        stake.option,
        str(stake.amount),
        stake.timestamp,
    ]


def append_stake(conn: DuckDBPyConnection, stake: Stake) -> None:
    """Append one stake. Amount is stored as text so no precision is lost."""
    conn.execute(
        """
        INSERT INTO stakes (stake_id, arena_id, participant_id, stake_option, amount, timestamp)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        _row(stake),
    )


def append_stakes_batch(conn: DuckDBPyConnection, stakes: list[Stake]) -> None:
    if not stakes:
        return
    conn.executemany(
        """
        INSERT INTO stakes (stake_id, arena_id, participant_id, stake_option, amount, timestamp)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        [_row(s) for s in stakes],
    )


def stream_stakes(
    conn: DuckDBPyConnection,
    arena_id: str | None = None,
    start_ts: int | None = None,
    end_ts: int | None = None,
) -> Iterator[Stake]:
    """Yield stakes in append order, optionally filtered by arena and time."""
    conditions = []
    params: list[Any] = []
    if arena_id:
        conditions.append("arena_id = ?")
        params.append(arena_id)
    if start_ts is not None:
        conditions.append("timestamp >= ?")
        params.append(start_ts)
    if end_ts is not None:
        conditions.append("timestamp <= ?")
        params.append(end_ts)
    where = " AND ".join(conditions) if conditions else "1=1"
    rows = conn.execute(
        f"SELECT stake_id, arena_id, participant_id, stake_option, amount, timestamp FROM stakes WHERE {where} ORDER BY seq ASC",
        params,
    ).fetchall()
    for stake_id, aid, participant_id, option, amount, ts in rows:
        yield Stake(
            stake_id=stake_id,
            arena_id=aid,
            participant_id=participant_id,
            option=option,
            amount=amount,
            timestamp=ts,
        )


def stake_stats(conn: DuckDBPyConnection) -> dict[str, Any]:
    """Total stake count, time range and count per arena."""
    total = conn.execute("SELECT COUNT(*) FROM stakes").fetchone()[0]
    min_ts, max_ts = conn.execute("SELECT MIN(timestamp), MAX(timestamp) FROM stakes").fetchone()
    by_arena = conn.execute(
        "SELECT arena_id, COUNT(*) AS cnt FROM stakes GROUP BY arena_id ORDER BY cnt DESC LIMIT 20"
    ).fetchall()
    return {
        "total_stakes": total,
        "min_ts": min_ts,
        "max_ts": max_ts,
        "by_arena": [{"arena_id": r[0], "count": r[1]} for r in by_arena],
    }
