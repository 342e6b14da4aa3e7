"""Arena snapshots, transitions, feed samples and settlements."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from arenaengine.models.arena import Arena
from arenaengine.models.oracle import FeedSample, ResolutionValue
from arenaengine.models.settlement import Settlement

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection


def upsert_arena(conn: DuckDBPyConnection, arena: Arena) -> None:
    conn.execute(
        """
        INSERT INTO arenas (arena_id, name, status, match_type, payload, updated_at)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT (arena_id) DO UPDATE SET
            name = excluded.name,
            status = excluded.status,
            match_type = excluded.match_type,
            payload = excluded.payload,
            updated_at = excluded.updated_at
        """,
        [
            arena.id,
            arena.name,
            arena.status.value,
            arena.match_type,
            arena.model_dump_json(by_alias=True),
            int(time.time() * 1000),
        ],
    )


def load_arenas(conn: DuckDBPyConnection) -> list[Arena]:
    rows = conn.execute("SELECT payload FROM arenas ORDER BY updated_at").fetchall()
    return [Arena.model_validate_json(r[0]) for r in rows]


def append_transition(
    conn: DuckDBPyConnection,
    arena_id: str,
    from_status: str,
    to_status: str,
    reason: str,
    timestamp: int,
) -> None:
    conn.execute(
        "INSERT INTO arena_transitions (arena_id, from_status, to_status, reason, timestamp) VALUES (?, ?, ?, ?, ?)",
        [arena_id, from_status, to_status, reason, timestamp],
    )


def list_transitions(conn: DuckDBPyConnection, arena_id: str) -> list[dict]:
    rows = conn.execute(
        "SELECT from_status, to_status, reason, timestamp FROM arena_transitions WHERE arena_id = ? ORDER BY id",
        [arena_id],
    ).fetchall()
    columns = ["from_status", "to_status", "reason", "timestamp"]
    return [dict(zip(columns, r)) for r in rows]


def append_sample(conn: DuckDBPyConnection, arena_id: str, sample: FeedSample) -> None:
    conn.execute(
        "INSERT INTO feed_samples (arena_id, provider, feed_id, value, confidence, timestamp) VALUES (?, ?, ?, ?, ?, ?)",
        [arena_id, sample.provider, sample.feed_id, sample.value, sample.confidence, sample.timestamp],
    )


def save_settlement(conn: DuckDBPyConnection, settlement: Settlement) -> None:
    """Insert once per idempotency key; a repeated key is ignored."""
    conn.execute(
        """
        INSERT INTO settlements (idempotency_key, arena_id, payload, settled_at) VALUES (?, ?, ?, ?)
        ON CONFLICT (idempotency_key) DO NOTHING
        """,
        [settlement.idempotency_key, settlement.arena_id, settlement.model_dump_json(), settlement.settled_ts],
    )


def get_settlement(conn: DuckDBPyConnection, arena_id: str) -> Settlement | None:
    row = conn.execute(
        "SELECT payload FROM settlements WHERE arena_id = ? ORDER BY settled_at LIMIT 1", [arena_id]
    ).fetchone()
    if not row:
        return None
    return Settlement.model_validate_json(row[0])


def save_resolution(conn: DuckDBPyConnection, arena_id: str, resolution: ResolutionValue | None) -> None:
    """Store the held resolution, or delete it when cleared."""
    if resolution is None:
        conn.execute("DELETE FROM resolutions WHERE arena_id = ?", [arena_id])
        return
    conn.execute(
        """
        INSERT INTO resolutions (arena_id, payload, updated_at) VALUES (?, ?, ?)
        ON CONFLICT (arena_id) DO UPDATE SET payload = excluded.payload, updated_at = excluded.updated_at
        """,
        [arena_id, resolution.model_dump_json(), int(time.time() * 1000)],
    )


def get_resolution(conn: DuckDBPyConnection, arena_id: str) -> ResolutionValue | None:
    row = conn.execute("SELECT payload FROM resolutions WHERE arena_id = ?", [arena_id]).fetchone()
    if not row:
        return None
    return ResolutionValue.model_validate_json(row[0])
