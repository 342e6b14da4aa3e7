"""DuckDB connection and schema init."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import duckdb

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

SCHEMA_SQL = """
CREATE SEQUENCE IF NOT EXISTS stake_seq START 1;
CREATE SEQUENCE IF NOT EXISTS sample_seq START 1;
CREATE SEQUENCE IF NOT EXISTS transition_seq START 1;

-- Stake log (append-only, source of truth for totals)
CREATE TABLE IF NOT EXISTS stakes (
    seq             BIGINT PRIMARY KEY DEFAULT nextval('stake_seq'),
    stake_id        VARCHAR NOT NULL UNIQUE,
    arena_id        VARCHAR NOT NULL,
    participant_id  VARCHAR NOT NULL,
    stake_option    VARCHAR NOT NULL,
    amount          VARCHAR NOT NULL,
    timestamp       BIGINT NOT NULL
);

-- Latest arena configuration and state
CREATE TABLE IF NOT EXISTS arenas (
    arena_id        VARCHAR PRIMARY KEY,
    name            VARCHAR,
    status          VARCHAR NOT NULL,
    match_type      VARCHAR NOT NULL,
    payload         JSON NOT NULL,
    updated_at      BIGINT NOT NULL
);

-- Oracle samples delivered to arenas
CREATE TABLE IF NOT EXISTS feed_samples (
    id              BIGINT PRIMARY KEY DEFAULT nextval('sample_seq'),
    arena_id        VARCHAR NOT NULL,
    provider        VARCHAR NOT NULL,
    feed_id         VARCHAR NOT NULL,
    value           DOUBLE NOT NULL,
    confidence      DOUBLE NOT NULL,
    timestamp       BIGINT NOT NULL
);

-- Lifecycle transitions (audit trail)
CREATE TABLE IF NOT EXISTS arena_transitions (
    id              BIGINT PRIMARY KEY DEFAULT nextval('transition_seq'),
    arena_id        VARCHAR NOT NULL,
    from_status     VARCHAR NOT NULL,
    to_status       VARCHAR NOT NULL,
    reason          VARCHAR,
    timestamp       BIGINT NOT NULL
);

-- Held resolution per arena (cleared when a dispute is upheld)
CREATE TABLE IF NOT EXISTS resolutions (
    arena_id        VARCHAR PRIMARY KEY,
    payload         JSON NOT NULL,
    updated_at      BIGINT NOT NULL
);

-- Settlements, one per idempotency key
CREATE TABLE IF NOT EXISTS settlements (
    idempotency_key VARCHAR PRIMARY KEY,
    arena_id        VARCHAR NOT NULL,
    payload         JSON NOT NULL,
    settled_at      BIGINT NOT NULL
);
"""


def get_connection(db_path: str | Path, read_only: bool = False) -> DuckDBPyConnection:
    """Return a DuckDB connection. Caller must close or use as context manager."""
    path = Path(db_path)
    if not read_only:
        path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path), read_only=read_only)


def init_schema(conn: DuckDBPyConnection) -> None:
    """Create tables and sequences if they do not exist."""
    for stmt in SCHEMA_SQL.split(";"):
        stmt = stmt.strip()
        if stmt:
            try:
                conn.execute(stmt)
            except duckdb.Error as e:
                if "already exists" not in str(e).lower():
                    raise
