"""ArenaStore - persists engine events (stakes, transitions, samples, settlements) to DuckDB."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock

import structlog

from arenaengine.models.arena import Arena, ArenaStatus
from arenaengine.models.oracle import FeedSample, ResolutionValue
from arenaengine.models.settlement import Settlement
from arenaengine.models.stake import Stake
from arenaengine.storage.arenas import (
    append_sample,
    append_transition,
    get_resolution,
    get_settlement,
    load_arenas,
    save_resolution,
    save_settlement,
    upsert_arena,
)
from arenaengine.storage.db import get_connection, init_schema
from arenaengine.storage.stakes import append_stake, stream_stakes

log = structlog.get_logger(__name__)


@dataclass
class StoredState:
    """Everything restart recovery needs, keyed by arena id."""

    arenas: list[Arena] = field(default_factory=list)
    stakes: dict[str, list[Stake]] = field(default_factory=dict)
    resolutions: dict[str, ResolutionValue] = field(default_factory=dict)
    settlements: dict[str, Settlement] = field(default_factory=dict)


class ArenaStore:
    """One connection, serialized writes. Hooks match the service's event callbacks."""

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self._conn = None
        self._lock = Lock()

    def _get_conn(self):
        if self._conn is None:
            self._conn = get_connection(self.db_path)
            init_schema(self._conn)
        return self._conn

    def save_arena(self, arena: Arena) -> None:
        with self._lock:
            upsert_arena(self._get_conn(), arena)

    def on_stake(self, stake: Stake) -> None:
        with self._lock:
            append_stake(self._get_conn(), stake)

    def on_transition(self, arena: Arena, from_status: ArenaStatus, to_status: ArenaStatus, now: int, reason: str) -> None:
        with self._lock:
            conn = self._get_conn()
            append_transition(conn, arena.id, from_status.value, to_status.value, reason, now)
            upsert_arena(conn, arena)

    def on_sample(self, arena_id: str, sample: FeedSample) -> None:
        with self._lock:
            append_sample(self._get_conn(), arena_id, sample)

    def on_resolution(self, arena_id: str, resolution: ResolutionValue | None) -> None:
        with self._lock:
            save_resolution(self._get_conn(), arena_id, resolution)

    def on_settlement(self, settlement: Settlement) -> None:
        with self._lock:
            save_settlement(self._get_conn(), settlement)

    def load(self) -> StoredState:
        """All stored arenas with their stake logs, held resolutions and settlements."""
        state = StoredState()
        with self._lock:
            conn = self._get_conn()
            state.arenas = load_arenas(conn)
            for a in state.arenas:
                state.stakes[a.id] = list(stream_stakes(conn, arena_id=a.id))
                resolution = get_resolution(conn, a.id)
                if resolution is not None:
                    state.resolutions[a.id] = resolution
                settlement = get_settlement(conn, a.id)
                if settlement is not None:
                    state.settlements[a.id] = settlement
        log.info(
            "store_loaded",
            arenas=len(state.arenas),
            stakes=sum(len(s) for s in state.stakes.values()),
            settlements=len(state.settlements),
        )
        return state

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
