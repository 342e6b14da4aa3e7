"""ArenaService - the engine's facade. Owns the arena registry and wires aggregator, ledger, odds and lifecycle."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

import structlog
from pydantic import ValidationError

from arenaengine.errors import ArenaConfigError, ArenaFull, ResolutionFailed
from arenaengine.ledger.engine import StakingLedger
from arenaengine.lifecycle.machine import ArenaLifecycle
from arenaengine.lifecycle.validation import ValidationResult, ensure_valid
from arenaengine.models.arena import Arena, ArenaStatus
from arenaengine.models.odds import OddsSnapshot
from arenaengine.models.oracle import FeedSample, ResolutionValue
from arenaengine.models.settlement import Settlement
from arenaengine.models.stake import OptionTotals
from arenaengine.odds.engine import OddsEngine
from arenaengine.oracle.aggregator import OracleAggregator
from arenaengine.oracle.base import now_ms
from arenaengine.oracle.catalog import FeedCatalog

if TYPE_CHECKING:
    from arenaengine.config.settings import Settings
    from arenaengine.storage.store import ArenaStore

log = structlog.get_logger(__name__)


def _config_errors(e: ValidationError) -> list[str]:
    return [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]


class ArenaService:
    """Request/response contracts over the engine. Time comes from `clock` (ms epoch)."""

    def __init__(
        self,
        *,
        catalog: FeedCatalog | None = None,
        store: ArenaStore | None = None,
        payout_sink: Callable[[Settlement], None] | None = None,
        clock: Callable[[], int] = now_ms,
        odds_lookback_sec: float = 300.0,
        odds_flat_epsilon_pct: float = 0.1,
        resolution_max_attempts: int = 5,
        resolution_backoff_base_sec: float = 5.0,
        resolution_backoff_max_sec: float = 300.0,
        currency_precision: int = 6,
        currency_symbol: str | None = None,
        registration_timeout_sec: int | None = None,
    ) -> None:
        self.catalog = catalog
        self.store = store
        self.clock = clock
        self.registration_timeout_sec = registration_timeout_sec
        self.aggregator = OracleAggregator()
        self.ledger = StakingLedger(
            on_stake=store.on_stake if store else None,
            currency_symbol=currency_symbol,
        )
        self.odds = OddsEngine(self.ledger, lookback_sec=odds_lookback_sec, flat_epsilon_pct=odds_flat_epsilon_pct)
        self.lifecycle = ArenaLifecycle(
            self.aggregator,
            self.ledger,
            max_attempts=resolution_max_attempts,
            backoff_base_sec=resolution_backoff_base_sec,
            backoff_max_sec=resolution_backoff_max_sec,
            precision=currency_precision,
            payout_sink=payout_sink,
            on_transition=store.on_transition if store else None,
            on_settlement=store.on_settlement if store else None,
            on_resolution=store.on_resolution if store else None,
        )
        self._arenas: dict[str, Arena] = {}

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        store: ArenaStore | None = None,
        payout_sink: Callable[[Settlement], None] | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> ArenaService:
        return cls(
            catalog=FeedCatalog.from_config(settings.feed_catalog),
            store=store,
            payout_sink=payout_sink,
            clock=clock,
            odds_lookback_sec=settings.odds_lookback_sec,
            odds_flat_epsilon_pct=settings.odds_flat_epsilon_pct,
            resolution_max_attempts=settings.resolution_max_attempts,
            resolution_backoff_base_sec=settings.resolution_backoff_base_sec,
            resolution_backoff_max_sec=settings.resolution_backoff_max_sec,
            currency_precision=settings.currency_precision,
            currency_symbol=settings.currency_symbol,
            registration_timeout_sec=settings.registration_timeout_sec,
        )

    def _save(self, arena: Arena) -> None:
        if self.store is not None:
            self.store.save_arena(arena)

    # --- arenas ---
    def create_arena(self, config: Arena | dict[str, Any]) -> tuple[Arena, ValidationResult]:
        """Validate and store an arena configuration. Raises ArenaConfigError on any error."""
        try:
            arena = config.model_copy(deep=True) if isinstance(config, Arena) else Arena.model_validate(config)
        except ValidationError as e:
            raise ArenaConfigError(_config_errors(e)) from e
        if arena.id in self._arenas:
            raise ArenaConfigError([f"arena {arena.id} already exists"])
        if arena.status != ArenaStatus.PENDING:
            raise ArenaConfigError([f"new arenas start pending, got {arena.status.value}"])
        result = ensure_valid(arena, self.catalog)
        now = self.clock()
        if arena.registration_deadline_ts is None and self.registration_timeout_sec:
            arena.registration_deadline_ts = now + self.registration_timeout_sec * 1000
        self.lifecycle.register(arena)
        self._arenas[arena.id] = arena
        self._save(arena)
        log.info("arena_created", arena_id=arena.id, match_type=arena.match_type, warnings=len(result.warnings))
        return arena.model_copy(deep=True), result

    def get_arena(self, arena_id: str) -> Arena:
        """Snapshot of the arena's current state."""
        rt = self.lifecycle.runtime(arena_id)
        with rt.lock:
            return rt.arena.model_copy(deep=True)

    def list_arenas(self, status: ArenaStatus | None = None) -> list[Arena]:
        arenas = [self.get_arena(aid) for aid in list(self._arenas)]
        if status is not None:
            arenas = [a for a in arenas if a.status == status]
        return arenas

    def join_arena(self, arena_id: str, participant_id: str) -> Arena:
        rt = self.lifecycle.runtime(arena_id)
        with rt.lock:
            arena = self.lifecycle.join(arena_id, participant_id, self.clock())
            self._save(arena)
            return arena.model_copy(deep=True)

    def start_arena(self, arena_id: str) -> Arena:
        return self.lifecycle.start(arena_id, self.clock()).model_copy(deep=True)

    def cancel_arena(self, arena_id: str, reason: str = "admin") -> Arena:
        return self.lifecycle.cancel(arena_id, self.clock(), reason=reason).model_copy(deep=True)

    # --- stakes and odds ---
    def submit_stake(self, arena_id: str, participant_id: str, option: str, amount: Any) -> str:
        """Record a stake, registering the participant on first stake."""
        rt = self.lifecycle.runtime(arena_id)
        with rt.lock:
            now = self.clock()
            # Let the lifecycle close the window first so a late stake sees the closed state
            self.lifecycle.tick(arena_id, now)
            arena = rt.arena
            newcomer = participant_id not in arena.participants
            if newcomer and arena.status == ArenaStatus.ACTIVE and arena.players.current >= arena.players.maximum:
                raise ArenaFull(f"arena {arena_id} is full", maximum=arena.players.maximum)
            stake_id = self.ledger.record_stake(arena, participant_id, option, amount, now)
            if newcomer:
                self.lifecycle.join(arena_id, participant_id, now)
            arena.prize_structure.total_pool = self.ledger.pool(arena_id)
            self._save(arena)
            return stake_id

    def get_totals(self, arena_id: str) -> dict[str, OptionTotals]:
        self.lifecycle.runtime(arena_id)
        return self.ledger.totals(arena_id)

    def get_odds(self, arena_id: str) -> dict[str, OddsSnapshot]:
        arena = self.get_arena(arena_id)
        return self.odds.compute_odds(arena, self.clock())

    def refresh_odds(self) -> None:
        """Recompute odds for every arena still taking stakes; drop history of finished ones."""
        now = self.clock()
        for arena in self.list_arenas():
            if arena.status == ArenaStatus.ACTIVE:
                self.odds.compute_odds(arena, now)
            elif arena.status in (ArenaStatus.SETTLED, ArenaStatus.CANCELLED):
                self.odds.forget(arena.id)

    # --- oracle and resolution ---
    def ingest_sample(self, arena_id: str, sample: FeedSample) -> bool:
        """Feed a sample to the arena's window. Finished arenas no longer take samples."""
        rt = self.lifecycle.runtime(arena_id)
        if rt.arena.status in (ArenaStatus.SETTLED, ArenaStatus.CANCELLED):
            return False
        accepted = self.aggregator.add_sample(arena_id, sample)
        if accepted and self.store is not None:
            self.store.on_sample(arena_id, sample)
        return accepted

    def get_resolution(self, arena_id: str) -> ResolutionValue | None:
        """Held resolution, or None while pending. Raises ResolutionFailed after retries ran out."""
        rt = self.lifecycle.runtime(arena_id)
        with rt.lock:
            if rt.arena.status == ArenaStatus.RESOLUTION_FAILED:
                raise ResolutionFailed(
                    f"arena {arena_id} could not be resolved after {rt.attempts} attempts",
                    last_error=rt.last_error,
                )
            return rt.resolution

    def uphold_dispute(self, arena_id: str, reason: str = "dispute upheld") -> Arena:
        return self.lifecycle.uphold_dispute(arena_id, self.clock(), reason).model_copy(deep=True)

    def settle(self, arena_id: str) -> Settlement:
        return self.lifecycle.settle(arena_id, self.clock())

    def get_settlement(self, arena_id: str) -> Settlement | None:
        return self.lifecycle.settlement(arena_id)

    # --- time ---
    def tick(self, arena_id: str | None = None) -> None:
        now = self.clock()
        if arena_id is not None:
            self.lifecycle.tick(arena_id, now)
        else:
            self.lifecycle.tick_all(now)

    def restore(self) -> int:
        """Reload arenas, stake logs, held resolutions and settlements. Returns the number of arenas restored."""
        if self.store is None:
            return 0
        state = self.store.load()
        for arena in state.arenas:
            self.ledger.load(arena.id, state.stakes.get(arena.id, []))
            self.lifecycle.restore(arena, state.resolutions.get(arena.id), state.settlements.get(arena.id))
            self._arenas[arena.id] = arena
        return len(state.arenas)
