"""Arena lifecycle state machine - rounds, prediction window, dispute window, resolution and settlement."""

from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock, RLock
from typing import Callable

import structlog

from arenaengine.errors import (
    ArenaFull,
    ArenaNotFound,
    ArenaNotOpen,
    InsufficientConfidence,
    InvalidTransition,
    StaleData,
)
from arenaengine.ledger.engine import StakingLedger
from arenaengine.lifecycle.settlement import compute_settlement, idempotency_key
from arenaengine.lifecycle.states import AUTO_CANCELLABLE, can_transition
from arenaengine.match_types import MATCH_TYPES
from arenaengine.models.arena import Arena, ArenaStatus
from arenaengine.models.oracle import ResolutionValue
from arenaengine.models.settlement import Settlement
from arenaengine.oracle.aggregator import OracleAggregator
from arenaengine.oracle.rate_limit import backoff_delay

log = structlog.get_logger(__name__)

TransitionHook = Callable[[Arena, ArenaStatus, ArenaStatus, int, str], None]


@dataclass
class ArenaRuntime:
    """Mutable per-arena lifecycle state. Only touched while holding `lock`."""

    arena: Arena
    lock: RLock = field(default_factory=RLock)
    resolution: ResolutionValue | None = None
    attempts: int = 0
    next_attempt_ts: int | None = None
    last_error: str | None = None
    settlement: Settlement | None = None


class ArenaLifecycle:
    """Drives arenas through their states on tick(now). Settlement runs at most once per arena."""

    def __init__(
        self,
        aggregator: OracleAggregator,
        ledger: StakingLedger,
        *,
        max_attempts: int = 5,
        backoff_base_sec: float = 5.0,
        backoff_max_sec: float = 300.0,
        precision: int = 6,
        payout_sink: Callable[[Settlement], None] | None = None,
        on_transition: TransitionHook | None = None,
        on_settlement: Callable[[Settlement], None] | None = None,
        on_resolution: Callable[[str, ResolutionValue | None], None] | None = None,
    ) -> None:
        self.aggregator = aggregator
        self.ledger = ledger
        self.max_attempts = max_attempts
        self.backoff_base_sec = backoff_base_sec
        self.backoff_max_sec = backoff_max_sec
        self.precision = precision
        self.payout_sink = payout_sink
        self.on_transition = on_transition
        self.on_settlement = on_settlement
        self.on_resolution = on_resolution
        self._runtimes: dict[str, ArenaRuntime] = {}
        self._settled_keys: dict[str, Settlement] = {}
        self._lock = Lock()

    # --- registry ---
    def register(self, arena: Arena) -> ArenaRuntime:
        with self._lock:
            if arena.id in self._runtimes:
                return self._runtimes[arena.id]
            rt = self._runtimes[arena.id] = ArenaRuntime(arena=arena)
        if arena.status == ArenaStatus.DISPUTE_WINDOW:
            # restored mid-dispute: resolve again on the next tick
            rt.next_attempt_ts = 0
        if arena.status not in (ArenaStatus.SETTLED, ArenaStatus.CANCELLED):
            self.aggregator.track(arena.id, arena.oracle, arena.validation_rules.dispute_period)
        return rt

    def restore(
        self,
        arena: Arena,
        resolution: ResolutionValue | None = None,
        settlement: Settlement | None = None,
    ) -> ArenaRuntime:
        """Register a stored arena together with its held resolution and settlement."""
        rt = self.register(arena)
        with rt.lock:
            rt.resolution = resolution
            if resolution is not None:
                rt.next_attempt_ts = None
            if settlement is not None:
                rt.settlement = settlement
                with self._lock:
                    self._settled_keys[settlement.idempotency_key] = settlement
        return rt

    def runtime(self, arena_id: str) -> ArenaRuntime:
        rt = self._runtimes.get(arena_id)
        if rt is None:
            raise ArenaNotFound(f"arena {arena_id} not found")
        return rt

    def arena_ids(self) -> list[str]:
        with self._lock:
            return list(self._runtimes)

    # --- transitions ---
    def _transition(self, rt: ArenaRuntime, target: ArenaStatus, now: int, reason: str = "") -> None:
        arena = rt.arena
        current = arena.status
        if not can_transition(current, target):
            raise InvalidTransition(f"arena {arena.id}: {current.value} -> {target.value} not allowed")
        arena.status = target
        if target == ArenaStatus.ACTIVE:
            arena.activated_ts = now
        elif target == ArenaStatus.PREDICTION_CLOSED:
            arena.prediction_closed_ts = now
        elif target == ArenaStatus.DISPUTE_WINDOW:
            arena.dispute_started_ts = now
        elif target == ArenaStatus.RESOLVED:
            arena.resolved_ts = now
        elif target == ArenaStatus.SETTLED:
            arena.settled_ts = now
        elif target == ArenaStatus.CANCELLED:
            arena.cancelled_reason = reason or None
        log.info("arena_transition", arena_id=arena.id, from_status=current.value, to_status=target.value, reason=reason)
        if target in (ArenaStatus.SETTLED, ArenaStatus.CANCELLED):
            self.aggregator.untrack(arena.id)
        if self.on_transition is not None:
            self.on_transition(arena, current, target, now, reason)

    def join(self, arena_id: str, participant_id: str, now: int) -> Arena:
        """Register a participant. Idempotent per participant; bounded by players.maximum."""
        rt = self.runtime(arena_id)
        with rt.lock:
            arena = rt.arena
            if arena.status not in (ArenaStatus.PENDING, ArenaStatus.ACTIVE):
                raise ArenaNotOpen(f"arena {arena_id} is {arena.status.value}")
            if participant_id in arena.participants:
                return arena
            if arena.players.current >= arena.players.maximum:
                raise ArenaFull(f"arena {arena_id} is full", maximum=arena.players.maximum)
            arena.participants.append(participant_id)
            arena.players.current += 1
            log.info("participant_joined", arena_id=arena_id, participant_id=participant_id, players=arena.players.current)
            return arena

    def start(self, arena_id: str, now: int) -> Arena:
        """Admin start. Requires the minimum player count."""
        rt = self.runtime(arena_id)
        with rt.lock:
            arena = rt.arena
            if arena.status != ArenaStatus.PENDING:
                raise InvalidTransition(f"arena {arena_id} is {arena.status.value}, not pending")
            if arena.players.current < arena.players.minimum:
                raise InvalidTransition(
                    f"arena {arena_id} has {arena.players.current}/{arena.players.minimum} players"
                )
            self._transition(rt, ArenaStatus.ACTIVE, now, "started")
            return arena

    def cancel(self, arena_id: str, now: int, reason: str = "admin", admin: bool = True) -> Arena:
        """Cancel an arena. Past `active` only an admin may cancel; a pending retry loop stops with it."""
        rt = self.runtime(arena_id)
        with rt.lock:
            arena = rt.arena
            if not admin and arena.status not in AUTO_CANCELLABLE:
                raise InvalidTransition(f"arena {arena_id} is {arena.status.value}; only an admin may cancel")
            self._transition(rt, ArenaStatus.CANCELLED, now, reason)
            rt.next_attempt_ts = None
            return arena

    def uphold_dispute(self, arena_id: str, now: int, reason: str = "dispute upheld") -> Arena:
        """A dispute succeeded: drop the held resolution and restart the dispute window."""
        rt = self.runtime(arena_id)
        with rt.lock:
            if rt.arena.status != ArenaStatus.DISPUTE_WINDOW:
                raise InvalidTransition(f"arena {arena_id} is not in its dispute window")
            rt.resolution = None
            rt.attempts = 0
            rt.last_error = None
            rt.next_attempt_ts = now
            if self.on_resolution is not None:
                self.on_resolution(arena_id, None)
            self._transition(rt, ArenaStatus.DISPUTE_WINDOW, now, reason)
            return rt.arena

    # --- resolution ---
    def _attempt_resolution(self, rt: ArenaRuntime, now: int) -> bool:
        arena = rt.arena
        rt.attempts += 1
        try:
            rt.resolution = self.aggregator.resolve(arena.id, now)
        except (InsufficientConfidence, StaleData) as e:
            rt.last_error = e.code
            if rt.attempts >= self.max_attempts:
                log.error("resolution_exhausted", arena_id=arena.id, attempts=rt.attempts, error=e.code)
                rt.next_attempt_ts = None
                self._transition(rt, ArenaStatus.RESOLUTION_FAILED, now, e.code)
                return True
            delay = backoff_delay(rt.attempts, self.backoff_base_sec, self.backoff_max_sec)
            rt.next_attempt_ts = now + int(delay * 1000)
            log.warning("resolution_retry_scheduled", arena_id=arena.id, attempt=rt.attempts, error=e.code, delay_sec=delay)
            return False
        rt.last_error = None
        rt.next_attempt_ts = None
        log.info("resolution_acquired", arena_id=arena.id, value=rt.resolution.value, confidence=rt.resolution.confidence)
        if self.on_resolution is not None:
            self.on_resolution(arena.id, rt.resolution)
        return True

    def resolution(self, arena_id: str) -> ResolutionValue | None:
        rt = self.runtime(arena_id)
        with rt.lock:
            return rt.resolution

    # --- settlement ---
    def settle(self, arena_id: str, now: int) -> Settlement:
        """Compute payouts once. Later calls return the stored settlement without disbursing again."""
        rt = self.runtime(arena_id)
        with rt.lock:
            if rt.settlement is not None:
                log.info("settlement_replayed", arena_id=arena_id, key=rt.settlement.idempotency_key)
                return rt.settlement
            arena = rt.arena
            if arena.status != ArenaStatus.RESOLVED or rt.resolution is None:
                raise InvalidTransition(f"arena {arena_id} is {arena.status.value}, not resolved")
            key = idempotency_key(arena.id, rt.resolution)
            with self._lock:
                existing = self._settled_keys.get(key)
            if existing is not None:
                rt.settlement = existing
                return existing
            match_type = MATCH_TYPES.get(arena.match_type)
            settlement = compute_settlement(
                arena,
                self.ledger.stakes(arena.id),
                rt.resolution,
                payout_mode=match_type.payout_mode if match_type else "pool",
                precision=self.precision,
                now=now,
            )
            with self._lock:
                self._settled_keys[key] = settlement
            rt.settlement = settlement
            self._transition(rt, ArenaStatus.SETTLED, now, "payouts computed")
            log.info(
                "settlement_completed",
                arena_id=arena_id,
                key=key,
                net_pool=str(settlement.net_pool),
                winners=len(settlement.payouts),
                refunded=settlement.refunded,
            )
            if self.on_settlement is not None:
                self.on_settlement(settlement)
            if self.payout_sink is not None:
                try:
                    self.payout_sink(settlement)
                except Exception:
                    log.exception("payout_sink_failed", arena_id=arena_id, key=key)
                    raise
            return settlement

    def settlement(self, arena_id: str) -> Settlement | None:
        rt = self.runtime(arena_id)
        with rt.lock:
            return rt.settlement

    # --- time-driven ---
    def _advance_rounds(self, arena: Arena, now: int) -> None:
        if arena.activated_ts is None:
            return
        elapsed = (now - arena.activated_ts) // 1000
        per_round = max(1, arena.rounds.time_per_round)
        current = min(arena.rounds.total, 1 + int(elapsed // per_round))
        if current > arena.rounds.current:
            arena.rounds.current = current
            log.info("arena_round_advanced", arena_id=arena.id, round=current, total=arena.rounds.total)

    def _step(self, rt: ArenaRuntime, now: int) -> bool:
        """Apply at most one transition. Returns True if anything changed."""
        arena = rt.arena
        status = arena.status
        if status == ArenaStatus.PENDING:
            enough = arena.players.current >= arena.players.minimum
            if arena.scheduled_start_ts is not None and now >= arena.scheduled_start_ts and enough:
                self._transition(rt, ArenaStatus.ACTIVE, now, "scheduled start")
                return True
            if arena.registration_deadline_ts is not None and now >= arena.registration_deadline_ts and not enough:
                self._transition(rt, ArenaStatus.CANCELLED, now, "registration deadline passed")
                return True
            return False
        if status == ArenaStatus.ACTIVE:
            self._advance_rounds(arena, now)
            window_end = arena.prediction_window_end_ts()
            if window_end is not None and now >= window_end:
                self._transition(rt, ArenaStatus.PREDICTION_CLOSED, now, "prediction window elapsed")
                return True
            return False
        if status == ArenaStatus.PREDICTION_CLOSED:
            self._transition(rt, ArenaStatus.DISPUTE_WINDOW, now, "awaiting resolution")
            rt.attempts = 0
            self._attempt_resolution(rt, now)
            return True
        if status == ArenaStatus.DISPUTE_WINDOW:
            if rt.resolution is None:
                if rt.next_attempt_ts is not None and now >= rt.next_attempt_ts:
                    return self._attempt_resolution(rt, now)
                return False
            started = arena.dispute_started_ts or now
            if now - started >= arena.validation_rules.dispute_period * 1000:
                self._transition(rt, ArenaStatus.RESOLVED, now, "dispute period elapsed")
                return True
            return False
        if status == ArenaStatus.RESOLVED:
            self.settle(arena.id, now)
            return True
        return False

    def tick(self, arena_id: str, now: int) -> ArenaStatus:
        """Advance one arena as far as `now` allows."""
        rt = self.runtime(arena_id)
        with rt.lock:
            for _ in range(len(ArenaStatus) + 1):
                if not self._step(rt, now):
                    break
            return rt.arena.status

    def tick_all(self, now: int) -> None:
        for arena_id in self.arena_ids():
            try:
                self.tick(arena_id, now)
            except Exception:
                log.exception("arena_tick_failed", arena_id=arena_id)
