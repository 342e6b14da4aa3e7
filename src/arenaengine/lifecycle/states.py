"""Arena state graph. One-directional except the dispute_window self-loop."""

from __future__ import annotations

from arenaengine.models.arena import ArenaStatus as S

TRANSITIONS: dict[S, frozenset[S]] = {
    S.PENDING: frozenset({S.ACTIVE, S.CANCELLED}),
    S.ACTIVE: frozenset({S.PREDICTION_CLOSED, S.CANCELLED}),
    S.PREDICTION_CLOSED: frozenset({S.DISPUTE_WINDOW, S.CANCELLED}),
    S.DISPUTE_WINDOW: frozenset({S.DISPUTE_WINDOW, S.RESOLVED, S.RESOLUTION_FAILED, S.CANCELLED}),
    S.RESOLVED: frozenset({S.SETTLED}),
    S.SETTLED: frozenset(),
    S.CANCELLED: frozenset(),
    S.RESOLUTION_FAILED: frozenset({S.CANCELLED}),
}

# Cancellation outside these needs an admin
AUTO_CANCELLABLE = frozenset({S.PENDING, S.ACTIVE})
TERMINAL = frozenset({S.SETTLED, S.CANCELLED, S.RESOLUTION_FAILED})


def can_transition(current: S, target: S) -> bool:
    return target in TRANSITIONS[current]
