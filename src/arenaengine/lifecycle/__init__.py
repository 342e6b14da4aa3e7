"""Arena lifecycle: validation, state machine, resolution and settlement."""

from arenaengine.lifecycle.machine import ArenaLifecycle, ArenaRuntime
from arenaengine.lifecycle.outcome import winning_options
from arenaengine.lifecycle.settlement import compute_settlement, idempotency_key
from arenaengine.lifecycle.validation import ValidationResult, ensure_valid, validate_arena

__all__ = [
    "ArenaLifecycle",
    "ArenaRuntime",
    "ValidationResult",
    "compute_settlement",
    "ensure_valid",
    "idempotency_key",
    "validate_arena",
    "winning_options",
]
