"""Error taxonomy. Every error carries a machine-readable code reused by the API."""

from __future__ import annotations


class ArenaEngineError(Exception):
    """Base for all engine errors."""

    code = "engine_error"

    def __init__(self, message: str = "", **context: object) -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        self.context = context


class ArenaNotFound(ArenaEngineError):
    code = "not_found"


# --- Input validation: surfaced to the caller, never retried ---
class InputValidationError(ArenaEngineError):
    code = "invalid_input"


class BelowMinimumStake(InputValidationError):
    code = "below_minimum_stake"


class AboveMaximumStake(InputValidationError):
    code = "above_maximum_stake"


class PredictionWindowClosed(InputValidationError):
    code = "prediction_window_closed"


class UnknownFeed(InputValidationError):
    code = "unknown_feed"


class InvalidOption(InputValidationError):
    code = "invalid_option"


class ArenaNotOpen(InputValidationError):
    code = "arena_not_open"


class ArenaFull(InputValidationError):
    code = "arena_full"


# --- Transient infrastructure: retried with backoff ---
class TransientOracleError(ArenaEngineError):
    code = "oracle_transient"
    retryable = True


class OracleUnavailable(TransientOracleError):
    code = "oracle_unavailable"


# --- Data integrity ---
class DataIntegrityError(ArenaEngineError):
    code = "data_integrity"
    retryable = False


class OracleDataCorrupt(DataIntegrityError):
    code = "oracle_data_corrupt"


class InsufficientConfidence(DataIntegrityError):
    code = "insufficient_confidence"
    retryable = True


class StaleData(DataIntegrityError):
    code = "stale_data"
    retryable = True


class ResolutionFailed(DataIntegrityError):
    """Retries exhausted; the arena waits for an admin."""

    code = "resolution_failed"


# --- Invariant violations: configuration or programming errors ---
class InvariantViolation(ArenaEngineError):
    code = "invariant_violation"


class ArenaConfigError(InvariantViolation):
    """Arena configuration rejected at creation time."""

    code = "invalid_arena_config"

    def __init__(self, errors: list[str], warnings: list[str] | None = None) -> None:
        super().__init__("; ".join(errors) or "invalid arena configuration")
        self.errors = list(errors)
        self.warnings = list(warnings or [])


class InvalidTransition(InvariantViolation):
    code = "invalid_transition"
