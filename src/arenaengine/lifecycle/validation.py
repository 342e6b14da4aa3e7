"""Arena configuration checks run at creation time. Errors reject, warnings are reported."""

from __future__ import annotations

from dataclasses import dataclass, field

from arenaengine.errors import ArenaConfigError
from arenaengine.match_types import MATCH_TYPES
from arenaengine.models.arena import Arena
from arenaengine.oracle.catalog import FeedCatalog

MIN_ROUND_SECONDS = 60
LONG_ROUND_SECONDS = 86400
LARGE_PLAYER_CAP = 10000


@dataclass
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _check_prize_structure(arena: Arena, result: ValidationResult) -> None:
    prize = arena.prize_structure
    if prize.total_pool < 0:
        result.errors.append("Prize pool cannot be negative")
    if not prize.distribution:
        result.errors.append("Prize distribution needs at least one tier")
        return
    positions = sorted(t.position for t in prize.distribution)
    if positions != list(range(1, len(positions) + 1)):
        result.errors.append("Prize tiers must be positions 1..n without gaps or repeats")
    total = sum(t.percentage for t in prize.distribution)
    if abs(total - 100.0) > 1e-9:
        # Unallocated remainder is a configuration error, not silently kept
        result.errors.append(f"Prize distribution must total 100% (got {total:g}%)")
    if prize.fee_percentage >= 100:
        result.errors.append("Fees must leave a positive share of the pool")


def _check_predictions(arena: Arena, result: ValidationResult) -> None:
    p = arena.predictions
    options = p.option_names()
    if len(options) != len(set(options)):
        result.errors.append("Prediction options must be unique")
    if p.type == "binary":
        if len(options) != 2:
            result.errors.append("Binary predictions need exactly two options")
        if p.threshold is None:
            result.warnings.append("Binary prediction has no threshold; resolution value >= 0 picks the first option")
    elif p.type == "multi_choice":
        if len(options) < 2:
            result.errors.append("Multiple choice predictions need at least two options")
    elif p.type == "numeric":
        if not p.brackets:
            result.errors.append("Numeric predictions need value brackets")
        for b in p.brackets:
            if b.min >= b.max:
                result.errors.append(f"Bracket {b.option} has min >= max")
        ordered = sorted(p.brackets, key=lambda b: b.min)
        for a, b in zip(ordered, ordered[1:]):
            if b.min < a.max:
                result.errors.append(f"Brackets {a.option} and {b.option} overlap")
        if p.range is not None and p.range.min >= p.range.max:
            result.errors.append("Prediction range min must be below max")


def validate_arena(arena: Arena, catalog: FeedCatalog | None = None) -> ValidationResult:
    """Check an arena configuration. Never raises; see ensure_valid."""
    result = ValidationResult()

    # Time rules
    if arena.rounds.time_per_round < MIN_ROUND_SECONDS:
        result.errors.append(f"Round duration must be at least {MIN_ROUND_SECONDS} seconds")
    if arena.rounds.time_per_round > LONG_ROUND_SECONDS:
        result.warnings.append("Long round duration may affect user engagement")
    if arena.rounds.current > arena.rounds.total:
        result.errors.append("Current round exceeds total rounds")

    # Player limits
    players = arena.players
    match_type = MATCH_TYPES.get(arena.match_type)
    if players.minimum < 2:
        result.errors.append("Minimum 2 players required")
    if players.maximum < players.minimum:
        result.errors.append("Maximum players must be at least the minimum")
    if players.maximum > LARGE_PLAYER_CAP:
        result.warnings.append("Large player cap may affect performance")
    if not 0 <= players.current <= players.maximum:
        result.errors.append("Current players must be between 0 and the maximum")
    if match_type is not None:
        if players.minimum < match_type.min_players:
            result.errors.append(f"{match_type.label} needs at least {match_type.min_players} players")
        if match_type.max_players is not None and players.maximum > match_type.max_players:
            result.errors.append(f"{match_type.label} allows at most {match_type.max_players} players")

    # Stake and entry fee
    rules = arena.validation_rules
    if rules.minimum_stake < 0:
        result.errors.append("Minimum stake cannot be negative")
    if rules.minimum_stake > rules.maximum_stake:
        result.errors.append("Minimum stake exceeds maximum stake")
    if arena.entry_fee < 0:
        result.errors.append("Entry fee cannot be negative")
    elif arena.entry_fee > 0 and arena.entry_fee < rules.minimum_stake:
        result.errors.append(f"Entry fee below minimum stake ({rules.minimum_stake})")
    if arena.entry_fee > rules.maximum_stake:
        result.errors.append(f"Entry fee above maximum stake ({rules.maximum_stake})")

    _check_prize_structure(arena, result)
    _check_predictions(arena, result)

    if catalog is not None and not catalog.is_known(arena.oracle.provider, arena.oracle.feed_id):
        result.errors.append(f"Unknown {arena.oracle.provider} feed: {arena.oracle.feed_id}")

    return result


def ensure_valid(arena: Arena, catalog: FeedCatalog | None = None) -> ValidationResult:
    """Raise ArenaConfigError if the arena has errors; return the result (with warnings) otherwise."""
    result = validate_arena(arena, catalog)
    if not result.is_valid:
        raise ArenaConfigError(result.errors, result.warnings)
    return result
