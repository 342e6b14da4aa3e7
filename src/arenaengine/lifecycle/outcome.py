"""Map a resolution value onto the arena's winning option(s)."""

from __future__ import annotations

import math

from arenaengine.models.arena import Arena
from arenaengine.models.oracle import ResolutionValue


def winning_options(arena: Arena, resolution: ResolutionValue) -> list[str]:
    """Return the options that won, or [] if the value matches none.

    binary: value >= threshold (default 0) picks the first option, otherwise the second.
    numeric: the bracket whose [min, max) contains the value.
    multi_choice: the option at index round(value).
    A non-finite value matches nothing.
    """
    p = arena.predictions
    options = p.option_names()
    value = resolution.value
    if not math.isfinite(value):
        return []
    if p.type == "binary":
        if len(options) != 2:
            return []
        threshold = p.threshold if p.threshold is not None else 0.0
        return [options[0] if value >= threshold else options[1]]
    if p.type == "numeric":
        return [b.option for b in p.brackets if b.min <= value < b.max]
    index = round(value)
    if 0 <= index < len(options):
        return [options[index]]
    return []
