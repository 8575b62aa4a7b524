from __future__ import annotations

import math
from typing import Dict, Optional

from ..models import Difficulty

# Fraction added to the working weight for each post-exercise rating
ADJUSTMENTS: Dict[Difficulty, float] = {
    Difficulty.EASY: 0.10,
    Difficulty.NORMAL: 0.05,
    Difficulty.HARD: 0.0,
    Difficulty.EXPERT: -0.05,
}

ROUNDING_STEP = 5


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def is_valid_weight(value: Optional[float]) -> bool:
    """True for a finite, non-negative weight. ``None`` (not set) counts as valid."""
    return value is None or (math.isfinite(value) and value >= 0)


def next_weight(current_weight: float, difficulty: Difficulty | str) -> int:
    """Recommended weight for the next time this exercise is performed.

    The adjustment for the rating is applied and the result is rounded to the
    nearest multiple of 5 (halves round up). A weight of 0 stays 0.

    Raises ValueError for negative or non-finite weights.
    """
    if not math.isfinite(current_weight) or current_weight < 0:
        raise ValueError(f"current weight must be a finite, non-negative number, got {current_weight!r}")
    adjustment = ADJUSTMENTS[Difficulty(difficulty)]
    new_weight = current_weight * (1 + adjustment)
    return round_half_up(new_weight / ROUNDING_STEP) * ROUNDING_STEP
