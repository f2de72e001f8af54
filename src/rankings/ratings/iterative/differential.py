"""Score-margin to rating-points differential."""

from __future__ import annotations

from math import pi, sin

MIN_DIFFERENTIAL = 125.0
DIFFERENTIAL_RANGE = 475.0
CURVE_ANGLE = 0.4 * pi


class UndefinedDifferentialError(ValueError):
    """Raised when a score line has no defined differential (winning score of 1)."""


def compute_differential(losing_score: int, winning_score: int) -> float:
    """Map a game's scores onto the sine-shaped [125, 600] differential curve."""
    if winning_score == 1:
        raise UndefinedDifferentialError(
            f"differential is undefined for a winning score of 1 ({winning_score}-{losing_score})"
        )
    ratio = losing_score / (winning_score - 1)
    progress = min(1.0, (1.0 - ratio) / 0.5)
    return MIN_DIFFERENTIAL + (DIFFERENTIAL_RANGE * sin(progress * CURVE_ANGLE)) / sin(CURVE_ANGLE)


def has_defined_differential(winning_score: int) -> bool:
    return winning_score != 1


__all__ = [
    "UndefinedDifferentialError",
    "compute_differential",
    "has_defined_differential",
]
