"""Integer percentages with half-away-from-zero rounding."""
import math


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero (12.5 -> 13, -2.5 -> -3).

    Python's built-in ``round`` rounds halves to even, which would report
    12 for 1 of 8 topics done.
    """
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def percentage(part: float, whole: float) -> int:
    """``round(part / whole * 100)``; an empty whole is 0%."""
    if not whole:
        return 0
    return round_half_away(part / whole * 100)
