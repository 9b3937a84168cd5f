"""
Numeric helpers shared by the scoring code.
"""

import math


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, with .5 always rounding up.

    Unlike round(), round_half_up(2.5) == 3.
    """
    return int(math.floor(value + 0.5))


def is_number(value) -> bool:
    """True for finite int/float values, excluding bools."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)
