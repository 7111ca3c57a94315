"""
Number helpers shared by the formula engine and the aggregation labels.

Rounding here is "half toward positive infinity" (2.5 -> 3, -2.5 -> -2), which is
what badge consumers already display, rather than Python's banker's rounding.
"""

import math


def round_half_up(value: float, digits: int = 0) -> float:
    """
    Round to the nearest multiple of 10**-digits, halves toward +infinity.

    Args:
        value: Number to round
        digits: Decimal places to keep (default: 0)

    Returns:
        Rounded value as float, 0.0 for non-finite input, or the value itself
        when it is too large to scale (it has no fractional part at that size)

    Example:
        >>> round_half_up(66.666)
        67.0
        >>> round_half_up(-2.8)
        -3.0
        >>> round_half_up(5.333, 1)
        5.3
    """
    if not math.isfinite(value):
        return 0.0

    factor = 10**digits
    scaled = value * factor
    if not math.isfinite(scaled):
        return float(value)
    return math.floor(scaled + 0.5) / factor


def as_number(value: float) -> int | float:
    """Collapse integral floats to int so stored JSON reads 16 rather than 16.0"""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def format_number(value: float) -> str:
    """
    Render a number for a display label.

    Integral values drop the trailing ".0"; everything else uses the shortest
    round-tripping representation.

    Example:
        >>> format_number(16.0)
        '16'
        >>> format_number(5.3)
        '5.3'
    """
    return str(as_number(value))
