"""
Safe Arithmetic Module
Every ratio, average and derived money value in SolarOps goes through here.

NaN and infinite values are replaced by 0.0 so they never reach the store
or a caller.
"""

import math


def safe_value(value) -> float:
    """
    Normalize a numeric value

    Args:
        value: Any int/float (None is treated as 0)

    Returns:
        The value as a float, or 0.0 if it is NaN, infinite or not numeric
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def safe_divide(numerator, denominator) -> float:
    """
    Divide two numbers, returning 0.0 for a zero denominator

    Args:
        numerator: Dividend
        denominator: Divisor

    Returns:
        The quotient, or 0.0 when it would be NaN or infinite
    """
    numerator = safe_value(numerator)
    denominator = safe_value(denominator)
    if denominator == 0.0:
        return 0.0
    return safe_value(numerator / denominator)


def safe_average(values) -> float:
    """Average of an iterable of numbers (0.0 when empty)."""
    values = [safe_value(v) for v in values]
    return safe_divide(sum(values), len(values))


def safe_percentage(part, whole) -> float:
    """part / whole expressed as a percentage."""
    return safe_value(safe_divide(part, whole) * 100)


def safe_sum(values) -> float:
    """Sum of an iterable of numbers with every term normalized."""
    return safe_value(sum(safe_value(v) for v in values))
