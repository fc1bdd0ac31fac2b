"""
Numeric helpers and trend calculator for the metric derivation core.

Every derivation service reads numbers from view rows through this module, so
the zero-denominator and null-handling policy lives in one place:

- coerce_numeric_or_zero(): None, NaN, +/-Inf, non-numeric strings and any
  other non-number become 0.0. Decimal (asyncpg NUMERIC) and numeric strings
  are converted to float.
- safe_ratio() / safe_percent(): numerator / denominator, 0.0 when the
  denominator is not positive.
- calculate_trend(): percent change with the zero-baseline policy
  trend(c, 0) = 100 if c > 0 else 0. Never returns Infinity or NaN.

Key Functions:
- coerce_numeric_or_zero, coerce_int_or_zero: row field coercion
- safe_ratio, safe_percent, clamp, round_half_up: arithmetic guards
- calculate_trend, trend_direction, percentage_point_delta: period comparison
- sum_field: total of one field over rows

Example:
    >>> calculate_trend(150, 100)
    50.0
    >>> calculate_trend(100, 0)
    100.0
    >>> safe_percent(11, 120)
    9.166666666666666
"""

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

import numpy as np

from clinic_metrics.models.enums import TrendDirection


# =============================================================================
# Coercion
# =============================================================================

def coerce_numeric_or_zero(value: Any) -> float:
    """
    Convert a row value to a finite float, or 0.0 when that is not possible.

    Args:
        value: Raw field value (None, int, float, Decimal, numpy scalar, str, ...).

    Returns:
        Finite float. Booleans map to 0.0/1.0.

    Example:
        >>> coerce_numeric_or_zero(None)
        0.0
        >>> coerce_numeric_or_zero("1500.5")
        1500.5
        >>> coerce_numeric_or_zero("abc")
        0.0
        >>> coerce_numeric_or_zero(float("nan"))
        0.0
    """
    if value is None:
        return 0.0
    if isinstance(value, (bool, np.bool_)):
        return 1.0 if value else 0.0

    if isinstance(value, (int, float, Decimal, np.number)):
        try:
            result = float(value)
        except (TypeError, ValueError, OverflowError):
            return 0.0
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            result = float(text)
        except ValueError:
            return 0.0
    else:
        return 0.0

    return result if math.isfinite(result) else 0.0


def coerce_int_or_zero(value: Any) -> int:
    """Coerce like coerce_numeric_or_zero, then truncate toward zero."""
    return int(coerce_numeric_or_zero(value))


def field(row: Mapping[str, Any], name: str) -> float:
    """Read and coerce one numeric field; missing fields read as 0.0."""
    return coerce_numeric_or_zero(row.get(name))


def sum_field(rows: Iterable[Mapping[str, Any]], name: str) -> float:
    """Sum one numeric field over rows after coercion."""
    return float(sum(field(row, name) for row in rows))


# =============================================================================
# Guarded Arithmetic
# =============================================================================

def safe_ratio(numerator: Any, denominator: Any) -> float:
    """
    numerator / denominator, or 0.0 when the denominator is not positive.

    Both arguments are coerced first, so None or garbage never raises.
    """
    num = coerce_numeric_or_zero(numerator)
    den = coerce_numeric_or_zero(denominator)
    return num / den if den > 0 else 0.0


def safe_percent(numerator: Any, denominator: Any) -> float:
    """numerator / denominator * 100, or 0.0 when the denominator is not positive."""
    return safe_ratio(numerator, denominator) * 100


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def round_half_up(value: Any, digits: int = 0) -> float:
    """
    Round half away from zero.

    Python's round() uses banker's rounding (round(12.5) == 12); dashboard
    figures round 12.5 to 13.

    Example:
        >>> round_half_up(12.5)
        13.0
        >>> round_half_up(86.25, 1)
        86.3
    """
    number = coerce_numeric_or_zero(value)
    quantum = Decimal(1).scaleb(-digits)
    try:
        return float(Decimal(repr(number)).quantize(quantum, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return number


# =============================================================================
# Trend Calculator
# =============================================================================

def calculate_trend(current: Any, previous: Any) -> float:
    """
    Percent change between two periods.

    Formula: (current - previous) / previous * 100

    Zero baseline: when previous == 0 the change is undefined, so the trend is
    100 if current > 0 and 0 otherwise.

    Args:
        current: Current period value.
        previous: Previous period value.

    Returns:
        Finite percent change.

    Example:
        >>> calculate_trend(0, 0)
        0.0
        >>> calculate_trend(50, 100)
        -50.0
    """
    cur = coerce_numeric_or_zero(current)
    prev = coerce_numeric_or_zero(previous)

    if prev == 0:
        return 100.0 if cur > 0 else 0.0

    trend = (cur - prev) / prev * 100
    # Overflow on extreme inputs
    return trend if math.isfinite(trend) else 0.0


def percentage_point_delta(current_rate: Any, previous_rate: Any) -> float:
    """Difference between two rates in percentage points (not a percent change)."""
    return coerce_numeric_or_zero(current_rate) - coerce_numeric_or_zero(previous_rate)


def trend_direction(trend: Any) -> TrendDirection:
    """Map a trend value to up/down/neutral."""
    value = coerce_numeric_or_zero(trend)
    if value > 0:
        return TrendDirection.UP
    if value < 0:
        return TrendDirection.DOWN
    return TrendDirection.NEUTRAL


def validate_unit_rate(rate: Any, name: str) -> float:
    """
    Coerce an estimation rate and require it to lie in [0, 1].

    Raises:
        ValueError: If the rate is outside [0, 1].
    """
    value = coerce_numeric_or_zero(rate)
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be within [0, 1], got {rate!r}")
    return value
