"""
Formatting primitives and color-threshold classifiers for dashboard values.

Number formatting follows es-AR conventions: "." groups thousands and ","
separates decimals. Amounts are Argentine pesos shown with a "$" sign.

Formatting never raises: None and malformed inputs are coerced to 0, or
rendered as the "N/A" placeholder where a missing value is meaningful (days
since last payment, dates).

Key Functions:
- format_currency(): compact amounts ($1.2M, $450K, $ 950)
- format_currency_full(): full amounts ($ 1.234.567)
- format_percent(), format_number(), format_days()
- format_date(), format_date_short(), format_month_year(), month_key(), parse_local_date()
- classify_rate(), classify_days_since(), classify_heatmap_rate(),
  classify_occupancy(), occupancy_tag(): value -> ThresholdTag / OccupancyLevel
- risk_badge_tag(), priority_badge_tag(): label -> ThresholdTag (gray fallback)

Named Thresholds:
- CONVERSION_THRESHOLDS: >= 30 good, >= 15 warning
- ATTENDANCE_THRESHOLDS: >= 70 good, >= 50 warning
- COLLECTION_RATE_THRESHOLDS: >= 80 good, >= 60 warning
- COLLECTION_TARGET_THRESHOLDS: >= 90 good, >= 80 warning
- CANCELLATION_THRESHOLDS / NO_SHOW_THRESHOLDS: < 15 good, < 30 warning
- FUNNEL_CONVERSION_THRESHOLDS: >= 70 good
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional, Union

from clinic_metrics.models.enums import (
    ContactPriority,
    OccupancyLevel,
    RiskSegment,
    ThresholdTag,
)
from clinic_metrics.services.metrics import coerce_numeric_or_zero, round_half_up


# =============================================================================
# CONSTANTS
# =============================================================================

NA_PLACEHOLDER = "N/A"

MONTH_ABBREVIATIONS = {
    1: "ene", 2: "feb", 3: "mar", 4: "abr", 5: "may", 6: "jun",
    7: "jul", 8: "ago", 9: "sep", 10: "oct", 11: "nov", 12: "dic",
}

DateLike = Union[date, datetime, str, None]


@dataclass(frozen=True)
class RateThresholds:
    """
    Good/warning cut-offs for a rate.

    higher_is_better=True:  value >= good -> good, value >= warning -> warning
    higher_is_better=False: value < good -> good, value < warning -> warning
    Anything else is bad.
    """
    good: float
    warning: float
    higher_is_better: bool = True


CONVERSION_THRESHOLDS = RateThresholds(good=30.0, warning=15.0)
ATTENDANCE_THRESHOLDS = RateThresholds(good=70.0, warning=50.0)
COLLECTION_RATE_THRESHOLDS = RateThresholds(good=80.0, warning=60.0)
COLLECTION_TARGET_THRESHOLDS = RateThresholds(good=90.0, warning=80.0)
CANCELLATION_THRESHOLDS = RateThresholds(good=15.0, warning=30.0, higher_is_better=False)
NO_SHOW_THRESHOLDS = RateThresholds(good=15.0, warning=30.0, higher_is_better=False)
FUNNEL_CONVERSION_THRESHOLDS = RateThresholds(good=70.0, warning=70.0)

# Days since last payment/visit
DAYS_GOOD_BELOW = 30
DAYS_WARNING_BELOW = 60

# Heatmap attendance rate
HEATMAP_GOOD_MIN = 70.0
HEATMAP_WARNING_MIN = 50.0

# Professional occupancy (percent of estimated capacity)
OCCUPANCY_CRITICAL_MIN = 90.0
OCCUPANCY_HIGH_MIN = 80.0
OCCUPANCY_OPTIMAL_MIN = 50.0

OCCUPANCY_LEVEL_TAGS: Dict[OccupancyLevel, ThresholdTag] = {
    OccupancyLevel.CRITICO: ThresholdTag.BAD,
    OccupancyLevel.ALTO: ThresholdTag.WARNING,
    OccupancyLevel.OPTIMO: ThresholdTag.GOOD,
    OccupancyLevel.SUBUTILIZADO: ThresholdTag.NEUTRAL,
}

RISK_BADGE_TAGS: Dict[RiskSegment, ThresholdTag] = {
    RiskSegment.BAJO: ThresholdTag.GOOD,
    RiskSegment.MEDIO: ThresholdTag.WARNING,
    RiskSegment.ALTO: ThresholdTag.BAD,
}

PRIORITY_BADGE_TAGS: Dict[ContactPriority, ThresholdTag] = {
    ContactPriority.CRITICA: ThresholdTag.BAD,
    ContactPriority.ALTA: ThresholdTag.BAD,
    ContactPriority.MEDIA: ThresholdTag.WARNING,
    ContactPriority.BAJA: ThresholdTag.GOOD,
}


# =============================================================================
# NUMBER FORMATTING
# =============================================================================

def _group_es_ar(value: float, decimals: int = 0) -> str:
    """Format abs(value) with "." thousands and "," decimals."""
    rounded = round_half_up(abs(value), decimals)
    text = f"{rounded:,.{decimals}f}"
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def format_currency_full(value: Any) -> str:
    """
    Full peso amount with es-AR grouping and no decimals.

    Example:
        >>> format_currency_full(1234567)
        '$ 1.234.567'
        >>> format_currency_full(None)
        '$ 0'
    """
    amount = coerce_numeric_or_zero(value)
    sign = "-" if round_half_up(amount) < 0 else ""
    return f"{sign}$ {_group_es_ar(amount)}"


def format_currency(value: Any) -> str:
    """
    Compact peso amount.

    >= 1,000,000 -> "$X.XM" (one decimal), >= 1,000 -> "$XK" (no decimals),
    anything else -> format_currency_full().

    Example:
        >>> format_currency(2_450_000)
        '$2.5M'
        >>> format_currency(15_300)
        '$15K'
        >>> format_currency(950)
        '$ 950'
    """
    amount = coerce_numeric_or_zero(value)
    if amount >= 1_000_000:
        return f"${round_half_up(amount / 1_000_000, 1):.1f}M"
    if amount >= 1_000:
        return f"${round_half_up(amount / 1_000):.0f}K"
    return format_currency_full(amount)


def format_percent(value: Any, decimals: int = 1) -> str:
    """
    Percent with a fixed number of decimals.

    Example:
        >>> format_percent(12.345)
        '12.3%'
        >>> format_percent(80, 0)
        '80%'
    """
    number = round_half_up(value, decimals)
    return f"{number:.{decimals}f}%"


def format_number(value: Any, decimals: int = 0) -> str:
    """
    Plain number with es-AR grouping.

    Example:
        >>> format_number(1234)
        '1.234'
        >>> format_number(1234.5, 1)
        '1.234,5'
    """
    number = coerce_numeric_or_zero(value)
    sign = "-" if round_half_up(number, decimals) < 0 else ""
    return f"{sign}{_group_es_ar(number, decimals)}"


def format_days(days: Any) -> str:
    """Whole days, or "N/A" when the value is missing."""
    if days is None:
        return NA_PLACEHOLDER
    return str(int(coerce_numeric_or_zero(days)))


# =============================================================================
# DATE FORMATTING
# =============================================================================

def parse_local_date(value: DateLike) -> Optional[date]:
    """
    Parse a calendar date without any timezone conversion.

    Accepts date, datetime, "YYYY-MM-DD" (optionally followed by a time part)
    and "YYYY-MM" (first day of the month). Returns None when unparsable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    try:
        if len(text) == 7:
            return date.fromisoformat(f"{text}-01")
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def month_key(value: DateLike) -> str:
    """
    "YYYY-MM" bucket for a date value, or "" when unparsable.

    Example:
        >>> month_key("2025-03-17")
        '2025-03'
    """
    parsed = parse_local_date(value)
    if parsed is None:
        return ""
    return f"{parsed.year:04d}-{parsed.month:02d}"


def format_date(value: DateLike) -> str:
    """Date as "07 mar 2025" (zero-padded day), or "N/A"."""
    parsed = parse_local_date(value)
    if parsed is None:
        return NA_PLACEHOLDER
    return f"{parsed.day:02d} {MONTH_ABBREVIATIONS[parsed.month]} {parsed.year}"


def format_date_short(value: DateLike) -> str:
    """Date as "07 mar", or "N/A"."""
    parsed = parse_local_date(value)
    if parsed is None:
        return NA_PLACEHOLDER
    return f"{parsed.day:02d} {MONTH_ABBREVIATIONS[parsed.month]}"


def format_month_year(value: DateLike) -> str:
    """Month label as "mar 25", or "N/A"."""
    parsed = parse_local_date(value)
    if parsed is None:
        return NA_PLACEHOLDER
    return f"{MONTH_ABBREVIATIONS[parsed.month]} {parsed.year % 100:02d}"


# =============================================================================
# COLOR CLASSIFIERS
# =============================================================================

def classify_rate(value: Any, thresholds: RateThresholds) -> ThresholdTag:
    """
    Tag a rate against good/warning thresholds.

    Example:
        >>> classify_rate(32.0, CONVERSION_THRESHOLDS)
        <ThresholdTag.GOOD: 'good'>
        >>> classify_rate(20.0, CANCELLATION_THRESHOLDS)
        <ThresholdTag.WARNING: 'warning'>
    """
    rate = coerce_numeric_or_zero(value)

    if thresholds.higher_is_better:
        if rate >= thresholds.good:
            return ThresholdTag.GOOD
        if rate >= thresholds.warning:
            return ThresholdTag.WARNING
        return ThresholdTag.BAD

    if rate < thresholds.good:
        return ThresholdTag.GOOD
    if rate < thresholds.warning:
        return ThresholdTag.WARNING
    return ThresholdTag.BAD


def classify_days_since(days: Any) -> ThresholdTag:
    """None -> unknown, < 30 good, < 60 warning, otherwise bad."""
    if days is None:
        return ThresholdTag.UNKNOWN
    value = coerce_numeric_or_zero(days)
    if value < DAYS_GOOD_BELOW:
        return ThresholdTag.GOOD
    if value < DAYS_WARNING_BELOW:
        return ThresholdTag.WARNING
    return ThresholdTag.BAD


def classify_heatmap_rate(rate: Any) -> ThresholdTag:
    """>= 70 good, >= 50 warning, > 0 bad, otherwise neutral (no activity)."""
    value = coerce_numeric_or_zero(rate)
    if value >= HEATMAP_GOOD_MIN:
        return ThresholdTag.GOOD
    if value >= HEATMAP_WARNING_MIN:
        return ThresholdTag.WARNING
    if value > 0:
        return ThresholdTag.BAD
    return ThresholdTag.NEUTRAL


def classify_occupancy(pct: Any) -> OccupancyLevel:
    """>= 90 critico, >= 80 alto, >= 50 optimo, otherwise subutilizado."""
    value = coerce_numeric_or_zero(pct)
    if value >= OCCUPANCY_CRITICAL_MIN:
        return OccupancyLevel.CRITICO
    if value >= OCCUPANCY_HIGH_MIN:
        return OccupancyLevel.ALTO
    if value >= OCCUPANCY_OPTIMAL_MIN:
        return OccupancyLevel.OPTIMO
    return OccupancyLevel.SUBUTILIZADO


def occupancy_tag(pct: Any, underused: ThresholdTag = ThresholdTag.NEUTRAL) -> ThresholdTag:
    """
    Color tag for an occupancy percentage.

    The capacity table greys out under-used professionals (the default); the
    KPI card passes underused=ThresholdTag.WARNING.
    """
    level = classify_occupancy(pct)
    if level == OccupancyLevel.SUBUTILIZADO:
        return underused
    return OCCUPANCY_LEVEL_TAGS[level]


def risk_badge_tag(segment: Any) -> ThresholdTag:
    """Badge tag for a risk label; unknown labels fall back to unknown (gray)."""
    try:
        return RISK_BADGE_TAGS[RiskSegment(segment)]
    except ValueError:
        return ThresholdTag.UNKNOWN


def priority_badge_tag(priority: Any) -> ThresholdTag:
    """Badge tag for a priority label; unknown labels fall back to unknown (gray)."""
    try:
        return PRIORITY_BADGE_TAGS[ContactPriority(priority)]
    except ValueError:
        return ThresholdTag.UNKNOWN
