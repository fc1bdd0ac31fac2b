"""
Tests for es-AR formatting primitives and color classifiers.
"""

from datetime import date, datetime

import pytest

from clinic_metrics.models.enums import OccupancyLevel, ThresholdTag
from clinic_metrics.services.formatting import (
    ATTENDANCE_THRESHOLDS,
    CANCELLATION_THRESHOLDS,
    COLLECTION_TARGET_THRESHOLDS,
    CONVERSION_THRESHOLDS,
    classify_days_since,
    classify_heatmap_rate,
    classify_occupancy,
    classify_rate,
    format_currency,
    format_currency_full,
    format_date,
    format_date_short,
    format_days,
    format_month_year,
    format_number,
    format_percent,
    month_key,
    occupancy_tag,
    parse_local_date,
    priority_badge_tag,
    risk_badge_tag,
)


class TestCurrencyFormatting:

    @pytest.mark.parametrize(
        "value,expected",
        [
            (2_450_000, "$2.5M"),
            (1_000_000, "$1.0M"),
            (15_300, "$15K"),
            (1_500, "$2K"),
            (950, "$ 950"),
            (None, "$ 0"),
            ("garbage", "$ 0"),
        ],
    )
    def test_compact(self, value, expected):
        assert format_currency(value) == expected

    def test_full_grouping(self):
        assert format_currency_full(1_234_567) == "$ 1.234.567"
        assert format_currency_full(-1_500) == "-$ 1.500"

    def test_number_and_percent(self):
        assert format_number(1234) == "1.234"
        assert format_number(1234.5, 1) == "1.234,5"
        assert format_percent(12.345) == "12.3%"
        assert format_percent(80, 0) == "80%"
        assert format_percent(None) == "0.0%"

    def test_days_placeholder(self):
        assert format_days(None) == "N/A"
        assert format_days(45.7) == "45"


class TestDateFormatting:
    """Dates are parsed as local calendar dates, never shifted by timezone."""

    def test_parse_variants(self):
        assert parse_local_date("2025-03-17") == date(2025, 3, 17)
        assert parse_local_date("2025-03-17T23:30:00-03:00") == date(2025, 3, 17)
        assert parse_local_date("2025-03") == date(2025, 3, 1)
        assert parse_local_date(datetime(2025, 3, 17, 23, 59)) == date(2025, 3, 17)
        assert parse_local_date("not a date") is None
        assert parse_local_date(None) is None

    def test_labels(self):
        assert format_date("2025-03-17") == "17 mar 2025"
        assert format_date_short(date(2025, 9, 1)) == "01 sep"
        assert format_date(date(2025, 3, 7)) == "07 mar 2025"
        assert format_month_year("2025-12-01") == "dic 25"
        assert format_date(None) == "N/A"

    def test_month_key(self):
        assert month_key("2025-03-17") == "2025-03"
        assert month_key(date(2024, 11, 30)) == "2024-11"
        assert month_key("bad") == ""


class TestClassifiers:

    def test_rate_higher_is_better(self):
        assert classify_rate(32.0, CONVERSION_THRESHOLDS) == ThresholdTag.GOOD
        assert classify_rate(15.0, CONVERSION_THRESHOLDS) == ThresholdTag.WARNING
        assert classify_rate(14.9, CONVERSION_THRESHOLDS) == ThresholdTag.BAD
        assert classify_rate(70, ATTENDANCE_THRESHOLDS) == ThresholdTag.GOOD
        assert classify_rate(85, COLLECTION_TARGET_THRESHOLDS) == ThresholdTag.WARNING

    def test_rate_lower_is_better(self):
        assert classify_rate(10.0, CANCELLATION_THRESHOLDS) == ThresholdTag.GOOD
        assert classify_rate(20.0, CANCELLATION_THRESHOLDS) == ThresholdTag.WARNING
        assert classify_rate(30.0, CANCELLATION_THRESHOLDS) == ThresholdTag.BAD

    def test_days_since(self):
        assert classify_days_since(None) == ThresholdTag.UNKNOWN
        assert classify_days_since(29) == ThresholdTag.GOOD
        assert classify_days_since(30) == ThresholdTag.WARNING
        assert classify_days_since(60) == ThresholdTag.BAD

    def test_heatmap(self):
        assert classify_heatmap_rate(75) == ThresholdTag.GOOD
        assert classify_heatmap_rate(55) == ThresholdTag.WARNING
        assert classify_heatmap_rate(10) == ThresholdTag.BAD
        assert classify_heatmap_rate(0) == ThresholdTag.NEUTRAL

    def test_occupancy(self):
        assert classify_occupancy(95) == OccupancyLevel.CRITICO
        assert classify_occupancy(85) == OccupancyLevel.ALTO
        assert classify_occupancy(60) == OccupancyLevel.OPTIMO
        assert classify_occupancy(None) == OccupancyLevel.SUBUTILIZADO
        assert occupancy_tag(95) == ThresholdTag.BAD
        assert occupancy_tag(30) == ThresholdTag.NEUTRAL
        assert occupancy_tag(30, underused=ThresholdTag.WARNING) == ThresholdTag.WARNING

    def test_badges_fall_back_to_unknown(self):
        assert risk_badge_tag("Alto") == ThresholdTag.BAD
        assert risk_badge_tag("Desconocido") == ThresholdTag.UNKNOWN
        assert priority_badge_tag("Crítica") == ThresholdTag.BAD
        assert priority_badge_tag("Baja") == ThresholdTag.GOOD
        assert priority_badge_tag(None) == ThresholdTag.UNKNOWN
