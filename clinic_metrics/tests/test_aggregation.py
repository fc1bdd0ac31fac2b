"""
Tests for the sum-then-ratio reducer and its channel, heatmap and billing users.
"""

import copy

import pytest

from clinic_metrics.models.enums import ThresholdTag
from clinic_metrics.services.aggregation import (
    UNASSIGNED_KEY,
    RatioSpec,
    aggregate_by_key,
    aggregate_channels,
    aggregate_heatmap,
    estimate_billing_by_key,
    heatmap_grid,
)


class TestAggregateByKey:
    """Ratios come from summed measures, never from averaged row ratios."""

    def test_ratio_of_sums(self, canales_rows):
        result = aggregate_by_key(
            canales_rows,
            "origen",
            ["leads_generados", "clientes_convertidos"],
            ratios={"tasa": RatioSpec("clientes_convertidos", "leads_generados")},
        )
        instagram = next(dim for dim in result if dim.key == "Instagram")

        assert instagram.row_count == 2
        assert instagram.measures["leads_generados"] == 120
        assert instagram.measures["clientes_convertidos"] == 11
        # 11 / 120, not the mean of 50% and 1%
        assert instagram.ratios["tasa"] == pytest.approx(9.1667, abs=1e-4)

    def test_sorted_descending_with_key_tiebreak(self):
        rows = [
            {"k": "b", "v": 10},
            {"k": "a", "v": 10},
            {"k": "c", "v": 30},
        ]
        result = aggregate_by_key(rows, "k", ["v"])
        assert [dim.key for dim in result] == ["c", "a", "b"]

    def test_sort_by_ratio(self):
        rows = [
            {"k": "x", "num": 1, "den": 10},
            {"k": "y", "num": 5, "den": 10},
        ]
        result = aggregate_by_key(
            rows, "k", ["num", "den"],
            ratios={"pct": RatioSpec("num", "den")},
            sort_by="pct",
        )
        assert [dim.key for dim in result] == ["y", "x"]

    def test_blank_and_null_keys_are_unassigned(self):
        rows = [{"k": None, "v": 1}, {"k": "  ", "v": 2}, {"v": 3}]
        result = aggregate_by_key(rows, "k", ["v"])
        assert len(result) == 1
        assert result[0].key == UNASSIGNED_KEY
        assert result[0].measures["v"] == 6

    def test_zero_denominator_ratio_is_zero(self):
        result = aggregate_by_key(
            [{"k": "a", "num": 5, "den": 0}], "k", ["num", "den"],
            ratios={"pct": RatioSpec("num", "den")},
        )
        assert result[0].ratios["pct"] == 0.0

    def test_empty_input(self):
        assert aggregate_by_key([], "k", ["v"]) == []

    def test_requires_a_measure(self):
        with pytest.raises(ValueError):
            aggregate_by_key([{"k": "a"}], "k", [])

    @pytest.mark.properties
    def test_input_not_mutated_and_idempotent(self, canales_rows):
        snapshot = copy.deepcopy(canales_rows)
        first = aggregate_by_key(canales_rows, "origen", ["revenue_generado"])
        second = aggregate_by_key(list(reversed(canales_rows)), "origen", ["revenue_generado"])

        assert canales_rows == snapshot
        assert first == second


class TestAggregateChannels:

    def test_channel_table(self, canales_rows):
        channels = aggregate_channels(canales_rows)

        assert [ch.origen for ch in channels] == ["Google", "Instagram"]
        google, instagram = channels
        assert google.revenue == 2_000_000
        assert google.conversion_rate == pytest.approx(30.0)
        assert instagram.leads == 120
        assert instagram.revenue == 1_200_000
        assert instagram.revenue_per_lead == pytest.approx(10_000.0)
        assert instagram.revenue_per_client == pytest.approx(1_200_000 / 11)


class TestHeatmap:

    @pytest.fixture
    def heatmap_rows(self):
        return [
            {"dia_semana_num": 1, "hora": 9, "turnos_agendados": 10, "turnos_asistidos": 8, "revenue": 100},
            {"dia_semana_num": 1, "hora": 9, "turnos_agendados": 10, "turnos_asistidos": 6, "revenue": 50},
            {"dia_semana_num": 3, "hora": 15, "turnos_agendados": 4, "turnos_asistidos": 1, "revenue": 10},
            {"dia_semana_num": 0, "hora": 10, "turnos_agendados": 99, "turnos_asistidos": 99, "revenue": 0},
        ]

    def test_cells_sum_then_rate(self, heatmap_rows):
        cells = aggregate_heatmap(heatmap_rows)

        assert [(c.day_of_week, c.hour) for c in cells] == [(1, 9), (3, 15)]
        monday = cells[0]
        assert monday.day_label == "Lun"
        assert monday.scheduled == 20
        assert monday.attendance_rate == pytest.approx(70.0)
        assert monday.tag == ThresholdTag.GOOD
        assert cells[1].tag == ThresholdTag.BAD

    def test_grid_is_zero_filled(self, heatmap_rows):
        grid = heatmap_grid(aggregate_heatmap(heatmap_rows))

        assert len(grid) == 7 * 13
        empty = [c for c in grid if c.day_of_week == 7 and c.hour == 20][0]
        assert empty.scheduled == 0
        assert empty.tag == ThresholdTag.NEUTRAL
        filled = [c for c in grid if c.day_of_week == 1 and c.hour == 9][0]
        assert filled.attended == 14


class TestEstimateBillingByKey:

    def test_estimates_are_labelled(self, operaciones_diario_rows):
        rows = estimate_billing_by_key(operaciones_diario_rows, "profesional", 0.8)

        assert [row.key for row in rows] == ["Dra. Lopez", "Dr. Ruiz"]
        lopez = rows[0]
        assert lopez.billed == 2_100_000
        assert lopez.estimated_collected == pytest.approx(1_680_000)
        assert lopez.estimated_gap == pytest.approx(420_000)
        assert lopez.active_days == 2
        assert lopez.attendance_rate == pytest.approx(70 / 90 * 100)
        assert lopez.is_estimate is True

    @pytest.mark.parametrize("rate", [-0.1, 1.2])
    def test_bad_rate_raises(self, operaciones_diario_rows, rate):
        with pytest.raises(ValueError):
            estimate_billing_by_key(operaciones_diario_rows, "profesional", rate)
