"""
Tests for funnel stage ordering, conversions and losses.
"""

import copy

import pytest

from clinic_metrics.models.enums import FunnelStageName, ThresholdTag
from clinic_metrics.services.funnel import derive_funnel, funnel_loss_summary, funnel_stage_counts


def _stage_rows(counts):
    names = [stage.value for stage in FunnelStageName]
    return [{"etapa": name, "cantidad": count} for name, count in zip(names, counts)]


class TestDeriveFunnel:

    def test_reference_funnel(self):
        stages = derive_funnel(_stage_rows([100, 80, 50, 10]))

        assert [s.name for s in stages] == list(FunnelStageName)
        assert [s.percentage for s in stages] == pytest.approx([100, 80, 50, 10])
        assert stages[0].conversion is None
        assert [s.conversion for s in stages[1:]] == pytest.approx([80, 62.5, 20])
        assert [s.loss for s in stages] == [0, 20, 30, 40]
        assert stages[0].tag is None
        assert stages[1].tag == ThresholdTag.GOOD
        assert stages[2].tag == ThresholdTag.BAD

    def test_counts_summed_across_channels(self, embudo_rows):
        counts = funnel_stage_counts(embudo_rows)

        assert counts[FunnelStageName.LEAD] == 100
        assert counts[FunnelStageName.CONSULTA] == 80
        assert counts[FunnelStageName.TRATAMIENTO] == 50

    def test_rows_in_any_order(self):
        rows = list(reversed(_stage_rows([100, 80, 50, 10])))
        assert [s.order for s in derive_funnel(rows)] == [1, 2, 3, 4]

    def test_zero_stages_dropped(self):
        stages = derive_funnel(_stage_rows([100, 0, 50, 0]))

        assert [s.name for s in stages] == [FunnelStageName.LEAD, FunnelStageName.TRATAMIENTO]
        assert stages[1].conversion == pytest.approx(50.0)
        assert stages[1].loss == 50

    def test_unknown_stage_ignored(self):
        rows = _stage_rows([10]) + [{"etapa": "Otro", "cantidad": 999}]
        stages = derive_funnel(rows)
        assert len(stages) == 1
        assert stages[0].count == 10

    def test_empty(self):
        assert derive_funnel([]) == []
        assert derive_funnel(_stage_rows([0, 0, 0, 0])) == []


class TestFunnelLossSummary:

    def test_losses_between_stages(self):
        losses = funnel_loss_summary(derive_funnel(_stage_rows([100, 80, 50, 10])))

        assert [(loss.from_stage, loss.to_stage) for loss in losses] == [
            (FunnelStageName.LEAD, FunnelStageName.CONSULTA),
            (FunnelStageName.CONSULTA, FunnelStageName.TRATAMIENTO),
            (FunnelStageName.TRATAMIENTO, FunnelStageName.RECURRENTE),
        ]
        assert [loss.lost for loss in losses] == [20, 30, 40]
        assert [loss.loss_pct for loss in losses] == pytest.approx([20, 37.5, 80])

    def test_single_stage_has_no_losses(self):
        assert funnel_loss_summary(derive_funnel(_stage_rows([5]))) == []


@pytest.mark.properties
class TestFunnelInputHandling:

    def test_input_not_mutated_and_order_independent(self):
        rows = _stage_rows([100, 80, 50, 10])
        snapshot = copy.deepcopy(rows)

        first = derive_funnel(rows)
        second = derive_funnel(list(reversed(rows)))

        assert rows == snapshot
        assert first == second
