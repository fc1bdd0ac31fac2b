"""
Tests for risk segment, contact priority and message type classification.
"""

import copy

import pytest

from clinic_metrics.models.enums import (
    ContactPriority,
    LtvSegment,
    MessageType,
    RiskMatrixSegmentName,
    RiskSegment,
    RiskThresholdVariant,
)
from clinic_metrics.services.risk import (
    classify_client,
    classify_clients,
    classify_message_type,
    classify_priority,
    classify_risk_segment,
    risk_matrix_segments,
    summarize_priorities,
)


class TestClassifyClient:

    def test_premium_critical_client(self):
        record = classify_client(1_200_000, 95, 600_000)

        assert record.risk_segment == RiskSegment.ALTO
        assert record.contact_priority == ContactPriority.CRITICA
        assert record.message_type == MessageType.PREMIUM
        assert record.ltv_segment == LtvSegment.PREMIUM

    def test_low_risk_standard_client(self):
        record = classify_client(50_000, 10, 5_000)

        assert record.risk_segment == RiskSegment.BAJO
        assert record.contact_priority == ContactPriority.BAJA
        assert record.message_type == MessageType.ESTANDAR
        assert record.ltv_segment == LtvSegment.NUEVO

    def test_missing_values_are_lowest_band(self):
        record = classify_client(None, None, None)
        assert record.risk_segment == RiskSegment.BAJO
        assert record.contact_priority == ContactPriority.BAJA


class TestRiskVariants:
    """The same recency maps to different segments per dashboard view."""

    @pytest.mark.parametrize(
        "days,variant,expected",
        [
            (75, RiskThresholdVariant.DEBTOR_SCATTER, RiskSegment.ALTO),
            (75, RiskThresholdVariant.RISK_MATRIX, RiskSegment.MEDIO),
            (91, RiskThresholdVariant.RISK_MATRIX, RiskSegment.ALTO),
            (45, RiskThresholdVariant.CRITICAL_DEBT, RiskSegment.BAJO),
            (61, RiskThresholdVariant.CRITICAL_DEBT, RiskSegment.ALTO),
            (30, RiskThresholdVariant.DEBTOR_SCATTER, RiskSegment.BAJO),
            (31, RiskThresholdVariant.DEBTOR_SCATTER, RiskSegment.MEDIO),
        ],
    )
    def test_variant_cutoffs(self, days, variant, expected):
        assert classify_risk_segment(days, variant) == expected


class TestPriorityAndMessage:

    @pytest.mark.parametrize(
        "days,debt,expected",
        [
            (95, 600_000, ContactPriority.CRITICA),
            (95, 400_000, ContactPriority.ALTA),
            (10, 1_500_000, ContactPriority.ALTA),
            (35, 0, ContactPriority.MEDIA),
            (0, 400_000, ContactPriority.MEDIA),
            (30, 300_000, ContactPriority.BAJA),
        ],
    )
    def test_priority_rules(self, days, debt, expected):
        assert classify_priority(days, debt) == expected

    @pytest.mark.parametrize(
        "ltv,expected",
        [
            (1_000_000, MessageType.PREMIUM),
            (200_000, MessageType.ALTO_VALOR),
            (199_999, MessageType.ESTANDAR),
            ("n/a", MessageType.ESTANDAR),
        ],
    )
    def test_message_type(self, ltv, expected):
        assert classify_message_type(ltv) == expected


class TestRowClassification:

    def test_classify_clients_keeps_order(self, recupero_rows):
        clients = classify_clients(recupero_rows)

        assert [c.id_cliente for c in clients] == ["c-001", "c-002", "c-003"]
        assert clients[1].classification.risk_segment == RiskSegment.MEDIO
        assert clients[1].classification.contact_priority == ContactPriority.MEDIA
        assert clients[2].telefono is None

    def test_risk_matrix(self, recupero_rows):
        segments = {s.name: s for s in risk_matrix_segments(recupero_rows)}

        assert list(segments) == list(RiskMatrixSegmentName)
        assert segments[RiskMatrixSegmentName.CRITICOS_INACTIVOS].client_count == 1
        assert segments[RiskMatrixSegmentName.CRITICOS_INACTIVOS].total_debt == 600_000
        assert segments[RiskMatrixSegmentName.MEDIOS_ACTIVOS].client_count == 1
        assert segments[RiskMatrixSegmentName.PREMIUM_ACTIVOS].client_count == 0
        assert segments[RiskMatrixSegmentName.PREMIUM_ACTIVOS].average_debt == 0.0

    def test_priority_summary_order(self, recupero_rows):
        rows = recupero_rows + [{"prioridad_contacto": "Alta", "saldo_total": 100_000}]
        summary = summarize_priorities(rows)

        assert [item.priority for item in summary] == [
            ContactPriority.CRITICA,
            ContactPriority.ALTA,
            ContactPriority.MEDIA,
            ContactPriority.BAJA,
        ]
        assert [item.client_count for item in summary] == [1, 1, 1, 1]
        assert summary[0].total_debt == 600_000
        assert summary[1].total_debt == 100_000


@pytest.mark.properties
class TestClassificationInputHandling:

    def test_input_not_mutated_and_idempotent(self, recupero_rows):
        snapshot = copy.deepcopy(recupero_rows)

        first = classify_clients(recupero_rows)
        second = classify_clients(recupero_rows)

        assert recupero_rows == snapshot
        assert first == second
