"""
Client risk, contact priority and message-type classification.

All thresholds are named module constants. Rules are evaluated top to bottom
and the first match wins.

Risk segment (days since last visit, variant chosen by the caller):
    DEBTOR_SCATTER: days > 60 -> Alto, days > 30 -> Medio, else Bajo
    RISK_MATRIX:    days > 90 -> Alto, days > 30 -> Medio, else Bajo
    CRITICAL_DEBT:  days > 60 -> Alto, else Bajo

Contact priority (days, debt):
    days > 90 AND debt > 500K  -> Crítica
    days > 60 OR  debt > 1M    -> Alta
    days > 30 OR  debt > 300K  -> Media
    else                       -> Baja

Message type / LTV segment (lifetime value):
    ltv >= 1M   -> premium / Premium
    ltv >= 200K -> alto_valor / Medio
    else        -> estandar / Nuevo

Key Functions:
- classify_client(): full ClientRiskRecord for one client
- classify_clients(): RecoveryClient list from finanzas_recupero_master rows
- risk_matrix_segments(): LTV x recency segment cards
- summarize_priorities(): debt grouped by contact priority

Example:
    >>> record = classify_client(1_200_000, 95, 600_000)
    >>> record.risk_segment, record.contact_priority, record.message_type
    (<RiskSegment.ALTO: 'Alto'>, <ContactPriority.CRITICA: 'Crítica'>, <MessageType.PREMIUM: 'premium'>)
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from clinic_metrics.models.enums import (
    ContactPriority,
    LtvSegment,
    MessageType,
    RiskMatrixSegmentName,
    RiskSegment,
    RiskThresholdVariant,
)
from clinic_metrics.models.schemas import (
    ClientRiskRecord,
    PrioritySummaryItem,
    RecoveryClient,
    RiskMatrixSegment,
)
from clinic_metrics.services.metrics import (
    coerce_int_or_zero,
    coerce_numeric_or_zero,
    field,
    safe_ratio,
)


# =============================================================================
# THRESHOLDS
# =============================================================================

# Risk segment day cut-offs per variant: (medium_above_days, high_above_days).
# A None medium cut-off means the variant has no Medio band.
RISK_DAY_THRESHOLDS: Dict[RiskThresholdVariant, Tuple[Optional[int], int]] = {
    RiskThresholdVariant.DEBTOR_SCATTER: (30, 60),
    RiskThresholdVariant.RISK_MATRIX: (30, 90),
    RiskThresholdVariant.CRITICAL_DEBT: (None, 60),
}

# Contact priority
CRITICAL_PRIORITY_DAYS = 90
CRITICAL_PRIORITY_DEBT = 500_000
HIGH_PRIORITY_DAYS = 60
HIGH_PRIORITY_DEBT = 1_000_000
MEDIUM_PRIORITY_DAYS = 30
MEDIUM_PRIORITY_DEBT = 300_000

# Lifetime value
PREMIUM_LTV_MIN = 1_000_000
HIGH_VALUE_LTV_MIN = 200_000

# Risk matrix recency bands (days since last visit)
MATRIX_ACTIVE_DAYS = 30
MATRIX_AT_RISK_DAYS = 90
MATRIX_MID_ACTIVE_DAYS = 60

PRIORITY_DISPLAY_ORDER: List[ContactPriority] = [
    ContactPriority.CRITICA,
    ContactPriority.ALTA,
    ContactPriority.MEDIA,
    ContactPriority.BAJA,
]

RISK_MATRIX_LABELS: Dict[RiskMatrixSegmentName, str] = {
    RiskMatrixSegmentName.PREMIUM_ACTIVOS: "Premium activos",
    RiskMatrixSegmentName.PREMIUM_RIESGO: "Premium en riesgo",
    RiskMatrixSegmentName.MEDIOS_ACTIVOS: "Medios activos",
    RiskMatrixSegmentName.CRITICOS_INACTIVOS: "Críticos inactivos",
}


# =============================================================================
# SINGLE-VALUE CLASSIFIERS
# =============================================================================

def classify_risk_segment(
    days_since_visit: Any,
    variant: RiskThresholdVariant = RiskThresholdVariant.DEBTOR_SCATTER,
) -> RiskSegment:
    """Risk segment from days since last visit using the variant's cut-offs."""
    days = coerce_int_or_zero(days_since_visit)
    medium_above, high_above = RISK_DAY_THRESHOLDS[RiskThresholdVariant(variant)]

    if days > high_above:
        return RiskSegment.ALTO
    if medium_above is not None and days > medium_above:
        return RiskSegment.MEDIO
    return RiskSegment.BAJO


def classify_priority(days_since_visit: Any, debt: Any) -> ContactPriority:
    """Contact priority from days since last visit and outstanding debt."""
    days = coerce_int_or_zero(days_since_visit)
    amount = coerce_numeric_or_zero(debt)

    if days > CRITICAL_PRIORITY_DAYS and amount > CRITICAL_PRIORITY_DEBT:
        return ContactPriority.CRITICA
    if days > HIGH_PRIORITY_DAYS or amount > HIGH_PRIORITY_DEBT:
        return ContactPriority.ALTA
    if days > MEDIUM_PRIORITY_DAYS or amount > MEDIUM_PRIORITY_DEBT:
        return ContactPriority.MEDIA
    return ContactPriority.BAJA


def classify_message_type(ltv: Any) -> MessageType:
    """Contact template from lifetime value."""
    value = coerce_numeric_or_zero(ltv)
    if value >= PREMIUM_LTV_MIN:
        return MessageType.PREMIUM
    if value >= HIGH_VALUE_LTV_MIN:
        return MessageType.ALTO_VALOR
    return MessageType.ESTANDAR


def classify_ltv_segment(ltv: Any) -> LtvSegment:
    """Value segment from lifetime value."""
    value = coerce_numeric_or_zero(ltv)
    if value >= PREMIUM_LTV_MIN:
        return LtvSegment.PREMIUM
    if value >= HIGH_VALUE_LTV_MIN:
        return LtvSegment.MEDIO
    return LtvSegment.NUEVO


def classify_client(
    ltv: Any,
    days_since_visit: Any,
    debt: Any,
    variant: RiskThresholdVariant = RiskThresholdVariant.DEBTOR_SCATTER,
) -> ClientRiskRecord:
    """
    Classify one client.

    Args:
        ltv: Lifetime value (pesos).
        days_since_visit: Days since the last visit.
        debt: Outstanding balance (pesos).
        variant: Risk day cut-offs to use.

    Returns:
        ClientRiskRecord with risk segment, contact priority, message type and LTV segment.

    Example:
        >>> classify_client(50_000, 10, 5_000).contact_priority
        <ContactPriority.BAJA: 'Baja'>
    """
    return ClientRiskRecord(
        risk_segment=classify_risk_segment(days_since_visit, variant),
        contact_priority=classify_priority(days_since_visit, debt),
        message_type=classify_message_type(ltv),
        ltv_segment=classify_ltv_segment(ltv),
    )


# =============================================================================
# ROW-LEVEL CLASSIFICATION
# =============================================================================

def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def classify_clients(
    rows: Iterable[Mapping[str, Any]],
    variant: RiskThresholdVariant = RiskThresholdVariant.DEBTOR_SCATTER,
) -> List[RecoveryClient]:
    """
    Classify finanzas_recupero_master rows, keeping input order.

    Classification always comes from ltv, dias_desde_ultima_visita and
    saldo_total; precomputed segment columns in the view are not trusted.
    """
    clients = []
    for row in rows:
        days = coerce_int_or_zero(row.get("dias_desde_ultima_visita"))
        clients.append(
            RecoveryClient(
                id_cliente=_optional_text(row.get("id_cliente")),
                nombre_completo=_optional_text(row.get("nombre_completo")) or "",
                telefono=_optional_text(row.get("telefono")),
                email=_optional_text(row.get("email")),
                sucursal=_optional_text(row.get("sucursal")),
                saldo_total=field(row, "saldo_total"),
                deuda_tqp=field(row, "deuda_tqp"),
                deuda_extras=field(row, "deuda_extras"),
                ltv=field(row, "ltv"),
                dias_desde_ultima_visita=days,
                classification=classify_client(
                    row.get("ltv"), days, row.get("saldo_total"), variant
                ),
            )
        )
    return clients


def risk_matrix_segments(
    rows: Iterable[Mapping[str, Any]],
    days_field: str = "dias_desde_ultima_visita",
    debt_field: str = "saldo_total",
) -> List[RiskMatrixSegment]:
    """
    LTV x recency segment cards.

    Each segment is evaluated independently and clients matching none of
    them are left out:

    - premium_activos: ltv >= 1M and days <= 30
    - premium_riesgo: ltv >= 1M and 30 < days <= 90
    - medios_activos: 200K <= ltv < 1M and days <= 60
    - criticos_inactivos: days > 90

    Returns:
        The four segments in the order above with count, total and average debt.
    """
    totals = {name: [0, 0.0] for name in RiskMatrixSegmentName}

    for row in rows:
        ltv = field(row, "ltv")
        days = coerce_int_or_zero(row.get(days_field))
        debt = field(row, debt_field)

        matches = []
        if ltv >= PREMIUM_LTV_MIN and days <= MATRIX_ACTIVE_DAYS:
            matches.append(RiskMatrixSegmentName.PREMIUM_ACTIVOS)
        if ltv >= PREMIUM_LTV_MIN and MATRIX_ACTIVE_DAYS < days <= MATRIX_AT_RISK_DAYS:
            matches.append(RiskMatrixSegmentName.PREMIUM_RIESGO)
        if HIGH_VALUE_LTV_MIN <= ltv < PREMIUM_LTV_MIN and days <= MATRIX_MID_ACTIVE_DAYS:
            matches.append(RiskMatrixSegmentName.MEDIOS_ACTIVOS)
        if days > MATRIX_AT_RISK_DAYS:
            matches.append(RiskMatrixSegmentName.CRITICOS_INACTIVOS)

        for name in matches:
            totals[name][0] += 1
            totals[name][1] += debt

    return [
        RiskMatrixSegment(
            name=name,
            label=RISK_MATRIX_LABELS[name],
            client_count=count,
            total_debt=debt,
            average_debt=safe_ratio(debt, count),
        )
        for name, (count, debt) in totals.items()
    ]


def summarize_priorities(
    rows: Iterable[Mapping[str, Any]],
    priority_field: str = "prioridad_contacto",
    days_field: str = "dias_desde_ultima_visita",
    debt_field: str = "saldo_total",
) -> List[PrioritySummaryItem]:
    """
    Debt grouped by contact priority, always in Crítica, Alta, Media, Baja order.

    The row's own priority label is used when valid; otherwise the priority is
    classified from days and debt.
    """
    totals = {priority: [0, 0.0] for priority in PRIORITY_DISPLAY_ORDER}

    for row in rows:
        try:
            priority = ContactPriority(row.get(priority_field))
        except ValueError:
            priority = classify_priority(row.get(days_field), row.get(debt_field))
        totals[priority][0] += 1
        totals[priority][1] += field(row, debt_field)

    return [
        PrioritySummaryItem(
            priority=priority,
            order=position,
            client_count=totals[priority][0],
            total_debt=totals[priority][1],
            average_debt=safe_ratio(totals[priority][1], totals[priority][0]),
        )
        for position, priority in enumerate(PRIORITY_DISPLAY_ORDER, start=1)
    ]
