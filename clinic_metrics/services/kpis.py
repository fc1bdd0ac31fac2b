"""
KPI card summaries for the finance, operations and commercial dashboards.

Every KPI is derived from summed measures (never from averaged per-row
rates), and period comparisons use calculate_trend for amounts and
percentage_point_delta for rates.

Key Functions:
- compute_finance_kpis(): collection KPIs from finanzas_diario + finanzas_recupero_master
- compute_billing_period_kpis(): current vs previous month billing and collection estimate
- compute_operations_kpis(): current month appointments, rates and occupancy
- compute_commercial_kpis(): current month channel KPIs with funnel fallbacks
- summarize_capacity(): operaciones_capacidad rows with occupancy level and tag

Months:
    "Current month" is the calendar month of `as_of`; "previous month" is the
    calendar month before it. Rows are matched by month_key of their date.
"""

import logging
from datetime import date, timedelta
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from clinic_metrics.models.enums import FunnelStageName, RiskSegment, RiskThresholdVariant, ThresholdTag
from clinic_metrics.models.schemas import (
    BillingPeriodKPIs,
    CapacityRow,
    CommercialKPIs,
    FinanceKPIs,
    KPIValue,
    OperationsKPIs,
)
from clinic_metrics.services.formatting import (
    ATTENDANCE_THRESHOLDS,
    CANCELLATION_THRESHOLDS,
    COLLECTION_RATE_THRESHOLDS,
    COLLECTION_TARGET_THRESHOLDS,
    CONVERSION_THRESHOLDS,
    NO_SHOW_THRESHOLDS,
    classify_occupancy,
    classify_rate,
    month_key,
    occupancy_tag,
)
from clinic_metrics.services.funnel import funnel_stage_counts
from clinic_metrics.services.metrics import (
    calculate_trend,
    clamp,
    coerce_int_or_zero,
    coerce_numeric_or_zero,
    field,
    percentage_point_delta,
    safe_percent,
    safe_ratio,
    sum_field,
    trend_direction,
)
from clinic_metrics.services.risk import classify_risk_segment

logger = logging.getLogger(__name__)

# Days since last payment above which debt counts as overdue on the billing card
OVERDUE_PAYMENT_DAYS = 60

TRUE_FLAG_VALUES = {"true", "t", "1", "si", "sí", "yes", "y"}


# =============================================================================
# HELPERS
# =============================================================================

def month_window(as_of: date) -> Tuple[str, str]:
    """
    (current, previous) month keys for a reference date.

    Example:
        >>> month_window(date(2025, 1, 15))
        ('2025-01', '2024-12')
    """
    first_of_month = as_of.replace(day=1)
    previous = first_of_month - timedelta(days=1)
    return month_key(first_of_month), month_key(previous)


def rows_in_month(
    rows: Iterable[Mapping[str, Any]],
    month: str,
    date_field: str,
) -> List[Mapping[str, Any]]:
    """Rows whose date falls in the given YYYY-MM month."""
    return [row for row in rows if month_key(row.get(date_field)) == month]


def kpi_with_trend(
    current: float,
    previous: float,
    tag: Optional[ThresholdTag] = None,
    as_points: bool = False,
) -> KPIValue:
    """
    KPIValue comparing two periods.

    Args:
        current: Current period value.
        previous: Previous period value.
        tag: Optional color tag for the current value.
        as_points: Use a percentage-point delta (for rates) instead of a percent change.
    """
    trend = percentage_point_delta(current, previous) if as_points else calculate_trend(current, previous)
    return KPIValue(
        value=current,
        previous=previous,
        trend=trend,
        direction=trend_direction(trend),
        tag=tag,
    )


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUE_FLAG_VALUES
    return bool(coerce_numeric_or_zero(value))


# =============================================================================
# FINANCE
# =============================================================================

def compute_finance_kpis(
    diario_rows: Iterable[Mapping[str, Any]],
    recupero_rows: Iterable[Mapping[str, Any]],
) -> FinanceKPIs:
    """
    Collection KPIs for the filtered period.

    Formulas:
        revenue_total   = sum(revenue_facturado)
        average_ticket  = revenue_total / sum(turnos_con_revenue)
        deuda_total     = sum(saldo_total)
        critical_debt   = sum(saldo_total) of clients with > 60 days since last visit
        collection_rate = (revenue_total - deuda_tqp) / revenue_total * 100, clamped to [0, 100]

    Args:
        diario_rows: finanzas_diario rows.
        recupero_rows: finanzas_recupero_master rows (one per client with debt).
    """
    diario = list(diario_rows)
    recupero = list(recupero_rows)

    revenue_total = sum_field(diario, "revenue_facturado")
    billed_appointments = sum_field(diario, "turnos_con_revenue")
    deuda_tqp = sum_field(recupero, "deuda_tqp")

    critical = [
        row for row in recupero
        if classify_risk_segment(row.get("dias_desde_ultima_visita"), RiskThresholdVariant.CRITICAL_DEBT)
        == RiskSegment.ALTO
    ]

    collection_rate = clamp(safe_percent(revenue_total - deuda_tqp, revenue_total), 0.0, 100.0)

    return FinanceKPIs(
        revenue_total=revenue_total,
        billed_appointments=billed_appointments,
        deuda_tqp=deuda_tqp,
        deuda_extras=sum_field(recupero, "deuda_extras"),
        deuda_total=sum_field(recupero, "saldo_total"),
        clients_with_debt=len(recupero),
        clients_with_tqp=sum(1 for row in recupero if field(row, "deuda_tqp") > 0),
        critical_debt=sum_field(critical, "saldo_total"),
        critical_clients=len(critical),
        average_ticket=safe_ratio(revenue_total, billed_appointments),
        collection_rate=collection_rate,
        collection_rate_tag=classify_rate(collection_rate, COLLECTION_TARGET_THRESHOLDS),
    )


def _billing_month(rows: List[Mapping[str, Any]]) -> Tuple[float, float, float, float]:
    billed = sum_field(rows, "revenue_facturado")
    rate = safe_ratio(sum_field(rows, "turnos_con_revenue"), sum_field(rows, "turnos_asistidos"))
    collected = billed * rate
    return billed, collected, billed - collected, rate * 100


def compute_billing_period_kpis(
    diario_rows: Iterable[Mapping[str, Any]],
    deudores_rows: Iterable[Mapping[str, Any]],
    as_of: date,
) -> BillingPeriodKPIs:
    """
    Current vs previous month billing with a collected estimate.

    For each month:
        rate      = sum(turnos_con_revenue) / sum(turnos_asistidos)
        collected = billed * rate
        gap       = billed - collected

    The collection-rate trend is expressed in percentage points. Historical
    debt is the sum of deuda_total over all debtors; overdue debt counts
    debtors with more than 60 days since their last payment (unknown days
    are not counted).
    """
    diario = list(diario_rows)
    deudores = list(deudores_rows)
    current_month, previous_month = month_window(as_of)

    billed, collected, gap, rate = _billing_month(rows_in_month(diario, current_month, "fecha"))
    prev_billed, prev_collected, prev_gap, prev_rate = _billing_month(
        rows_in_month(diario, previous_month, "fecha")
    )

    overdue = sum(
        field(row, "deuda_total")
        for row in deudores
        if row.get("dias_desde_ultimo_pago") is not None
        and coerce_int_or_zero(row.get("dias_desde_ultimo_pago")) > OVERDUE_PAYMENT_DAYS
    )

    return BillingPeriodKPIs(
        month=current_month,
        previous_month=previous_month,
        billed=kpi_with_trend(billed, prev_billed),
        collected=kpi_with_trend(collected, prev_collected),
        gap=kpi_with_trend(gap, prev_gap),
        collection_rate=kpi_with_trend(
            rate, prev_rate, tag=classify_rate(rate, COLLECTION_RATE_THRESHOLDS), as_points=True
        ),
        historical_debt=sum_field(deudores, "deuda_total"),
        debt_over_60_days=float(overdue),
    )


# =============================================================================
# OPERATIONS
# =============================================================================

def compute_operations_kpis(
    diario_rows: Iterable[Mapping[str, Any]],
    capacidad_rows: Iterable[Mapping[str, Any]],
    as_of: date,
) -> OperationsKPIs:
    """
    Current month operational KPIs.

    Rates are over scheduled appointments of the month:
        attendance = asistidos / agendados * 100
        cancellation = cancelados / agendados * 100
        no_show = inasistidos / agendados * 100
    revenue_per_appointment = revenue / asistidos.
    average_occupancy is the mean ocupacion_estimada_pct of the month's
    operaciones_capacidad rows.
    """
    diario = list(diario_rows)
    current_month, previous_month = month_window(as_of)
    current = rows_in_month(diario, current_month, "fecha")
    previous = rows_in_month(diario, previous_month, "fecha")

    scheduled = sum_field(current, "turnos_agendados")
    attended = sum_field(current, "turnos_asistidos")
    revenue = sum_field(current, "revenue")

    attendance = safe_percent(attended, scheduled)
    cancellation = safe_percent(sum_field(current, "turnos_cancelados"), scheduled)
    no_show = safe_percent(sum_field(current, "turnos_inasistidos"), scheduled)

    capacity = rows_in_month(capacidad_rows, current_month, "periodo_mes")
    average_occupancy = safe_ratio(sum_field(capacity, "ocupacion_estimada_pct"), len(capacity))

    return OperationsKPIs(
        month=current_month,
        scheduled=kpi_with_trend(scheduled, sum_field(previous, "turnos_agendados")),
        attended=attended,
        revenue=revenue,
        attendance_rate=KPIValue(value=attendance, tag=classify_rate(attendance, ATTENDANCE_THRESHOLDS)),
        cancellation_rate=KPIValue(value=cancellation, tag=classify_rate(cancellation, CANCELLATION_THRESHOLDS)),
        no_show_rate=KPIValue(value=no_show, tag=classify_rate(no_show, NO_SHOW_THRESHOLDS)),
        average_occupancy=KPIValue(
            value=average_occupancy,
            tag=occupancy_tag(average_occupancy, underused=ThresholdTag.WARNING) if capacity else ThresholdTag.UNKNOWN,
        ),
        revenue_per_appointment=safe_ratio(revenue, attended),
    )


def summarize_capacity(
    capacidad_rows: Iterable[Mapping[str, Any]],
    limit: Optional[int] = None,
) -> List[CapacityRow]:
    """
    Professional occupancy rows with level and color tag.

    Sorted by occupancy descending (ties by professional); `limit` keeps the
    first N rows.
    """
    rows = [
        CapacityRow(
            periodo_mes=month_key(row.get("periodo_mes")) or None,
            profesional=str(row.get("profesional") or "Sin asignar").strip() or "Sin asignar",
            dias_activos=coerce_int_or_zero(row.get("dias_activos")),
            turnos_promedio_dia=field(row, "turnos_promedio_dia"),
            ocupacion_estimada_pct=field(row, "ocupacion_estimada_pct"),
            level=classify_occupancy(row.get("ocupacion_estimada_pct")),
            tag=occupancy_tag(row.get("ocupacion_estimada_pct")),
            alerta_sobrecarga=_flag(row.get("alerta_sobrecarga")),
            alerta_alta_cancelacion=_flag(row.get("alerta_alta_cancelacion")),
        )
        for row in capacidad_rows
    ]
    rows.sort(key=lambda item: (-item.ocupacion_estimada_pct, item.profesional))
    return rows[:limit] if limit is not None else rows


# =============================================================================
# COMMERCIAL
# =============================================================================

def compute_commercial_kpis(
    embudo_rows: Iterable[Mapping[str, Any]],
    canales_rows: Iterable[Mapping[str, Any]],
    as_of: date,
) -> CommercialKPIs:
    """
    Current month commercial KPIs.

    From comercial_canales rows of the month:
        leads, converted clients, revenue, active clients,
        conversion_rate = converted / leads * 100,
        revenue_per_lead = revenue / leads.

    When a channel figure is 0, the comercial_embudo stage counts summed over
    every row passed in (the whole filtered range, not only the month) are
    used instead: leads <- Lead, conversion_rate <- Consulta / Lead * 100,
    converted <- Consulta, active clients <- Tratamiento. revenue_per_lead
    always uses the channel leads.
    """
    current_month, _ = month_window(as_of)
    canales = rows_in_month(canales_rows, current_month, "mes")
    stages = funnel_stage_counts(embudo_rows)

    leads = sum_field(canales, "leads_generados")
    converted = sum_field(canales, "clientes_convertidos")
    revenue = sum_field(canales, "revenue_generado")
    active = sum_field(canales, "clientes_activos_mes")
    conversion = safe_percent(converted, leads)
    revenue_per_lead = safe_ratio(revenue, leads)

    used_fallback = False
    if leads == 0 and stages[FunnelStageName.LEAD] > 0:
        leads = stages[FunnelStageName.LEAD]
        used_fallback = True
    if conversion == 0 and stages[FunnelStageName.LEAD] > 0:
        conversion = safe_percent(stages[FunnelStageName.CONSULTA], stages[FunnelStageName.LEAD])
        used_fallback = True
    if converted == 0 and stages[FunnelStageName.CONSULTA] > 0:
        converted = stages[FunnelStageName.CONSULTA]
        used_fallback = True
    if active == 0 and stages[FunnelStageName.TRATAMIENTO] > 0:
        active = stages[FunnelStageName.TRATAMIENTO]
        used_fallback = True

    if used_fallback:
        logger.debug(f"Commercial KPIs for {current_month} filled from funnel stage counts")

    return CommercialKPIs(
        month=current_month,
        leads=leads,
        converted_clients=converted,
        conversion_rate=KPIValue(value=conversion, tag=classify_rate(conversion, CONVERSION_THRESHOLDS)),
        revenue=revenue,
        revenue_per_lead=revenue_per_lead,
        active_clients=active,
        used_funnel_fallback=used_fallback,
    )
