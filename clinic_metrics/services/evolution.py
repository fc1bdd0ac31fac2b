"""
Monthly evolution series.

All series bucket rows by "YYYY-MM" (month_key of the row's date), sum the
raw measures per month and derive rates from the sums. Months are returned in
ascending order; rows whose date cannot be parsed are skipped.

Key Functions:
- operations_evolution(): operaciones_diario + operaciones_capacidad per month
- collections_evolution(): finanzas_diario collected estimate from per-day
  attended-with-revenue ratios
- billing_evolution(): finanzas_diario billed revenue with an explicit
  estimated collection rate
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping

from clinic_metrics.models.schemas import (
    MonthlyBillingPoint,
    MonthlyCollectionsPoint,
    MonthlyOperationsPoint,
)
from clinic_metrics.services.aggregation import RatioSpec, aggregate_by_key
from clinic_metrics.services.formatting import month_key
from clinic_metrics.services.metrics import (
    field,
    round_half_up,
    safe_percent,
    safe_ratio,
    validate_unit_rate,
)

logger = logging.getLogger(__name__)

OPERATIONS_MEASURES = [
    "turnos_agendados",
    "turnos_asistidos",
    "turnos_cancelados",
    "turnos_inasistidos",
    "revenue",
]

OPERATIONS_RATIOS = {
    "tasa_asistencia": RatioSpec("turnos_asistidos", "turnos_agendados"),
    "tasa_cancelacion": RatioSpec("turnos_cancelados", "turnos_agendados"),
    "tasa_inasistencia": RatioSpec("turnos_inasistidos", "turnos_agendados"),
    "revenue_por_turno": RatioSpec("revenue", "turnos_asistidos", scale=1.0),
}


def _dated_rows(rows: Iterable[Mapping[str, Any]], date_field: str) -> List[Mapping[str, Any]]:
    return [row for row in rows if month_key(row.get(date_field))]


def operations_evolution(
    diario_rows: Iterable[Mapping[str, Any]],
    capacidad_rows: Iterable[Mapping[str, Any]] = (),
) -> List[MonthlyOperationsPoint]:
    """
    Monthly appointments, rates and average occupancy.

    average_occupancy is the mean of ocupacion_estimada_pct over the month's
    operaciones_capacidad rows (one row per professional), or None when the
    month has no capacity rows.
    """
    monthly = aggregate_by_key(
        _dated_rows(diario_rows, "fecha"),
        lambda row: month_key(row.get("fecha")),
        OPERATIONS_MEASURES,
        ratios=OPERATIONS_RATIOS,
    )

    occupancy = {
        dim.key: safe_ratio(dim.measures["ocupacion_estimada_pct"], dim.row_count)
        for dim in aggregate_by_key(
            _dated_rows(capacidad_rows, "periodo_mes"),
            lambda row: month_key(row.get("periodo_mes")),
            ["ocupacion_estimada_pct"],
        )
    }

    points = [
        MonthlyOperationsPoint(
            month=dim.key,
            scheduled=dim.measures["turnos_agendados"],
            attended=dim.measures["turnos_asistidos"],
            cancelled=dim.measures["turnos_cancelados"],
            no_show=dim.measures["turnos_inasistidos"],
            revenue=dim.measures["revenue"],
            attendance_rate=dim.ratios["tasa_asistencia"],
            cancellation_rate=dim.ratios["tasa_cancelacion"],
            no_show_rate=dim.ratios["tasa_inasistencia"],
            revenue_per_appointment=dim.ratios["revenue_por_turno"],
            average_occupancy=occupancy.get(dim.key),
        )
        for dim in monthly
    ]
    points.sort(key=lambda point: point.month)
    return points


def collections_evolution(
    diario_rows: Iterable[Mapping[str, Any]],
    fallback_collection_rate: float,
) -> List[MonthlyCollectionsPoint]:
    """
    Monthly billed vs estimated collected revenue.

    For each finanzas_diario row:
        ratio     = turnos_con_revenue / turnos_asistidos
                    (fallback_collection_rate when nothing was attended)
        collected = revenue_facturado * ratio

    Per month: collection_rate = sum(collected) / sum(billed) * 100, rounded
    to one decimal.

    Raises:
        ValueError: If fallback_collection_rate is outside [0, 1].
    """
    fallback = validate_unit_rate(fallback_collection_rate, "fallback_collection_rate")

    totals: Dict[str, List[float]] = {}
    for row in diario_rows:
        key = month_key(row.get("fecha"))
        if not key:
            continue
        attended = field(row, "turnos_asistidos")
        billed = field(row, "revenue_facturado")
        used_fallback = attended <= 0
        ratio = fallback if used_fallback else field(row, "turnos_con_revenue") / attended

        month = totals.setdefault(key, [0.0, 0.0, 0])
        month[0] += billed
        month[1] += billed * ratio
        month[2] += int(used_fallback)

    return [
        MonthlyCollectionsPoint(
            month=key,
            billed=billed,
            collected=collected,
            collection_rate=round_half_up(safe_percent(collected, billed), 1),
            fallback_rows=int(fallback_rows),
        )
        for key, (billed, collected, fallback_rows) in sorted(totals.items())
    ]


def billing_evolution(
    diario_rows: Iterable[Mapping[str, Any]],
    estimated_collection_rate: float,
) -> List[MonthlyBillingPoint]:
    """
    Monthly billed revenue with collected = billed * estimated_collection_rate.

    Every point is flagged is_estimate=True.

    Raises:
        ValueError: If estimated_collection_rate is outside [0, 1].
    """
    rate = validate_unit_rate(estimated_collection_rate, "estimated_collection_rate")

    monthly = aggregate_by_key(
        _dated_rows(diario_rows, "fecha"),
        lambda row: month_key(row.get("fecha")),
        ["revenue_facturado"],
    )
    points = [
        MonthlyBillingPoint(
            month=dim.key,
            billed=dim.measures["revenue_facturado"],
            estimated_collected=dim.measures["revenue_facturado"] * rate,
            estimated_collection_rate=rate,
        )
        for dim in monthly
    ]
    points.sort(key=lambda point: point.month)
    return points
