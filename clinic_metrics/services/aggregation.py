"""
Aggregation-by-key reducer for dashboard view rows.

Groups rows by a dimension key, SUMS the raw measures per key, and only then
computes ratios from the sums. Averaging per-row ratios is never done:
10/20 and 1/100 combine to 11/120 (9.17%), not to the mean of 50% and 1%.

Key Functions:
- aggregate_by_key(): generic group-and-sum with RatioSpec ratios
- aggregate_channels(): comercial_canales by origen (conversion, revenue per lead/client)
- aggregate_heatmap(), heatmap_grid(): operaciones_heatmap by weekday x hour
- estimate_billing_by_key(): billed revenue per professional/branch with an
  explicit estimated collection rate

Ordering:
    Results are sorted descending by the primary measure (sort_by, default the
    first measure) with ties broken by key ascending, so output is
    deterministic for any input order.

Missing keys:
    Rows whose key is null or blank are grouped under "Sin asignar".

Example:
    >>> rows = [
    ...     {"origen": "Instagram", "leads_generados": 20, "clientes_convertidos": 10},
    ...     {"origen": "Instagram", "leads_generados": 100, "clientes_convertidos": 1},
    ... ]
    >>> result = aggregate_by_key(
    ...     rows, "origen", ["leads_generados", "clientes_convertidos"],
    ...     ratios={"tasa": RatioSpec("clientes_convertidos", "leads_generados")},
    ... )
    >>> round(result[0].ratios["tasa"], 2)
    9.17
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Union

import pandas as pd

from clinic_metrics.models.enums import ThresholdTag
from clinic_metrics.models.schemas import (
    AggregatedDimension,
    BillingEstimateRow,
    ChannelPerformance,
    HeatmapCell,
)
from clinic_metrics.services.formatting import classify_heatmap_rate, parse_local_date
from clinic_metrics.services.metrics import (
    coerce_int_or_zero,
    field,
    safe_ratio,
    validate_unit_rate,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

UNASSIGNED_KEY = "Sin asignar"

# Weekday numbering of operaciones_heatmap: 1 = Monday .. 7 = Sunday
DAY_LABELS: Dict[int, str] = {
    1: "Lun", 2: "Mar", 3: "Mié", 4: "Jue", 5: "Vie", 6: "Sáb", 7: "Dom",
}

# Opening hours shown on the heatmap grid
HEATMAP_HOURS = range(8, 21)

RowKey = Union[str, Callable[[Mapping[str, Any]], Any]]


@dataclass(frozen=True)
class RatioSpec:
    """
    Ratio computed from summed measures.

    value = sum(numerator) / sum(denominator) * scale, 0 when the denominator is 0.
    """
    numerator: str
    denominator: str
    scale: float = 100.0


# =============================================================================
# GENERIC REDUCER
# =============================================================================

def resolve_key(row: Mapping[str, Any], key: RowKey) -> str:
    """Read the dimension key of a row; null/blank keys become "Sin asignar"."""
    raw = key(row) if callable(key) else row.get(key)
    if raw is None:
        return UNASSIGNED_KEY
    text = str(raw).strip()
    return text or UNASSIGNED_KEY


def aggregate_by_key(
    rows: Iterable[Mapping[str, Any]],
    key: RowKey,
    measures: Sequence[str],
    ratios: Optional[Dict[str, RatioSpec]] = None,
    sort_by: Optional[str] = None,
) -> List[AggregatedDimension]:
    """
    Group rows by key, sum measures, then derive ratios from the sums.

    Args:
        rows: View rows (dicts or asyncpg Records). Not modified.
        key: Field name or callable returning the group key for a row.
        measures: Numeric fields to sum. Values are coerced with coerce_numeric_or_zero.
        ratios: Named RatioSpec definitions over the summed measures.
        sort_by: Measure or ratio name used for ordering. Defaults to measures[0].

    Returns:
        One AggregatedDimension per distinct key, sorted descending by sort_by
        with ties broken by key. Empty input gives an empty list.

    Raises:
        ValueError: If no measures are given.
    """
    if not measures:
        raise ValueError("aggregate_by_key requires at least one measure")

    measure_names = list(measures)
    records = [
        [resolve_key(row, key)] + [field(row, name) for name in measure_names]
        for row in rows
    ]
    if not records:
        return []

    frame = pd.DataFrame.from_records(records, columns=["_key"] + measure_names)
    grouped = frame.groupby("_key", sort=True)
    sums = grouped[measure_names].sum()
    counts = grouped.size()

    results: List[AggregatedDimension] = []
    for key_value, sums_row in sums.iterrows():
        totals = {name: float(sums_row[name]) for name in measure_names}
        derived = {
            name: safe_ratio(totals.get(spec.numerator, 0.0), totals.get(spec.denominator, 0.0)) * spec.scale
            for name, spec in (ratios or {}).items()
        }
        results.append(
            AggregatedDimension(
                key=str(key_value),
                row_count=int(counts[key_value]),
                measures=totals,
                ratios=derived,
            )
        )

    primary = sort_by or measure_names[0]

    def _sort_value(item: AggregatedDimension) -> float:
        if primary in item.measures:
            return item.measures[primary]
        return item.ratios.get(primary, 0.0)

    results.sort(key=lambda item: (-_sort_value(item), item.key))
    return results


# =============================================================================
# CHANNEL PERFORMANCE
# =============================================================================

CHANNEL_MEASURES = [
    "leads_generados",
    "clientes_convertidos",
    "clientes_con_revenue",
    "revenue_generado",
    "clientes_activos_mes",
]

CHANNEL_RATIOS = {
    "tasa_conversion": RatioSpec("clientes_convertidos", "leads_generados"),
    "revenue_por_lead": RatioSpec("revenue_generado", "leads_generados", scale=1.0),
    "revenue_por_cliente": RatioSpec("revenue_generado", "clientes_convertidos", scale=1.0),
}


def aggregate_channels(rows: Iterable[Mapping[str, Any]]) -> List[ChannelPerformance]:
    """
    Channel table: comercial_canales rows aggregated by origen across months.

    Returns:
        ChannelPerformance per origen sorted by revenue descending.
    """
    dimensions = aggregate_by_key(
        rows,
        "origen",
        CHANNEL_MEASURES,
        ratios=CHANNEL_RATIOS,
        sort_by="revenue_generado",
    )
    return [
        ChannelPerformance(
            origen=dim.key,
            leads=dim.measures["leads_generados"],
            converted_clients=dim.measures["clientes_convertidos"],
            clients_with_revenue=dim.measures["clientes_con_revenue"],
            revenue=dim.measures["revenue_generado"],
            active_clients=dim.measures["clientes_activos_mes"],
            conversion_rate=dim.ratios["tasa_conversion"],
            revenue_per_lead=dim.ratios["revenue_por_lead"],
            revenue_per_client=dim.ratios["revenue_por_cliente"],
        )
        for dim in dimensions
    ]


# =============================================================================
# WEEKDAY x HOUR HEATMAP
# =============================================================================

def _heatmap_key(row: Mapping[str, Any]) -> Optional[str]:
    day = coerce_int_or_zero(row.get("dia_semana_num"))
    if day not in DAY_LABELS:
        return None
    hour = coerce_int_or_zero(row.get("hora"))
    return f"{day}:{hour:02d}"


def aggregate_heatmap(rows: Iterable[Mapping[str, Any]]) -> List[HeatmapCell]:
    """
    Sum scheduled, attended and revenue per (weekday, hour) and derive attendance.

    attendance_rate = sum(turnos_asistidos) / sum(turnos_agendados) * 100

    Rows with a weekday outside 1..7 are skipped.

    Returns:
        HeatmapCell list ordered by weekday then hour.
    """
    valid_rows = []
    for row in rows:
        if _heatmap_key(row) is None:
            logger.debug(f"Skipping heatmap row with invalid weekday: {row.get('dia_semana_num')!r}")
            continue
        valid_rows.append(row)

    dimensions = aggregate_by_key(
        valid_rows,
        _heatmap_key,
        ["turnos_agendados", "turnos_asistidos", "revenue"],
        ratios={"tasa_asistencia": RatioSpec("turnos_asistidos", "turnos_agendados")},
    )

    cells = []
    for dim in dimensions:
        day_text, hour_text = dim.key.split(":")
        day = int(day_text)
        rate = dim.ratios["tasa_asistencia"]
        cells.append(
            HeatmapCell(
                day_of_week=day,
                day_label=DAY_LABELS[day],
                hour=int(hour_text),
                scheduled=dim.measures["turnos_agendados"],
                attended=dim.measures["turnos_asistidos"],
                revenue=dim.measures["revenue"],
                attendance_rate=rate,
                tag=classify_heatmap_rate(rate),
            )
        )

    cells.sort(key=lambda cell: (cell.day_of_week, cell.hour))
    return cells


def heatmap_grid(
    cells: Sequence[HeatmapCell],
    hours: Iterable[int] = HEATMAP_HOURS,
) -> List[HeatmapCell]:
    """
    Full 7-day grid over the given hours with zero-filled empty slots.

    Cells outside the hour range are not part of the grid.
    """
    by_slot = {(cell.day_of_week, cell.hour): cell for cell in cells}
    grid = []
    for day, label in DAY_LABELS.items():
        for hour in hours:
            cell = by_slot.get((day, hour))
            if cell is None:
                cell = HeatmapCell(day_of_week=day, day_label=label, hour=hour, tag=ThresholdTag.NEUTRAL)
            grid.append(cell)
    return grid


# =============================================================================
# ESTIMATED COLLECTIONS BY KEY
# =============================================================================

def estimate_billing_by_key(
    rows: Iterable[Mapping[str, Any]],
    key: RowKey,
    estimated_collection_rate: float,
    revenue_field: str = "revenue",
    scheduled_field: str = "turnos_agendados",
    attended_field: str = "turnos_asistidos",
    date_field: str = "fecha",
) -> List[BillingEstimateRow]:
    """
    Billed revenue per key with an estimated collected amount.

    The views carry billed revenue per professional/branch but no payments, so
    collected = billed * estimated_collection_rate. The rate is a labelled
    assumption and every returned row has is_estimate=True.

    Args:
        rows: operaciones_diario or finanzas_diario rows.
        key: Grouping field ("profesional", "sucursal") or callable.
        estimated_collection_rate: Assumed collected share in [0, 1].
        revenue_field: Billed revenue column.
        scheduled_field: Scheduled appointments column.
        attended_field: Attended appointments column.
        date_field: Day column used to count active days.

    Returns:
        BillingEstimateRow per key sorted by billed descending.

    Raises:
        ValueError: If estimated_collection_rate is outside [0, 1].
    """
    rate = validate_unit_rate(estimated_collection_rate, "estimated_collection_rate")

    row_list = list(rows)
    dimensions = aggregate_by_key(
        row_list,
        key,
        [revenue_field, scheduled_field, attended_field],
        ratios={"tasa_asistencia": RatioSpec(attended_field, scheduled_field)},
    )

    active_days: Dict[str, Set[Any]] = {}
    for row in row_list:
        day = parse_local_date(row.get(date_field))
        if day is not None:
            active_days.setdefault(resolve_key(row, key), set()).add(day)

    estimates = []
    for dim in dimensions:
        billed = dim.measures[revenue_field]
        collected = billed * rate
        estimates.append(
            BillingEstimateRow(
                key=dim.key,
                row_count=dim.row_count,
                active_days=len(active_days.get(dim.key, ())),
                scheduled=dim.measures[scheduled_field],
                attended=dim.measures[attended_field],
                attendance_rate=dim.ratios["tasa_asistencia"],
                billed=billed,
                estimated_collected=collected,
                estimated_gap=billed - collected,
                estimated_collection_rate=rate,
            )
        )
    return estimates
