"""
Debt aging buckets.

Buckets by days since last activity (upper bounds inclusive):

    0-30 días | 31-60 días | 61-90 días | 91-180 días | +180 días

Negative or missing days fall into the first bucket, so every row lands in
exactly one bucket and the bucket counts always add up to the row count.

Two entry points:
- bucketize_aging(): from per-client rows (finanzas_recupero_master)
- aging_from_view(): from the pre-aggregated finanzas_deuda_aging view

Both return all five buckets in display order, zero-filled when empty, with
averages recomputed from the summed totals.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from clinic_metrics.models.enums import AgingSegment
from clinic_metrics.models.schemas import AgingBucket
from clinic_metrics.services.metrics import coerce_int_or_zero, field, safe_percent, safe_ratio

logger = logging.getLogger(__name__)

# (inclusive upper bound in days, segment); the last bucket is open ended
AGING_BOUNDS: List[Tuple[float, AgingSegment]] = [
    (30, AgingSegment.D0_30),
    (60, AgingSegment.D31_60),
    (90, AgingSegment.D61_90),
    (180, AgingSegment.D91_180),
    (float("inf"), AgingSegment.D180_PLUS),
]

AGING_ORDER: Dict[AgingSegment, int] = {
    segment: position for position, (_, segment) in enumerate(AGING_BOUNDS, start=1)
}


def aging_segment_for(days: Any) -> AgingSegment:
    """Bucket for a day count."""
    value = coerce_int_or_zero(days)
    for upper_bound, segment in AGING_BOUNDS:
        if value <= upper_bound:
            return segment
    return AgingSegment.D180_PLUS


def _build_buckets(totals: Dict[AgingSegment, List[float]]) -> List[AgingBucket]:
    grand_total = sum(values[1] for values in totals.values())
    largest = max([values[1] for values in totals.values()] + [1.0])

    return [
        AgingBucket(
            segment=segment,
            order=AGING_ORDER[segment],
            client_count=int(count),
            total_debt=debt,
            tqp_debt=tqp,
            average_debt=safe_ratio(debt, count),
            share_pct=safe_percent(debt, grand_total),
            relative_width_pct=debt / largest * 100,
        )
        for segment, (count, debt, tqp) in totals.items()
    ]


def bucketize_aging(
    rows: Iterable[Mapping[str, Any]],
    days_field: str = "dias_desde_ultima_visita",
    debt_field: str = "saldo_total",
    tqp_field: str = "deuda_tqp",
) -> List[AgingBucket]:
    """
    Assign each client row to one aging bucket and total the debt.

    Args:
        rows: Per-client rows. Not modified.
        days_field: Days since last activity column.
        debt_field: Outstanding debt column.
        tqp_field: Treatment-plan debt column.

    Returns:
        Five AgingBucket records in display order.

    Example:
        Days [5, 35, 65, 95, 200] put one client in every bucket.
    """
    totals: Dict[AgingSegment, List[float]] = {
        segment: [0, 0.0, 0.0] for _, segment in AGING_BOUNDS
    }
    for row in rows:
        bucket = totals[aging_segment_for(row.get(days_field))]
        bucket[0] += 1
        bucket[1] += field(row, debt_field)
        bucket[2] += field(row, tqp_field)

    return _build_buckets(totals)


def aging_from_view(rows: Iterable[Mapping[str, Any]]) -> List[AgingBucket]:
    """
    Normalize finanzas_deuda_aging rows into the five buckets.

    Rows carry segmento_antiguedad, cantidad_clientes, deuda_total and
    deuda_tqp. Unknown segment labels are skipped; duplicates are summed.
    """
    totals: Dict[AgingSegment, List[float]] = {
        segment: [0, 0.0, 0.0] for _, segment in AGING_BOUNDS
    }
    for row in rows:
        label = row.get("segmento_antiguedad")
        try:
            segment = AgingSegment(str(label).strip())
        except ValueError:
            logger.warning(f"Unknown aging segment in finanzas_deuda_aging: {label!r}")
            continue
        bucket = totals[segment]
        bucket[0] += field(row, "cantidad_clientes")
        bucket[1] += field(row, "deuda_total")
        bucket[2] += field(row, "deuda_tqp")

    return _build_buckets(totals)
