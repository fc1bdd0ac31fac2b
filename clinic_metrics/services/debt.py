"""
Debt composition.

Splits outstanding debt into TQP (treatment-plan balance) and extras:

    deuda_total             = deuda_tqp + deuda_extras
    pct_tqp / pct_extras    = part / deuda_total * 100        (0 when no debt)
    deuda_promedio          = deuda_total / clientes_total    (0 when no clients)
    ratio_deuda_facturacion = deuda_total / billed revenue * 100
                              (0 when revenue is missing or 0)
"""

from typing import Any, Iterable, Mapping, Optional

from clinic_metrics.models.schemas import DebtComposition
from clinic_metrics.services.metrics import (
    coerce_int_or_zero,
    coerce_numeric_or_zero,
    safe_percent,
    safe_ratio,
    sum_field,
)


def compute_debt_composition(
    deuda_tqp: Any,
    deuda_extras: Any,
    clientes_total: Any,
    revenue_total: Optional[Any] = None,
) -> DebtComposition:
    """
    Composition from already summed totals.

    Example:
        >>> composition = compute_debt_composition(600_000, 400_000, 10, 8_000_000)
        >>> composition.pct_tqp, composition.deuda_promedio, composition.ratio_deuda_facturacion
        (60.0, 100000.0, 12.5)
    """
    tqp = coerce_numeric_or_zero(deuda_tqp)
    extras = coerce_numeric_or_zero(deuda_extras)
    clients = coerce_int_or_zero(clientes_total)
    total = tqp + extras

    return DebtComposition(
        deuda_tqp=tqp,
        deuda_extras=extras,
        deuda_total=total,
        pct_tqp=safe_percent(tqp, total),
        pct_extras=safe_percent(extras, total),
        clientes_total=clients,
        deuda_promedio=safe_ratio(total, clients),
        ratio_deuda_facturacion=safe_percent(total, revenue_total),
    )


def debt_composition_from_rows(
    recupero_rows: Iterable[Mapping[str, Any]],
    revenue_total: Optional[Any] = None,
) -> DebtComposition:
    """Composition over finanzas_recupero_master rows (one row per client)."""
    rows = list(recupero_rows)
    return compute_debt_composition(
        sum_field(rows, "deuda_tqp"),
        sum_field(rows, "deuda_extras"),
        len(rows),
        revenue_total,
    )
