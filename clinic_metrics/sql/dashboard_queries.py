"""
Dashboard Queries Module for Clinic Metrics Backend.

Provides parameterized PostgreSQL queries over the read-only ``dashboard.*``
views and the materialized-view refresh RPC.

Every filter value is bound as a ``$n`` parameter; only identifiers from the
VIEW_SPECS registry below are ever placed into the SQL text. Builders return
``(query, args)`` tuples ready for ``conn.fetch(query, *args)``.

Date filtering:
- Daily views (finanzas_diario, operaciones_diario) filter ``fecha`` by the
  inclusive [start_date, end_date] range.
- Monthly views (operaciones_capacidad, comercial_embudo, comercial_canales)
  filter their month column from the first day of start_date's month, so the
  month containing start_date is included.
- Snapshot views (debtors, aging, priorities, per-professional and
  per-procedure summaries, heatmap) have no date column.

This module follows the Repository Pattern for clean separation between
business logic and data access.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from clinic_metrics.models.schemas import DashboardFilters


# =============================================================================
# CONSTANTS
# =============================================================================

DASHBOARD_SCHEMA: str = "dashboard"

# Materialized views behind the dashboard.* views, refreshed in this order
MATERIALIZED_VIEWS: Tuple[str, ...] = (
    "mv_agenda_resumen",
    "mv_cartera_analisis",
    "mv_clientes_resumen",
    "mv_leads_pipeline",
    "mv_saldos_consolidado",
)

REFRESH_VIEW_QUERY: str = "SELECT refresh_view($1)"


@dataclass(frozen=True)
class ViewSpec:
    """
    Query shape for one dashboard view.

    Attributes:
        name: View name inside the dashboard schema.
        date_column: Column filtered by the date range, or None for snapshot views.
        monthly: True when date_column holds one row per month.
        filters: Optional equality filters supported by the view.
        order_by: ORDER BY clause.
        condition: Fixed WHERE condition applied to every read.
    """
    name: str
    date_column: Optional[str] = None
    monthly: bool = False
    filters: Tuple[str, ...] = ()
    order_by: str = "1"
    condition: Optional[str] = None


VIEW_SPECS: Dict[str, ViewSpec] = {
    spec.name: spec
    for spec in (
        ViewSpec(
            "finanzas_diario",
            date_column="fecha",
            filters=("sucursal",),
            order_by="fecha ASC",
        ),
        ViewSpec(
            "finanzas_recupero_master",
            filters=("sucursal",),
            order_by="saldo_total DESC",
            condition="saldo_total > 0",
        ),
        ViewSpec(
            "finanzas_deudores",
            filters=("sucursal",),
            order_by="deuda_total DESC",
            condition="deuda_total > 0",
        ),
        ViewSpec("finanzas_deuda_aging", order_by="orden ASC"),
        ViewSpec("finanzas_prioridades", order_by="orden ASC"),
        ViewSpec("finanzas_por_profesional", order_by="revenue_generado DESC NULLS LAST"),
        ViewSpec("finanzas_por_procedimiento", order_by="revenue_total DESC NULLS LAST"),
        ViewSpec(
            "operaciones_diario",
            date_column="fecha",
            filters=("sucursal", "profesional"),
            order_by="fecha ASC",
        ),
        ViewSpec(
            "operaciones_heatmap",
            filters=("sucursal", "profesional"),
            order_by="dia_semana_num ASC, hora ASC",
        ),
        ViewSpec(
            "operaciones_capacidad",
            date_column="periodo_mes",
            monthly=True,
            filters=("sucursal", "profesional"),
            order_by="ocupacion_estimada_pct DESC",
        ),
        ViewSpec(
            "comercial_embudo",
            date_column="mes",
            monthly=True,
            filters=("origen",),
            order_by="mes ASC, orden_etapa ASC",
        ),
        ViewSpec(
            "comercial_canales",
            date_column="mes",
            monthly=True,
            filters=("origen",),
            order_by="revenue_generado DESC",
        ),
    )
}

# Filter dropdown name -> (view, column) the distinct values are read from
FILTER_OPTION_SOURCES: Dict[str, Tuple[str, str]] = {
    "sucursales": ("finanzas_diario", "sucursal"),
    "profesionales": ("operaciones_diario", "profesional"),
    "origenes": ("comercial_canales", "origen"),
}


# =============================================================================
# VIEW READS
# =============================================================================

def get_view_spec(view: str) -> ViewSpec:
    """
    Look up a registered dashboard view.

    Raises:
        ValueError: If the view is not registered.
    """
    try:
        return VIEW_SPECS[view]
    except KeyError:
        raise ValueError(f"Unknown dashboard view: {view}") from None


def build_view_query(
    view: str,
    filters: Optional[DashboardFilters] = None,
    limit: Optional[int] = None,
) -> Tuple[str, List[Any]]:
    """
    Build the SELECT for one dashboard view.

    Filters the view does not support are ignored (a branch filter does not
    apply to the channel views, for example).

    Args:
        view: Registered view name (e.g. "finanzas_diario").
        filters: Date range and optional branch/professional/channel filters.
        limit: Optional row limit, bound as a parameter.

    Returns:
        Tuple of (query, args) with ``$n`` placeholders.

    Raises:
        ValueError: If the view is not registered or limit is not positive.

    Example:
        >>> query, args = build_view_query("operaciones_diario", filters)
        >>> rows = await conn.fetch(query, *args)
    """
    spec = get_view_spec(view)
    conditions: List[str] = []
    args: List[Any] = []

    if spec.condition:
        conditions.append(spec.condition)

    if filters is not None:
        if spec.date_column:
            start = filters.start_date.replace(day=1) if spec.monthly else filters.start_date
            args.extend([start, filters.end_date])
            conditions.append(f"{spec.date_column}::date BETWEEN ${len(args) - 1} AND ${len(args)}")

        for column in spec.filters:
            value = getattr(filters, column)
            if value:
                args.append(value)
                conditions.append(f"{column} = ${len(args)}")

    query = f"SELECT * FROM {DASHBOARD_SCHEMA}.{spec.name}"
    if conditions:
        query += " WHERE " + " AND ".join(conditions)
    query += f" ORDER BY {spec.order_by}"

    if limit is not None:
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")
        args.append(limit)
        query += f" LIMIT ${len(args)}"

    return query, args


# =============================================================================
# FILTER OPTIONS AND LOOKUPS
# =============================================================================

def build_filter_options_query(option: str) -> str:
    """
    Distinct non-blank values for a filter dropdown.

    Args:
        option: One of "sucursales", "profesionales", "origenes".

    Raises:
        ValueError: If the option is unknown.
    """
    try:
        view, column = FILTER_OPTION_SOURCES[option]
    except KeyError:
        raise ValueError(f"Unknown filter option: {option}") from None

    return (
        f"SELECT DISTINCT {column} AS value "
        f"FROM {DASHBOARD_SCHEMA}.{view} "
        f"WHERE {column} IS NOT NULL AND btrim({column}) <> '' "
        f"ORDER BY 1"
    )


# Single debtor from the recovery view, by client id
CLIENT_LOOKUP_QUERY: str = (
    f"SELECT * FROM {DASHBOARD_SCHEMA}.finanzas_recupero_master "
    f"WHERE id_cliente::text = $1 "
    f"LIMIT 1"
)
