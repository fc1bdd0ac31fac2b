"""
SQL Query Module for Clinic Metrics Backend.

Provides parameterized SQL queries for the read-only ``dashboard.*`` views,
the filter dropdowns, the debtor lookup and the materialized-view refresh RPC.

Example usage:
    from clinic_metrics.sql import build_view_query, REFRESH_VIEW_QUERY

    query, args = build_view_query("finanzas_diario", filters)
    rows = await conn.fetch(query, *args)

    await conn.execute(REFRESH_VIEW_QUERY, "mv_agenda_resumen")
"""

# =============================================================================
# DASHBOARD QUERIES - dashboard.* views and refresh RPC
# =============================================================================

from clinic_metrics.sql.dashboard_queries import (
    # Query builders
    build_view_query,
    build_filter_options_query,
    get_view_spec,
    # Registry
    ViewSpec,
    VIEW_SPECS,
    FILTER_OPTION_SOURCES,
    # Constants
    DASHBOARD_SCHEMA,
    MATERIALIZED_VIEWS,
    REFRESH_VIEW_QUERY,
    CLIENT_LOOKUP_QUERY,
)

__all__ = [
    'build_view_query',
    'build_filter_options_query',
    'get_view_spec',
    'ViewSpec',
    'VIEW_SPECS',
    'FILTER_OPTION_SOURCES',
    'DASHBOARD_SCHEMA',
    'MATERIALIZED_VIEWS',
    'REFRESH_VIEW_QUERY',
    'CLIENT_LOOKUP_QUERY',
]
