"""
Dashboard Data Access Service.

Reads the ``dashboard.*`` views through the asyncpg pool and caches the rows
in the injected ViewCache. Rows are returned as plain dicts so the derivation
services can treat them as mappings.

Key Functions:
- resolve_filters(): build DashboardFilters from request parameters
- default_date_range(): last N months ending today
- fetch_view(): cached read of one view for a filter set
- fetch_filter_options(): cached distinct values for the filter dropdowns
- fetch_client(): uncached single-debtor lookup

Caching:
    Daily views (finanzas_diario, operaciones_diario) use
    CACHE_TTL_DAILY_SECONDS, filter dropdowns use CACHE_TTL_FILTER_SECONDS and
    every other view uses CACHE_TTL_VIEW_SECONDS. Cache entries are keyed by
    (view, filters, limit).

Error Handling:
    Database errors (asyncpg.PostgresError, OSError, timeouts) propagate to
    the caller. Nothing is cached for a failed read.
"""

import calendar
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from asyncpg import Pool

from clinic_metrics.core.cache import ViewCache
from clinic_metrics.core.config import Settings
from clinic_metrics.core.database import get_db_pool
from clinic_metrics.models.schemas import DashboardFilters
from clinic_metrics.sql.dashboard_queries import (
    CLIENT_LOOKUP_QUERY,
    FILTER_OPTION_SOURCES,
    build_filter_options_query,
    build_view_query,
)

logger = logging.getLogger(__name__)

DAILY_VIEWS = frozenset({"finanzas_diario", "operaciones_diario"})

# Filter values meaning "no filter"
ALL_SENTINELS = frozenset({"", "all", "todas", "todos"})


# =============================================================================
# FILTERS
# =============================================================================

def shift_months(day: date, months: int) -> date:
    """
    Move a date by a number of calendar months, clamping the day of month.

    Example:
        >>> shift_months(date(2025, 3, 31), -1)
        datetime.date(2025, 2, 28)
    """
    month_index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(month_index, 12)
    last_day = calendar.monthrange(year, month + 1)[1]
    return date(year, month + 1, min(day.day, last_day))


def default_date_range(today: date, months: int) -> Tuple[date, date]:
    """(start, end) covering the last `months` months and ending today."""
    return shift_months(today, -months), today


def _normalize_filter(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = value.strip()
    if text.lower() in ALL_SENTINELS:
        return None
    return text


def resolve_filters(
    today: date,
    lookback_months: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    sucursal: Optional[str] = None,
    profesional: Optional[str] = None,
    origen: Optional[str] = None,
) -> DashboardFilters:
    """
    Build DashboardFilters from optional request parameters.

    Missing dates default to the last `lookback_months` months ending today.
    Blank values and "all" mean no filter.

    Raises:
        ValueError: If start_date is after end_date.
    """
    default_start, default_end = default_date_range(today, lookback_months)
    start = start_date or default_start
    end = end_date or default_end
    if start > end:
        raise ValueError(f"start_date {start.isoformat()} is after end_date {end.isoformat()}")

    return DashboardFilters(
        start_date=start,
        end_date=end,
        sucursal=_normalize_filter(sucursal),
        profesional=_normalize_filter(profesional),
        origen=_normalize_filter(origen),
    )


# =============================================================================
# VIEW READS
# =============================================================================

def ttl_for_view(view: str, settings: Settings) -> int:
    """Cache lifetime for a view's rows."""
    if view in DAILY_VIEWS:
        return settings.cache_ttl_daily_seconds
    return settings.cache_ttl_view_seconds


async def _fetch_rows(pool: Optional[Pool], query: str, args: List[Any]) -> List[Dict[str, Any]]:
    pool = pool or await get_db_pool()
    async with pool.acquire() as conn:
        records = await conn.fetch(query, *args)
    return [dict(record) for record in records]


async def fetch_view(
    view: str,
    filters: Optional[DashboardFilters],
    cache: ViewCache,
    settings: Settings,
    pool: Optional[Pool] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Read one dashboard view, served from the cache while fresh.

    Args:
        view: Registered view name.
        filters: Date range and optional dimension filters. None reads the
            whole view.
        cache: ViewCache holding previous reads.
        settings: Application settings (cache TTLs).
        pool: asyncpg pool. Defaults to the application pool.
        limit: Optional row limit.

    Returns:
        List of row dicts in the view's ORDER BY order.

    Raises:
        ValueError: If the view is not registered.
        asyncpg.PostgresError: If the query fails.
    """
    query, args = build_view_query(view, filters, limit)
    params = (filters.cache_key() if filters is not None else (), limit)

    async def _load() -> List[Dict[str, Any]]:
        rows = await _fetch_rows(pool, query, args)
        logger.debug(f"Fetched {len(rows)} rows from dashboard.{view}")
        return rows

    return await cache.get_or_load(view, params, ttl_for_view(view, settings), _load)


async def fetch_filter_options(
    option: str,
    cache: ViewCache,
    settings: Settings,
    pool: Optional[Pool] = None,
) -> List[str]:
    """
    Distinct values for a filter dropdown ("sucursales", "profesionales", "origenes").

    Cached under the source view, so invalidating that view also drops its
    dropdown values.

    Raises:
        ValueError: If the option is unknown.
    """
    query = build_filter_options_query(option)
    view, column = FILTER_OPTION_SOURCES[option]

    rows = await cache.get_or_load(
        view,
        ("options", column),
        settings.cache_ttl_filter_seconds,
        lambda: _fetch_rows(pool, query, []),
    )
    return [str(row["value"]) for row in rows]


async def fetch_client(id_cliente: str, pool: Optional[Pool] = None) -> Optional[Dict[str, Any]]:
    """
    Read one debtor from finanzas_recupero_master.

    Returns:
        Row dict, or None when the client is not in the view.
    """
    pool = pool or await get_db_pool()
    async with pool.acquire() as conn:
        record = await conn.fetchrow(CLIENT_LOOKUP_QUERY, str(id_cliente))
    return dict(record) if record is not None else None
