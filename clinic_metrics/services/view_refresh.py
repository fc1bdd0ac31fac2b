"""
Materialized View Refresh Service.

Refreshes the materialized views behind the ``dashboard.*`` views by calling
the ``refresh_view(view_name)`` database function once per view, then drops
every ViewCache entry so the next read sees the refreshed data.

A failing view does not abort the run: its error is recorded in its
ViewRefreshResult and the remaining views are still refreshed. The response
reports success only when every view refreshed. Any other error propagates
to the caller, and the cache is invalidated in every case.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

import asyncpg
from asyncpg import Pool

from clinic_metrics.core.cache import ViewCache
from clinic_metrics.core.database import get_db_pool
from clinic_metrics.models.enums import RefreshStatus
from clinic_metrics.models.schemas import DashboardRefreshResponse, ViewRefreshResult
from clinic_metrics.sql.dashboard_queries import MATERIALIZED_VIEWS, REFRESH_VIEW_QUERY

logger = logging.getLogger(__name__)


async def refresh_dashboard_views(
    cache: ViewCache,
    pool: Optional[Pool] = None,
    views: Sequence[str] = MATERIALIZED_VIEWS,
) -> DashboardRefreshResponse:
    """
    Refresh each materialized view in order and invalidate the view cache.

    Args:
        cache: ViewCache to invalidate after the refresh.
        pool: asyncpg pool. Defaults to the application pool.
        views: Materialized view names, refreshed in the given order.

    Returns:
        DashboardRefreshResponse with one ViewRefreshResult per view.

    Example:
        >>> response = await refresh_dashboard_views(get_view_cache())
        >>> response.message
        '5/5 vistas actualizadas'
    """
    pool = pool or await get_db_pool()
    logger.info(f"Starting dashboard refresh of {len(views)} views")

    results: List[ViewRefreshResult] = []
    try:
        async with pool.acquire() as conn:
            for view in views:
                try:
                    await conn.execute(REFRESH_VIEW_QUERY, view)
                except (asyncpg.PostgresError, OSError, asyncio.TimeoutError) as e:
                    logger.error(f"Error refreshing {view}: {e}")
                    results.append(ViewRefreshResult(view=view, status=RefreshStatus.ERROR, error=str(e)))
                    continue
                logger.info(f"Refreshed {view}")
                results.append(ViewRefreshResult(view=view, status=RefreshStatus.SUCCESS))
    finally:
        # Views refreshed before an aborting error must not be served stale
        invalidated = cache.invalidate()

    refreshed = sum(1 for result in results if result.status == RefreshStatus.SUCCESS)

    logger.info(f"Dashboard refresh complete: {refreshed}/{len(views)} views refreshed")

    return DashboardRefreshResponse(
        success=refreshed == len(views),
        message=f"{refreshed}/{len(views)} vistas actualizadas",
        refreshed=refreshed,
        total=len(views),
        results=results,
        cache_entries_invalidated=invalidated,
        timestamp=datetime.now(timezone.utc),
    )
