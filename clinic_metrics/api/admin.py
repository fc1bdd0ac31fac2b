"""
FastAPI router module for dashboard maintenance.

Key Endpoints:
- POST /admin/refresh: refresh the materialized views and clear the view cache
- POST /admin/cache/invalidate: clear the view cache (all views or one view)

A refresh where some views fail still returns 200; the per-view results and
success=false describe the failure.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from clinic_metrics.core.dependencies import PoolDep, ViewCacheDep
from clinic_metrics.models.schemas import DashboardRefreshResponse
from clinic_metrics.services.view_refresh import refresh_dashboard_views
from clinic_metrics.sql.dashboard_queries import VIEW_SPECS


logger = logging.getLogger(__name__)

router = APIRouter()


class CacheInvalidationResponse(BaseModel):
    """Result of a manual cache invalidation."""
    view: Optional[str] = None
    entries_removed: int


@router.post("/refresh", response_model=DashboardRefreshResponse)
async def refresh_dashboard(cache: ViewCacheDep, pool: PoolDep) -> DashboardRefreshResponse:
    """Refresh every materialized view behind the dashboard."""
    try:
        return await refresh_dashboard_views(cache, pool)
    except Exception as e:
        logger.error(f"Error refreshing dashboard: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to refresh dashboard: {str(e)}")


@router.post("/cache/invalidate", response_model=CacheInvalidationResponse)
async def invalidate_cache(
    cache: ViewCacheDep,
    view: Optional[str] = Query(default=None, description="Only this dashboard view; all views when omitted"),
) -> CacheInvalidationResponse:
    """Drop cached view rows."""
    if view is not None and view not in VIEW_SPECS:
        raise HTTPException(status_code=400, detail=f"Unknown dashboard view: {view}")
    return CacheInvalidationResponse(view=view, entries_removed=cache.invalidate(view))
