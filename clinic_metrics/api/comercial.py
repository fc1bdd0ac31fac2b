"""
FastAPI router module for the commercial dashboard.

Key Endpoints:
- GET /comercial/kpis: current month leads, conversion and revenue per lead
- GET /comercial/embudo: Lead -> Consulta -> Tratamiento -> Recurrente funnel
- GET /comercial/canales: performance per lead channel (origen)
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException

from clinic_metrics.api.params import AsOfDep, FiltersDep, period_filters
from clinic_metrics.core.dependencies import PoolDep, SettingsDep, ViewCacheDep
from clinic_metrics.models.schemas import ChannelPerformance, CommercialKPIs, FunnelResponse
from clinic_metrics.services.aggregation import aggregate_channels
from clinic_metrics.services.dashboard_data import fetch_view
from clinic_metrics.services.funnel import derive_funnel, funnel_loss_summary
from clinic_metrics.services.kpis import compute_commercial_kpis


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/kpis", response_model=CommercialKPIs)
async def get_commercial_kpis(
    filters: FiltersDep,
    as_of: AsOfDep,
    cache: ViewCacheDep,
    settings: SettingsDep,
    pool: PoolDep,
) -> CommercialKPIs:
    """
    Commercial KPIs of the current month.

    Channel figures are read for the current month. Figures that are 0 are
    filled from the funnel stage counts of the whole filtered range
    (used_funnel_fallback=True).
    """
    try:
        window = period_filters(filters, as_of)
        embudo = await fetch_view("comercial_embudo", filters, cache, settings, pool)
        canales = await fetch_view("comercial_canales", window, cache, settings, pool)
        return compute_commercial_kpis(embudo, canales, as_of)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error computing commercial KPIs: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to compute commercial KPIs: {str(e)}")


@router.get("/embudo", response_model=FunnelResponse)
async def get_funnel(
    filters: FiltersDep,
    cache: ViewCacheDep,
    settings: SettingsDep,
    pool: PoolDep,
) -> FunnelResponse:
    """Funnel stages summed over the filtered months, with stage-to-stage losses."""
    try:
        embudo = await fetch_view("comercial_embudo", filters, cache, settings, pool)
        stages = derive_funnel(embudo)
        return FunnelResponse(stages=stages, losses=funnel_loss_summary(stages))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error computing funnel: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to compute funnel: {str(e)}")


@router.get("/canales", response_model=List[ChannelPerformance])
async def get_channels(
    filters: FiltersDep,
    cache: ViewCacheDep,
    settings: SettingsDep,
    pool: PoolDep,
) -> List[ChannelPerformance]:
    """Channels aggregated across the filtered months, sorted by revenue."""
    try:
        canales = await fetch_view("comercial_canales", filters, cache, settings, pool)
        return aggregate_channels(canales)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error computing channel performance: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to compute channel performance: {str(e)}")
