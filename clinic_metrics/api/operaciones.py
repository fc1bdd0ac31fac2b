"""
FastAPI router module for the operations dashboard.

Key Endpoints:
- GET /operaciones/kpis: current month appointments, rates and occupancy
- GET /operaciones/heatmap: attendance by weekday x hour
- GET /operaciones/capacidad: professional occupancy with overload alerts
- GET /operaciones/evolucion: monthly appointments, rates and occupancy
- GET /operaciones/profesionales/facturacion: billed revenue per professional
  or branch with an ESTIMATED collected amount

All rates are computed from summed counts (never averaged per row).
"""

import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, HTTPException, Query

from clinic_metrics.api.params import AsOfDep, FiltersDep, period_filters
from clinic_metrics.core.dependencies import PoolDep, SettingsDep, ViewCacheDep
from clinic_metrics.models.schemas import (
    BillingEstimateRow,
    CapacityRow,
    HeatmapCell,
    MonthlyOperationsPoint,
    OperationsKPIs,
)
from clinic_metrics.services.aggregation import aggregate_heatmap, estimate_billing_by_key, heatmap_grid
from clinic_metrics.services.dashboard_data import fetch_view
from clinic_metrics.services.evolution import operations_evolution
from clinic_metrics.services.formatting import month_key
from clinic_metrics.services.kpis import compute_operations_kpis, summarize_capacity


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/kpis", response_model=OperationsKPIs)
async def get_operations_kpis(
    filters: FiltersDep,
    as_of: AsOfDep,
    cache: ViewCacheDep,
    settings: SettingsDep,
    pool: PoolDep,
) -> OperationsKPIs:
    """Appointments of the current month with scheduled trend vs the previous month."""
    try:
        window = period_filters(filters, as_of)
        diario = await fetch_view("operaciones_diario", window, cache, settings, pool)
        capacidad = await fetch_view("operaciones_capacidad", window, cache, settings, pool)
        return compute_operations_kpis(diario, capacidad, as_of)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error computing operations KPIs: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to compute operations KPIs: {str(e)}")


@router.get("/heatmap", response_model=List[HeatmapCell])
async def get_heatmap(
    filters: FiltersDep,
    cache: ViewCacheDep,
    settings: SettingsDep,
    pool: PoolDep,
    grid: bool = Query(default=False, description="Return the full 7-day grid with empty slots"),
) -> List[HeatmapCell]:
    """Attendance per weekday and hour, colored by attendance rate."""
    try:
        rows = await fetch_view("operaciones_heatmap", filters, cache, settings, pool)
        cells = aggregate_heatmap(rows)
        return heatmap_grid(cells) if grid else cells
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error computing heatmap: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to compute heatmap: {str(e)}")


@router.get("/capacidad", response_model=List[CapacityRow])
async def get_capacity(
    filters: FiltersDep,
    cache: ViewCacheDep,
    settings: SettingsDep,
    pool: PoolDep,
    mes: Optional[str] = Query(
        default=None, pattern=r"^\d{4}-\d{2}$", description="Only this month (YYYY-MM)"
    ),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
) -> List[CapacityRow]:
    """Professional occupancy sorted by occupancy descending."""
    try:
        rows = await fetch_view("operaciones_capacidad", filters, cache, settings, pool)
        if mes:
            rows = [row for row in rows if month_key(row.get("periodo_mes")) == mes]
        return summarize_capacity(rows, limit)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error computing capacity: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to compute capacity: {str(e)}")


@router.get("/evolucion", response_model=List[MonthlyOperationsPoint])
async def get_operations_evolution(
    filters: FiltersDep,
    cache: ViewCacheDep,
    settings: SettingsDep,
    pool: PoolDep,
) -> List[MonthlyOperationsPoint]:
    """Monthly appointments, attendance/cancellation/no-show rates and occupancy."""
    try:
        diario = await fetch_view("operaciones_diario", filters, cache, settings, pool)
        capacidad = await fetch_view("operaciones_capacidad", filters, cache, settings, pool)
        return operations_evolution(diario, capacidad)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error computing operations evolution: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to compute operations evolution: {str(e)}")


@router.get("/profesionales/facturacion", response_model=List[BillingEstimateRow])
async def get_professional_billing_estimate(
    filters: FiltersDep,
    cache: ViewCacheDep,
    settings: SettingsDep,
    pool: PoolDep,
    agrupar: Literal["profesional", "sucursal"] = Query(default="profesional"),
) -> List[BillingEstimateRow]:
    """
    Billed revenue per professional (or branch) with
    estimated_collected = billed * ESTIMATED_COLLECTION_RATE.
    """
    try:
        diario = await fetch_view("operaciones_diario", filters, cache, settings, pool)
        return estimate_billing_by_key(diario, agrupar, settings.estimated_collection_rate)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error estimating professional billing: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to estimate professional billing: {str(e)}")
