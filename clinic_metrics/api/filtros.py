"""
FastAPI router module for the filter dropdowns.

Key Endpoints:
- GET /filtros/sucursales: branches seen in finanzas_diario
- GET /filtros/profesionales: professionals seen in operaciones_diario
- GET /filtros/origenes: lead channels seen in comercial_canales

Values are distinct, non-blank and sorted; they are cached for
CACHE_TTL_FILTER_SECONDS.
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException

from clinic_metrics.core.dependencies import PoolDep, SettingsDep, ViewCacheDep
from clinic_metrics.services.dashboard_data import fetch_filter_options


logger = logging.getLogger(__name__)

router = APIRouter()


async def _options(option: str, cache, settings, pool) -> List[str]:
    try:
        return await fetch_filter_options(option, cache, settings, pool)
    except Exception as e:
        logger.error(f"Error fetching filter options {option}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to fetch {option}: {str(e)}")


@router.get("/sucursales", response_model=List[str])
async def get_branches(cache: ViewCacheDep, settings: SettingsDep, pool: PoolDep) -> List[str]:
    return await _options("sucursales", cache, settings, pool)


@router.get("/profesionales", response_model=List[str])
async def get_professionals(cache: ViewCacheDep, settings: SettingsDep, pool: PoolDep) -> List[str]:
    return await _options("profesionales", cache, settings, pool)


@router.get("/origenes", response_model=List[str])
async def get_channels(cache: ViewCacheDep, settings: SettingsDep, pool: PoolDep) -> List[str]:
    return await _options("origenes", cache, settings, pool)
