"""
Clinic Metrics API package initialization.

This package contains FastAPI router modules for the clinic dashboards:
- finanzas: collection KPIs, debt composition/aging/risk, recovery list, billing series
- operaciones: appointment KPIs, heatmap, capacity, monthly evolution
- comercial: commercial KPIs, funnel, channels
- filtros: filter dropdown values
- admin: materialized view refresh and cache invalidation
"""

from fastapi import APIRouter

# Import router modules
from clinic_metrics.api.finanzas import router as finanzas_router
from clinic_metrics.api.operaciones import router as operaciones_router
from clinic_metrics.api.comercial import router as comercial_router
from clinic_metrics.api.filtros import router as filtros_router
from clinic_metrics.api.admin import router as admin_router

# Create main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(finanzas_router, prefix="/finanzas", tags=["finanzas"])
api_router.include_router(operaciones_router, prefix="/operaciones", tags=["operaciones"])
api_router.include_router(comercial_router, prefix="/comercial", tags=["comercial"])
api_router.include_router(filtros_router, prefix="/filtros", tags=["filtros"])
api_router.include_router(admin_router, prefix="/admin", tags=["admin"])

# Export all routers for selective imports
__all__ = [
    "api_router",
    "finanzas_router",
    "operaciones_router",
    "comercial_router",
    "filtros_router",
    "admin_router",
]
