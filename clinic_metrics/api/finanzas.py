"""
FastAPI router module for the finance dashboard.

Serves collection KPIs, debt composition, aging, risk and priority views, the
debtor recovery list with contact scripts, per-professional and per-procedure
billing, and the monthly collection series.

Key Endpoints:
- GET /finanzas/kpis: FinanceKPIs for the filtered period
- GET /finanzas/kpis/periodo: current vs previous month billing (estimated collections)
- GET /finanzas/composicion: TQP vs extras debt composition
- GET /finanzas/aging: debt aging buckets
- GET /finanzas/prioridades: debt by contact priority
- GET /finanzas/matriz-riesgo: LTV x recency risk segments
- GET /finanzas/recupero: classified debtor list
- GET /finanzas/recupero/export: debtor CSV export
- GET /finanzas/recupero/{id_cliente}/script: contact message + WhatsApp link
- GET /finanzas/profesionales: billing per professional with revenue concentration
- GET /finanzas/procedimientos: top procedures by revenue
- GET /finanzas/evolucion: monthly billed vs collected from per-day ratios
- GET /finanzas/evolucion/estimada: monthly billed with the configured collection rate

Dependencies:
- clinic_metrics/services/dashboard_data.py: cached view reads
- clinic_metrics/services/*: metric derivation
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import Response

from clinic_metrics.api.params import AsOfDep, FiltersDep, period_filters
from clinic_metrics.core.dependencies import PoolDep, SettingsDep, ViewCacheDep
from clinic_metrics.models.enums import ContactPriority, RiskThresholdVariant
from clinic_metrics.models.schemas import (
    AgingBucket,
    BillingPeriodKPIs,
    ConcentrationRow,
    ContactScript,
    DebtComposition,
    FinanceKPIs,
    MonthlyBillingPoint,
    MonthlyCollectionsPoint,
    PrioritySummaryItem,
    ProfessionalRevenueResponse,
    RecoveryClient,
    RiskMatrixSegment,
)
from clinic_metrics.services.aggregation import RatioSpec, aggregate_by_key
from clinic_metrics.services.aging import aging_from_view, bucketize_aging
from clinic_metrics.services.concentration import compute_concentration, top_contributors
from clinic_metrics.services.contact_scripts import build_contact_script, render_debtor_csv
from clinic_metrics.services.dashboard_data import fetch_client, fetch_view
from clinic_metrics.services.debt import debt_composition_from_rows
from clinic_metrics.services.evolution import billing_evolution, collections_evolution
from clinic_metrics.services.kpis import compute_billing_period_kpis, compute_finance_kpis
from clinic_metrics.services.metrics import sum_field
from clinic_metrics.services.risk import (
    classify_clients,
    classify_message_type,
    risk_matrix_segments,
    summarize_priorities,
)


# =============================================================================
# Module Configuration
# =============================================================================

logger = logging.getLogger(__name__)

router = APIRouter()

PROFESSIONAL_MEASURES = [
    "revenue_generado",
    "turnos_atendidos",
    "turnos_facturados",
    "clientes_atendidos",
]

PROFESSIONAL_RATIOS = {
    "ticket_promedio": RatioSpec("revenue_generado", "turnos_facturados", scale=1.0),
    "tasa_facturacion": RatioSpec("turnos_facturados", "turnos_atendidos"),
}


def _server_error(action: str, e: Exception) -> HTTPException:
    logger.error(f"Error {action}: {str(e)}", exc_info=True)
    return HTTPException(status_code=500, detail=f"Failed {action}: {str(e)}")


# =============================================================================
# KPIs and Composition
# =============================================================================

@router.get("/kpis", response_model=FinanceKPIs)
async def get_finance_kpis(
    filters: FiltersDep,
    cache: ViewCacheDep,
    settings: SettingsDep,
    pool: PoolDep,
) -> FinanceKPIs:
    """
    Collection KPIs: revenue, average ticket, TQP/extras/critical debt and
    collection rate for the filtered period.
    """
    try:
        diario = await fetch_view("finanzas_diario", filters, cache, settings, pool)
        recupero = await fetch_view("finanzas_recupero_master", filters, cache, settings, pool)
        return compute_finance_kpis(diario, recupero)
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("computing finance KPIs", e)


@router.get("/kpis/periodo", response_model=BillingPeriodKPIs)
async def get_billing_period_kpis(
    filters: FiltersDep,
    as_of: AsOfDep,
    cache: ViewCacheDep,
    settings: SettingsDep,
    pool: PoolDep,
) -> BillingPeriodKPIs:
    """
    Current vs previous month billed, estimated collected and gap.

    Collected amounts are estimates (is_estimate=True): the views carry no
    payment records, so they are derived from attended-with-revenue ratios.
    """
    try:
        diario = await fetch_view("finanzas_diario", period_filters(filters, as_of), cache, settings, pool)
        deudores = await fetch_view("finanzas_deudores", filters, cache, settings, pool)
        return compute_billing_period_kpis(diario, deudores, as_of)
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("computing billing period KPIs", e)


@router.get("/composicion", response_model=DebtComposition)
async def get_debt_composition(
    filters: FiltersDep,
    cache: ViewCacheDep,
    settings: SettingsDep,
    pool: PoolDep,
) -> DebtComposition:
    """TQP vs extras split with the debt-to-billing ratio of the period."""
    try:
        diario = await fetch_view("finanzas_diario", filters, cache, settings, pool)
        recupero = await fetch_view("finanzas_recupero_master", filters, cache, settings, pool)
        return debt_composition_from_rows(recupero, sum_field(diario, "revenue_facturado"))
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("computing debt composition", e)


# =============================================================================
# Aging, Priorities and Risk Matrix
# =============================================================================

@router.get("/aging", response_model=List[AgingBucket])
async def get_debt_aging(
    filters: FiltersDep,
    cache: ViewCacheDep,
    settings: SettingsDep,
    pool: PoolDep,
    desde_clientes: bool = Query(
        default=False,
        description="Bucket finanzas_recupero_master rows instead of reading finanzas_deuda_aging",
    ),
) -> List[AgingBucket]:
    """Debt aging buckets, always the five segments in display order."""
    try:
        if desde_clientes:
            recupero = await fetch_view("finanzas_recupero_master", filters, cache, settings, pool)
            return bucketize_aging(recupero)
        aging_rows = await fetch_view("finanzas_deuda_aging", None, cache, settings, pool)
        return aging_from_view(aging_rows)
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("computing debt aging", e)


@router.get("/prioridades", response_model=List[PrioritySummaryItem])
async def get_priorities(
    filters: FiltersDep,
    cache: ViewCacheDep,
    settings: SettingsDep,
    pool: PoolDep,
) -> List[PrioritySummaryItem]:
    """Debt grouped by contact priority (Crítica, Alta, Media, Baja)."""
    try:
        recupero = await fetch_view("finanzas_recupero_master", filters, cache, settings, pool)
        return summarize_priorities(recupero)
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("summarizing contact priorities", e)


@router.get("/matriz-riesgo", response_model=List[RiskMatrixSegment])
async def get_risk_matrix(
    filters: FiltersDep,
    cache: ViewCacheDep,
    settings: SettingsDep,
    pool: PoolDep,
) -> List[RiskMatrixSegment]:
    """LTV x recency segment cards. Segments may overlap."""
    try:
        recupero = await fetch_view("finanzas_recupero_master", filters, cache, settings, pool)
        return risk_matrix_segments(recupero)
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("computing risk matrix", e)


# =============================================================================
# Debt Recovery
# =============================================================================

@router.get("/recupero", response_model=List[RecoveryClient])
async def get_recovery_clients(
    filters: FiltersDep,
    cache: ViewCacheDep,
    settings: SettingsDep,
    pool: PoolDep,
    variante: RiskThresholdVariant = Query(
        default=RiskThresholdVariant.DEBTOR_SCATTER,
        description="Day thresholds used for the risk segment",
    ),
    prioridad: Optional[ContactPriority] = Query(default=None, description="Only this contact priority"),
    limit: Optional[int] = Query(default=None, ge=1, le=1000, description="Defaults to TOP_DEBTORS_LIMIT"),
) -> List[RecoveryClient]:
    """
    Classified debtors ordered by outstanding balance (largest first).
    """
    try:
        recupero = await fetch_view("finanzas_recupero_master", filters, cache, settings, pool)
        clients = classify_clients(recupero, variante)
        if prioridad is not None:
            clients = [c for c in clients if c.classification.contact_priority == prioridad]
        return clients[:limit or settings.top_debtors_limit]
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("listing recovery clients", e)


@router.get("/recupero/export")
async def export_debtors(
    filters: FiltersDep,
    cache: ViewCacheDep,
    settings: SettingsDep,
    pool: PoolDep,
) -> Response:
    """finanzas_deudores as a CSV download."""
    try:
        deudores = await fetch_view("finanzas_deudores", filters, cache, settings, pool)
        return Response(
            content=render_debtor_csv(deudores),
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="deudores.csv"'},
        )
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("exporting debtors", e)


@router.get("/recupero/{id_cliente}/script", response_model=ContactScript)
async def get_contact_script(id_cliente: str, pool: PoolDep) -> ContactScript:
    """
    Contact message for one debtor, with a WhatsApp link when the client has a phone.

    The template is chosen from the client's LTV.

    Raises:
        HTTPException 404: If the client is not in finanzas_recupero_master.
    """
    try:
        client = await fetch_client(id_cliente, pool)
        if client is None:
            raise HTTPException(status_code=404, detail=f"Client {id_cliente} not found")

        client["tipo_mensaje"] = classify_message_type(client.get("ltv")).value
        return build_contact_script(client)
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error(f"building contact script for client {id_cliente}", e)


# =============================================================================
# Professionals and Procedures
# =============================================================================

@router.get("/profesionales", response_model=ProfessionalRevenueResponse)
async def get_professional_billing(
    filters: FiltersDep,
    cache: ViewCacheDep,
    settings: SettingsDep,
    pool: PoolDep,
) -> ProfessionalRevenueResponse:
    """Billing per professional with its revenue concentration."""
    try:
        rows = await fetch_view("finanzas_por_profesional", None, cache, settings, pool)
        return ProfessionalRevenueResponse(
            professionals=aggregate_by_key(
                rows, "profesional", PROFESSIONAL_MEASURES, ratios=PROFESSIONAL_RATIOS
            ),
            concentration=compute_concentration(rows, "profesional", "revenue_generado", positive_only=True),
        )
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("computing professional billing", e)


@router.get("/procedimientos", response_model=List[ConcentrationRow])
async def get_top_procedures(
    cache: ViewCacheDep,
    settings: SettingsDep,
    pool: PoolDep,
    limit: Optional[int] = Query(default=None, ge=1, le=100, description="Defaults to TOP_PROCEDURES_LIMIT"),
) -> List[ConcentrationRow]:
    """Top procedures by revenue with their share of total revenue."""
    try:
        rows = await fetch_view("finanzas_por_procedimiento", None, cache, settings, pool)
        return top_contributors(
            rows, "procedimiento", "revenue_total", limit=limit or settings.top_procedures_limit
        )
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("ranking procedures", e)


# =============================================================================
# Monthly Evolution
# =============================================================================

@router.get("/evolucion", response_model=List[MonthlyCollectionsPoint])
async def get_collections_evolution(
    filters: FiltersDep,
    cache: ViewCacheDep,
    settings: SettingsDep,
    pool: PoolDep,
) -> List[MonthlyCollectionsPoint]:
    """Monthly billed vs collected, estimated from per-day attended-with-revenue ratios."""
    try:
        diario = await fetch_view("finanzas_diario", filters, cache, settings, pool)
        return collections_evolution(diario, settings.fallback_row_collection_rate)
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("computing collections evolution", e)


@router.get("/evolucion/estimada", response_model=List[MonthlyBillingPoint])
async def get_billing_evolution(
    filters: FiltersDep,
    cache: ViewCacheDep,
    settings: SettingsDep,
    pool: PoolDep,
) -> List[MonthlyBillingPoint]:
    """Monthly billed revenue with ESTIMATED_COLLECTION_RATE applied."""
    try:
        diario = await fetch_view("finanzas_diario", filters, cache, settings, pool)
        return billing_evolution(diario, settings.estimated_collection_rate)
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error("computing billing evolution", e)
