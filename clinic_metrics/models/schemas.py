"""
Pydantic models for the Clinic Metrics backend.

Input rows from the ``dashboard.*`` views are NOT modelled here: the
derivation services accept plain mappings (dicts or asyncpg Records) and
coerce each numeric field with coerce_numeric_or_zero, because the views may
return nulls or malformed numbers that must degrade to zero instead of
failing validation.

The models below are the derived records produced by the services and
returned by the API:
- Classification: ClientRiskRecord, RecoveryClient, RiskMatrixSegment, PrioritySummaryItem
- Aggregation: AggregatedDimension, ChannelPerformance, HeatmapCell, BillingEstimateRow
- Funnel: FunnelStage, FunnelLoss, FunnelResponse
- Aging and debt: AgingBucket, DebtComposition
- Concentration: ConcentrationRow, ConcentrationSummary, ProfessionalRevenueResponse
- Messaging: ContactScript
- KPIs: KPIValue, FinanceKPIs, BillingPeriodKPIs, OperationsKPIs, CommercialKPIs, CapacityRow
- Monthly series: MonthlyOperationsPoint, MonthlyCollectionsPoint, MonthlyBillingPoint
- Service shell: DashboardFilters, ViewRefreshResult, DashboardRefreshResponse
"""

from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from clinic_metrics.models.enums import (
    AgingSegment,
    ContactPriority,
    FunnelStageName,
    LtvSegment,
    MessageType,
    OccupancyLevel,
    RefreshStatus,
    RiskMatrixSegmentName,
    RiskSegment,
    ThresholdTag,
    TrendDirection,
)


# =============================================================================
# Client Classification Models
# =============================================================================

class ClientRiskRecord(BaseModel):
    """
    Classification of one client with outstanding debt.

    Produced by classify_client from (ltv, days since visit, debt).
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "risk_segment": "Alto",
                "contact_priority": "Crítica",
                "message_type": "premium",
                "ltv_segment": "Premium",
            }
        }
    )

    risk_segment: RiskSegment = Field(..., description="Collection risk (Bajo/Medio/Alto)")
    contact_priority: ContactPriority = Field(..., description="Contact priority (Crítica..Baja)")
    message_type: MessageType = Field(..., description="Contact template (premium/alto_valor/estandar)")
    ltv_segment: LtvSegment = Field(..., description="Value segment (Premium/Medio/Nuevo)")


class RecoveryClient(BaseModel):
    """A debtor row from finanzas_recupero_master with its classification."""
    id_cliente: Optional[str] = None
    nombre_completo: str = ""
    telefono: Optional[str] = None
    email: Optional[str] = None
    sucursal: Optional[str] = None
    saldo_total: float = 0.0
    deuda_tqp: float = 0.0
    deuda_extras: float = 0.0
    ltv: float = 0.0
    dias_desde_ultima_visita: int = 0
    classification: ClientRiskRecord


class RiskMatrixSegment(BaseModel):
    """One LTV × recency segment. Segments may overlap."""
    name: RiskMatrixSegmentName
    label: str
    client_count: int = 0
    total_debt: float = 0.0
    average_debt: float = 0.0


class PrioritySummaryItem(BaseModel):
    """Debt grouped by contact priority."""
    priority: ContactPriority
    order: int
    client_count: int = 0
    total_debt: float = 0.0
    average_debt: float = 0.0


# =============================================================================
# Aggregation Models
# =============================================================================

class AggregatedDimension(BaseModel):
    """
    Summed measures for one dimension key, with ratios computed after summation.
    """
    key: str = Field(..., description="Dimension value (branch, professional, channel, ...)")
    row_count: int = Field(default=0, description="Number of input rows folded into this key")
    measures: Dict[str, float] = Field(default_factory=dict)
    ratios: Dict[str, float] = Field(default_factory=dict)


class ChannelPerformance(BaseModel):
    """Lead channel performance (comercial_canales aggregated by origen)."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "origen": "Instagram",
                "leads": 120,
                "converted_clients": 30,
                "clients_with_revenue": 25,
                "revenue": 4500000.0,
                "active_clients": 40,
                "conversion_rate": 25.0,
                "revenue_per_lead": 37500.0,
                "revenue_per_client": 150000.0,
            }
        }
    )

    origen: str
    leads: float = 0.0
    converted_clients: float = 0.0
    clients_with_revenue: float = 0.0
    revenue: float = 0.0
    active_clients: float = 0.0
    conversion_rate: float = Field(default=0.0, description="converted / leads * 100")
    revenue_per_lead: float = 0.0
    revenue_per_client: float = 0.0


class HeatmapCell(BaseModel):
    """Appointments for one weekday (1=Lun .. 7=Dom) and hour."""
    day_of_week: int = Field(..., ge=1, le=7)
    day_label: str
    hour: int
    scheduled: float = 0.0
    attended: float = 0.0
    revenue: float = 0.0
    attendance_rate: float = 0.0
    tag: ThresholdTag = ThresholdTag.NEUTRAL


class BillingEstimateRow(BaseModel):
    """
    Billed revenue per key with an ESTIMATED collected amount.

    estimated_collected = billed * estimated_collection_rate. The rate is a
    configured assumption, not measured payment data.
    """
    key: str
    row_count: int = 0
    active_days: int = 0
    scheduled: float = 0.0
    attended: float = 0.0
    attendance_rate: float = 0.0
    billed: float = 0.0
    estimated_collected: float = 0.0
    estimated_gap: float = 0.0
    estimated_collection_rate: float
    is_estimate: bool = True


# =============================================================================
# Funnel Models
# =============================================================================

class FunnelStage(BaseModel):
    """One non-empty stage of the commercial funnel."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Consulta",
                "order": 2,
                "count": 80,
                "percentage": 80.0,
                "conversion": 80.0,
                "loss": 20,
            }
        }
    )

    name: FunnelStageName
    order: int
    count: float
    percentage: float = Field(..., description="count / first stage count * 100")
    conversion: Optional[float] = Field(
        default=None, description="count / previous stage count * 100; None for the first stage"
    )
    loss: float = Field(default=0.0, description="previous stage count - count; 0 for the first stage")
    tag: Optional[ThresholdTag] = None


class FunnelLoss(BaseModel):
    """Drop-off between two consecutive funnel stages."""
    from_stage: FunnelStageName
    to_stage: FunnelStageName
    lost: float
    loss_pct: float


class FunnelResponse(BaseModel):
    """Funnel stages with the drop-off between them."""
    stages: List[FunnelStage] = Field(default_factory=list)
    losses: List[FunnelLoss] = Field(default_factory=list)


# =============================================================================
# Aging and Debt Models
# =============================================================================

class AgingBucket(BaseModel):
    """Debt in one aging segment."""
    segment: AgingSegment
    order: int
    client_count: int = 0
    total_debt: float = 0.0
    tqp_debt: float = 0.0
    average_debt: float = 0.0
    share_pct: float = Field(default=0.0, description="Share of total debt across all buckets")
    relative_width_pct: float = Field(default=0.0, description="total_debt relative to the largest bucket")


class DebtComposition(BaseModel):
    """Split of outstanding debt into TQP (treatment plan) and extras."""
    deuda_tqp: float = 0.0
    deuda_extras: float = 0.0
    deuda_total: float = 0.0
    pct_tqp: float = 0.0
    pct_extras: float = 0.0
    clientes_total: int = 0
    deuda_promedio: float = 0.0
    ratio_deuda_facturacion: float = Field(
        default=0.0, description="deuda_total / billed revenue * 100; 0 without revenue"
    )


# =============================================================================
# Concentration Models
# =============================================================================

class ConcentrationRow(BaseModel):
    """One key in a Pareto ranking."""
    key: str
    value: float
    share_pct: float
    cumulative_share_pct: float
    rank: int


class ConcentrationSummary(BaseModel):
    """Pareto view over a measure."""
    total: float = 0.0
    rows: List[ConcentrationRow] = Field(default_factory=list)
    top3_share_pct: float = 0.0
    top10_share_pct: float = 0.0
    keys_to_80_pct: int = Field(default=0, description="Number of keys needed to reach 80% of the total")


class ProfessionalRevenueResponse(BaseModel):
    """Per-professional billing table with its revenue concentration."""
    professionals: List[AggregatedDimension] = Field(default_factory=list)
    concentration: ConcentrationSummary


# =============================================================================
# Messaging Models
# =============================================================================

class ContactScript(BaseModel):
    """Generated contact message for a debtor."""
    id_cliente: Optional[str] = None
    message_type: MessageType
    message: str
    whatsapp_url: Optional[str] = None


# =============================================================================
# KPI Models
# =============================================================================

class KPIValue(BaseModel):
    """A KPI value with optional comparison against a previous period."""
    value: float = 0.0
    previous: Optional[float] = None
    trend: Optional[float] = Field(
        default=None, description="Percent change, or percentage points for rates"
    )
    direction: Optional[TrendDirection] = None
    tag: Optional[ThresholdTag] = None


class FinanceKPIs(BaseModel):
    """Collection KPIs over the filtered period."""
    revenue_total: float = 0.0
    billed_appointments: float = 0.0
    deuda_tqp: float = 0.0
    deuda_extras: float = 0.0
    deuda_total: float = 0.0
    clients_with_debt: int = 0
    clients_with_tqp: int = 0
    critical_debt: float = 0.0
    critical_clients: int = 0
    average_ticket: float = 0.0
    collection_rate: float = Field(default=0.0, ge=0.0, le=100.0)
    collection_rate_tag: ThresholdTag = ThresholdTag.UNKNOWN


class BillingPeriodKPIs(BaseModel):
    """Current month vs previous month billing and collection estimate."""
    month: str
    previous_month: str
    billed: KPIValue
    collected: KPIValue
    gap: KPIValue
    collection_rate: KPIValue
    historical_debt: float = 0.0
    debt_over_60_days: float = 0.0
    is_estimate: bool = True


class OperationsKPIs(BaseModel):
    """Operational KPIs for the current month."""
    month: str
    scheduled: KPIValue
    attended: float = 0.0
    revenue: float = 0.0
    attendance_rate: KPIValue
    cancellation_rate: KPIValue
    no_show_rate: KPIValue
    average_occupancy: KPIValue
    revenue_per_appointment: float = 0.0


class CommercialKPIs(BaseModel):
    """Commercial KPIs for the current month."""
    month: str
    leads: float = 0.0
    converted_clients: float = 0.0
    conversion_rate: KPIValue
    revenue: float = 0.0
    revenue_per_lead: float = 0.0
    active_clients: float = 0.0
    used_funnel_fallback: bool = False


class CapacityRow(BaseModel):
    """Professional occupancy for one month."""
    periodo_mes: Optional[str] = None
    profesional: str
    dias_activos: int = 0
    turnos_promedio_dia: float = 0.0
    ocupacion_estimada_pct: float = 0.0
    level: OccupancyLevel
    tag: ThresholdTag
    alerta_sobrecarga: bool = False
    alerta_alta_cancelacion: bool = False


# =============================================================================
# Monthly Series Models
# =============================================================================

class MonthlyOperationsPoint(BaseModel):
    """Operations totals and rates for one YYYY-MM month."""
    month: str
    scheduled: float = 0.0
    attended: float = 0.0
    cancelled: float = 0.0
    no_show: float = 0.0
    revenue: float = 0.0
    attendance_rate: float = 0.0
    cancellation_rate: float = 0.0
    no_show_rate: float = 0.0
    revenue_per_appointment: float = 0.0
    average_occupancy: Optional[float] = None


class MonthlyCollectionsPoint(BaseModel):
    """Billed vs collected estimate for one month, built from per-day ratios."""
    month: str
    billed: float = 0.0
    collected: float = 0.0
    collection_rate: float = 0.0
    fallback_rows: int = Field(default=0, description="Days priced with the fallback collection rate")
    is_estimate: bool = True


class MonthlyBillingPoint(BaseModel):
    """Billed revenue for one month with an estimated collected amount."""
    month: str
    billed: float = 0.0
    estimated_collected: float = 0.0
    estimated_collection_rate: float
    is_estimate: bool = True


# =============================================================================
# Service Shell Models
# =============================================================================

class DashboardFilters(BaseModel):
    """Filters shared by every dashboard view read."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    start_date: date
    end_date: date
    sucursal: Optional[str] = None
    profesional: Optional[str] = None
    origen: Optional[str] = None

    def cache_key(self) -> Tuple[date, date, Optional[str], Optional[str], Optional[str]]:
        """Hashable key for the view cache."""
        return (self.start_date, self.end_date, self.sucursal, self.profesional, self.origen)


class ViewRefreshResult(BaseModel):
    """Outcome of refreshing one materialized view."""
    view: str
    status: RefreshStatus
    error: Optional[str] = None


class DashboardRefreshResponse(BaseModel):
    """Outcome of a full dashboard refresh."""
    success: bool
    message: str = Field(default="", description='Summary such as "5/5 vistas actualizadas"')
    refreshed: int
    total: int
    results: List[ViewRefreshResult]
    cache_entries_invalidated: int = 0
    timestamp: datetime
