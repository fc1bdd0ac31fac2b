"""
Package initialization file for clinic_metrics models.

Re-exports all enumerations and Pydantic models so other modules can import
them from clinic_metrics.models directly.

Usage:
    from clinic_metrics.models import (
        RiskSegment,
        ContactPriority,
        FunnelStage,
        AgingBucket,
    )
"""

# =============================================================================
# Enums
# =============================================================================

from clinic_metrics.models.enums import (
    # Client classification
    RiskSegment,
    ContactPriority,
    MessageType,
    LtvSegment,
    RiskThresholdVariant,
    RiskMatrixSegmentName,
    # Funnel and aging
    FunnelStageName,
    AgingSegment,
    # Presentation tags
    ThresholdTag,
    OccupancyLevel,
    TrendDirection,
    RefreshStatus,
)


# =============================================================================
# Schemas
# =============================================================================

from clinic_metrics.models.schemas import (
    # -------------------------------------------------------------------------
    # Client Classification
    # -------------------------------------------------------------------------
    ClientRiskRecord,
    RecoveryClient,
    RiskMatrixSegment,
    PrioritySummaryItem,

    # -------------------------------------------------------------------------
    # Aggregation
    # -------------------------------------------------------------------------
    AggregatedDimension,
    ChannelPerformance,
    HeatmapCell,
    BillingEstimateRow,

    # -------------------------------------------------------------------------
    # Funnel
    # -------------------------------------------------------------------------
    FunnelStage,
    FunnelLoss,
    FunnelResponse,

    # -------------------------------------------------------------------------
    # Aging and Debt
    # -------------------------------------------------------------------------
    AgingBucket,
    DebtComposition,

    # -------------------------------------------------------------------------
    # Concentration
    # -------------------------------------------------------------------------
    ConcentrationRow,
    ConcentrationSummary,
    ProfessionalRevenueResponse,

    # -------------------------------------------------------------------------
    # Messaging
    # -------------------------------------------------------------------------
    ContactScript,

    # -------------------------------------------------------------------------
    # KPIs
    # -------------------------------------------------------------------------
    KPIValue,
    FinanceKPIs,
    BillingPeriodKPIs,
    OperationsKPIs,
    CommercialKPIs,
    CapacityRow,

    # -------------------------------------------------------------------------
    # Monthly Series
    # -------------------------------------------------------------------------
    MonthlyOperationsPoint,
    MonthlyCollectionsPoint,
    MonthlyBillingPoint,

    # -------------------------------------------------------------------------
    # Service Shell
    # -------------------------------------------------------------------------
    DashboardFilters,
    ViewRefreshResult,
    DashboardRefreshResponse,
)


__all__ = [
    # Enums
    "RiskSegment",
    "ContactPriority",
    "MessageType",
    "LtvSegment",
    "RiskThresholdVariant",
    "RiskMatrixSegmentName",
    "FunnelStageName",
    "AgingSegment",
    "ThresholdTag",
    "OccupancyLevel",
    "TrendDirection",
    "RefreshStatus",
    # Schemas - Client Classification
    "ClientRiskRecord",
    "RecoveryClient",
    "RiskMatrixSegment",
    "PrioritySummaryItem",
    # Schemas - Aggregation
    "AggregatedDimension",
    "ChannelPerformance",
    "HeatmapCell",
    "BillingEstimateRow",
    # Schemas - Funnel
    "FunnelStage",
    "FunnelLoss",
    "FunnelResponse",
    # Schemas - Aging and Debt
    "AgingBucket",
    "DebtComposition",
    # Schemas - Concentration
    "ConcentrationRow",
    "ConcentrationSummary",
    "ProfessionalRevenueResponse",
    # Schemas - Messaging
    "ContactScript",
    # Schemas - KPIs
    "KPIValue",
    "FinanceKPIs",
    "BillingPeriodKPIs",
    "OperationsKPIs",
    "CommercialKPIs",
    "CapacityRow",
    # Schemas - Monthly Series
    "MonthlyOperationsPoint",
    "MonthlyCollectionsPoint",
    "MonthlyBillingPoint",
    # Schemas - Service Shell
    "DashboardFilters",
    "ViewRefreshResult",
    "DashboardRefreshResponse",
]
