"""
Enumeration definitions for the Clinic Metrics backend.

All enums inherit from both `str` and `Enum` so they serialize as their plain
values in Pydantic models and JSON responses. Values are the Spanish labels
stored in the dashboard views and shown on the dashboards, which keeps rows
read from the database directly comparable with enum members.
"""

from enum import Enum


# =============================================================================
# Client Classification
# =============================================================================

class RiskSegment(str, Enum):
    """
    Collection risk of a client with outstanding debt.

    Derived from days since the last visit (or payment) using one of the
    RiskThresholdVariant cut-offs.
    """
    BAJO = "Bajo"
    MEDIO = "Medio"
    ALTO = "Alto"


class ContactPriority(str, Enum):
    """
    Priority for contacting a debtor.

    Crítica: more than 90 days AND debt above 500K
    Alta: more than 60 days OR debt above 1M
    Media: more than 30 days OR debt above 300K
    Baja: everything else
    """
    CRITICA = "Crítica"
    ALTA = "Alta"
    MEDIA = "Media"
    BAJA = "Baja"


class MessageType(str, Enum):
    """
    Contact script template selector, derived from client lifetime value.
    """
    PREMIUM = "premium"
    ALTO_VALOR = "alto_valor"
    ESTANDAR = "estandar"


class LtvSegment(str, Enum):
    """Client value segment by lifetime value."""
    PREMIUM = "Premium"
    MEDIO = "Medio"
    NUEVO = "Nuevo"


class RiskThresholdVariant(str, Enum):
    """
    Day cut-offs for RiskSegment.

    The dashboards classify the same clients with different thresholds
    depending on the view, so the variant is chosen per call site:

    - DEBTOR_SCATTER: > 60 Alto, > 30 Medio (debtor table and scatter)
    - RISK_MATRIX: > 90 Alto, > 30 Medio (risk matrix cards)
    - CRITICAL_DEBT: > 60 Alto (critical debt KPI)
    """
    DEBTOR_SCATTER = "debtor_scatter"
    RISK_MATRIX = "risk_matrix"
    CRITICAL_DEBT = "critical_debt"


class RiskMatrixSegmentName(str, Enum):
    """Named (possibly overlapping) segments of the LTV × recency matrix."""
    PREMIUM_ACTIVOS = "premium_activos"
    PREMIUM_RIESGO = "premium_riesgo"
    MEDIOS_ACTIVOS = "medios_activos"
    CRITICOS_INACTIVOS = "criticos_inactivos"


# =============================================================================
# Funnel and Aging
# =============================================================================

class FunnelStageName(str, Enum):
    """
    Commercial funnel stages in canonical order.

    Lead -> Consulta -> Tratamiento -> Recurrente
    """
    LEAD = "Lead"
    CONSULTA = "Consulta"
    TRATAMIENTO = "Tratamiento"
    RECURRENTE = "Recurrente"


class AgingSegment(str, Enum):
    """Debt aging buckets by days since last activity."""
    D0_30 = "0-30 días"
    D31_60 = "31-60 días"
    D61_90 = "61-90 días"
    D91_180 = "91-180 días"
    D180_PLUS = "+180 días"


# =============================================================================
# Presentation Tags
# =============================================================================

class ThresholdTag(str, Enum):
    """
    Semantic color tag for a metric against its thresholds.

    good -> green, warning -> yellow, bad -> red, neutral -> gray (no activity),
    unknown -> gray (no data).
    """
    GOOD = "good"
    WARNING = "warning"
    BAD = "bad"
    NEUTRAL = "neutral"
    UNKNOWN = "unknown"


class OccupancyLevel(str, Enum):
    """Professional capacity usage band."""
    CRITICO = "critico"
    ALTO = "alto"
    OPTIMO = "optimo"
    SUBUTILIZADO = "subutilizado"


class TrendDirection(str, Enum):
    """Direction of a period-over-period change."""
    UP = "up"
    DOWN = "down"
    NEUTRAL = "neutral"


class RefreshStatus(str, Enum):
    """Outcome of refreshing one materialized view."""
    SUCCESS = "success"
    ERROR = "error"
