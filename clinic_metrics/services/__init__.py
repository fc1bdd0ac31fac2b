"""
Clinic Metrics Services Module

This module contains the metric derivation services behind the finance,
operations and commercial dashboards. Derivation services are pure and
stateless: they take view rows (dicts or asyncpg Records) and return pydantic
models without modifying their inputs.

Services:
- metrics: numeric coercion, zero-guarded ratios and the trend calculator
- formatting: es-AR number/date formatting and color-threshold classifiers
- aggregation: sum-then-ratio reducer, channels, heatmap, billing estimates
- funnel: commercial funnel stages, conversions and losses
- risk: risk/priority/message/LTV classification, risk matrix, priorities
- aging: debt aging buckets
- concentration: Pareto ranking and top-N shares
- contact_scripts: debtor contact messages, WhatsApp links, CSV export
- debt: TQP vs extras debt composition
- kpis: KPI card summaries
- evolution: monthly evolution series
- dashboard_data: cached reads of the dashboard.* views
- view_refresh: materialized view refresh

All services are designed to be consumed by the API layer (clinic_metrics/api/).
"""

# =============================================================================
# Numeric Helpers and Trend Calculator
# =============================================================================

from clinic_metrics.services.metrics import (
    coerce_numeric_or_zero,
    coerce_int_or_zero,
    field,
    sum_field,
    safe_ratio,
    safe_percent,
    clamp,
    round_half_up,
    calculate_trend,
    percentage_point_delta,
    trend_direction,
    validate_unit_rate,
)

# =============================================================================
# Formatting Primitives and Color Classifiers
# =============================================================================

from clinic_metrics.services.formatting import (
    format_currency,
    format_currency_full,
    format_percent,
    format_number,
    format_days,
    format_date,
    format_date_short,
    format_month_year,
    parse_local_date,
    month_key,
    classify_rate,
    classify_days_since,
    classify_heatmap_rate,
    classify_occupancy,
    occupancy_tag,
    risk_badge_tag,
    priority_badge_tag,
    RateThresholds,
    CONVERSION_THRESHOLDS,
    ATTENDANCE_THRESHOLDS,
    COLLECTION_RATE_THRESHOLDS,
    COLLECTION_TARGET_THRESHOLDS,
    CANCELLATION_THRESHOLDS,
    NO_SHOW_THRESHOLDS,
    FUNNEL_CONVERSION_THRESHOLDS,
    NA_PLACEHOLDER,
)

# =============================================================================
# Aggregation-by-Key Reducer
# =============================================================================

from clinic_metrics.services.aggregation import (
    aggregate_by_key,
    aggregate_channels,
    aggregate_heatmap,
    heatmap_grid,
    estimate_billing_by_key,
    resolve_key,
    RatioSpec,
    UNASSIGNED_KEY,
    DAY_LABELS,
)

# =============================================================================
# Funnel, Risk, Aging and Concentration
# =============================================================================

from clinic_metrics.services.funnel import (
    derive_funnel,
    funnel_stage_counts,
    funnel_loss_summary,
    STAGE_ORDER,
)

from clinic_metrics.services.risk import (
    classify_client,
    classify_clients,
    classify_risk_segment,
    classify_priority,
    classify_message_type,
    classify_ltv_segment,
    risk_matrix_segments,
    summarize_priorities,
    RISK_DAY_THRESHOLDS,
)

from clinic_metrics.services.aging import (
    bucketize_aging,
    aging_from_view,
    aging_segment_for,
    AGING_ORDER,
)

from clinic_metrics.services.concentration import (
    compute_concentration,
    top_contributors,
    top_n_share,
    PARETO_THRESHOLD_PCT,
)

# =============================================================================
# Contact Scripts and Debt Composition
# =============================================================================

from clinic_metrics.services.contact_scripts import (
    generate_script,
    build_contact_script,
    build_whatsapp_url,
    extract_first_name,
    build_debtor_export,
    render_debtor_csv,
    DEFAULT_CLINIC_NAME,
)

from clinic_metrics.services.debt import (
    compute_debt_composition,
    debt_composition_from_rows,
)

# =============================================================================
# KPI Summaries and Monthly Evolution
# =============================================================================

from clinic_metrics.services.kpis import (
    compute_finance_kpis,
    compute_billing_period_kpis,
    compute_operations_kpis,
    compute_commercial_kpis,
    summarize_capacity,
    month_window,
)

from clinic_metrics.services.evolution import (
    operations_evolution,
    collections_evolution,
    billing_evolution,
)

# =============================================================================
# Data Access and View Refresh
# Async services over the asyncpg pool and the ViewCache
# =============================================================================

from clinic_metrics.services.dashboard_data import (
    fetch_view,
    fetch_filter_options,
    fetch_client,
    resolve_filters,
    default_date_range,
    shift_months,
)

from clinic_metrics.services.view_refresh import refresh_dashboard_views


__all__ = [
    # Numeric helpers
    'coerce_numeric_or_zero',
    'coerce_int_or_zero',
    'field',
    'sum_field',
    'safe_ratio',
    'safe_percent',
    'clamp',
    'round_half_up',
    'calculate_trend',
    'percentage_point_delta',
    'trend_direction',
    'validate_unit_rate',
    # Formatting
    'format_currency',
    'format_currency_full',
    'format_percent',
    'format_number',
    'format_days',
    'format_date',
    'format_date_short',
    'format_month_year',
    'parse_local_date',
    'month_key',
    'classify_rate',
    'classify_days_since',
    'classify_heatmap_rate',
    'classify_occupancy',
    'occupancy_tag',
    'risk_badge_tag',
    'priority_badge_tag',
    'RateThresholds',
    'CONVERSION_THRESHOLDS',
    'ATTENDANCE_THRESHOLDS',
    'COLLECTION_RATE_THRESHOLDS',
    'COLLECTION_TARGET_THRESHOLDS',
    'CANCELLATION_THRESHOLDS',
    'NO_SHOW_THRESHOLDS',
    'FUNNEL_CONVERSION_THRESHOLDS',
    'NA_PLACEHOLDER',
    # Aggregation
    'aggregate_by_key',
    'aggregate_channels',
    'aggregate_heatmap',
    'heatmap_grid',
    'estimate_billing_by_key',
    'resolve_key',
    'RatioSpec',
    'UNASSIGNED_KEY',
    'DAY_LABELS',
    # Funnel
    'derive_funnel',
    'funnel_stage_counts',
    'funnel_loss_summary',
    'STAGE_ORDER',
    # Risk
    'classify_client',
    'classify_clients',
    'classify_risk_segment',
    'classify_priority',
    'classify_message_type',
    'classify_ltv_segment',
    'risk_matrix_segments',
    'summarize_priorities',
    'RISK_DAY_THRESHOLDS',
    # Aging
    'bucketize_aging',
    'aging_from_view',
    'aging_segment_for',
    'AGING_ORDER',
    # Concentration
    'compute_concentration',
    'top_contributors',
    'top_n_share',
    'PARETO_THRESHOLD_PCT',
    # Contact scripts
    'generate_script',
    'build_contact_script',
    'build_whatsapp_url',
    'extract_first_name',
    'build_debtor_export',
    'render_debtor_csv',
    'DEFAULT_CLINIC_NAME',
    # Debt composition
    'compute_debt_composition',
    'debt_composition_from_rows',
    # KPIs
    'compute_finance_kpis',
    'compute_billing_period_kpis',
    'compute_operations_kpis',
    'compute_commercial_kpis',
    'summarize_capacity',
    'month_window',
    # Evolution
    'operations_evolution',
    'collections_evolution',
    'billing_evolution',
    # Data access
    'fetch_view',
    'fetch_filter_options',
    'fetch_client',
    'resolve_filters',
    'default_date_range',
    'shift_months',
    # View refresh
    'refresh_dashboard_views',
]
