"""
Shared query parameters for the dashboard routers.

- get_dashboard_filters(): date range + branch/professional/channel filters,
  defaulting to the last DEFAULT_LOOKBACK_MONTHS months ending today.
  An inverted range is rejected with 400.
- get_as_of(): reference date for month-over-month KPI cards (default today).
- period_filters(): previous + current month range for those cards.
"""

from datetime import date, timedelta
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Query

from clinic_metrics.core.dependencies import SettingsDep
from clinic_metrics.models.schemas import DashboardFilters
from clinic_metrics.services.dashboard_data import resolve_filters, shift_months


def get_dashboard_filters(
    settings: SettingsDep,
    start_date: Optional[date] = Query(default=None, description="Range start (YYYY-MM-DD)"),
    end_date: Optional[date] = Query(default=None, description="Range end (YYYY-MM-DD), inclusive"),
    sucursal: Optional[str] = Query(default=None, description="Branch filter; 'all' for every branch"),
    profesional: Optional[str] = Query(default=None, description="Professional filter"),
    origen: Optional[str] = Query(default=None, description="Lead channel filter"),
) -> DashboardFilters:
    """Resolve the dashboard filters of a request."""
    try:
        return resolve_filters(
            date.today(),
            settings.default_lookback_months,
            start_date=start_date,
            end_date=end_date,
            sucursal=sucursal,
            profesional=profesional,
            origen=origen,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def get_as_of(
    as_of: Optional[date] = Query(default=None, description="Reference date for the current month"),
) -> date:
    return as_of or date.today()


def period_filters(filters: DashboardFilters, as_of: date) -> DashboardFilters:
    """
    Filters covering the previous and current month of `as_of`.

    Dimension filters are kept; the date range is replaced so month-over-month
    cards always see both months regardless of the requested range.
    """
    month_start = as_of.replace(day=1)
    month_end = shift_months(month_start, 1) - timedelta(days=1)
    return filters.model_copy(
        update={"start_date": shift_months(month_start, -1), "end_date": month_end}
    )


FiltersDep = Annotated[DashboardFilters, Depends(get_dashboard_filters)]

AsOfDep = Annotated[date, Depends(get_as_of)]
