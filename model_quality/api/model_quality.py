"""
FastAPI router module for the Model Quality dashboard endpoints.

Serves the monitoring views of the trade-acceptance predictor to the admin
dashboard. Every endpoint recomputes from raw paired data; nothing is cached
or persisted.

Key Endpoints:
- GET /dashboard: All five metric families (filtered when mode/segment given)
- GET /summary: Dashboard plus one status card per metric family
- GET /drilldown: Calibration, feature drift and raw offers for one segment

Query Parameters:
- days: Analysis window in days (default 30, 1-365)
- mode: Exact generation mode filter (dashboard/summary only)
- segment: Named segment token sf, 1qb, dynasty, redraft, tep or ppr
  (dashboard/summary only)

Filtering Note:
    Filters only narrow the calibration family. Segment drift, feature drift,
    ranking and narrative integrity are always reported over the whole window.

Error Mapping:
- ValueError from the services (unknown segment key, bad window) -> 400
- Anything else -> 500, logged
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from model_quality.core.dependencies import SettingsDep
from model_quality.models.schemas import (
    DashboardFilters,
    DashboardMetrics,
    DashboardSummaryResponse,
    DrilldownData,
)
from model_quality.services.dashboard import (
    compute_drilldown,
    compute_filtered_dashboard,
    compute_summary_cards,
)


# =============================================================================
# Module Configuration
# =============================================================================

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_DAYS: int = 30
MAX_DAYS: int = 365


# =============================================================================
# Helper Functions
# =============================================================================

def _resolve_days(days: Optional[int], settings) -> int:
    """
    Apply the configured default and upper bound to the requested window.

    Raises:
        HTTPException 400: If the window exceeds the configured maximum.
    """
    if days is None:
        return settings.default_days_back
    if days > settings.max_days_back:
        raise HTTPException(
            status_code=400,
            detail=f"days must be at most {settings.max_days_back}"
        )
    return days


# =============================================================================
# Endpoints
# =============================================================================

@router.get(
    '/dashboard',
    response_model=DashboardMetrics,
    summary="Get Model Quality Dashboard",
    description="""
    Compute calibration, segment drift, feature drift, ranking quality and
    narrative integrity for the requested window.

    When `mode` or `segment` is given, only the calibration family is
    recomputed on the filtered population; the other families are global.
    """
)
async def get_dashboard(
    settings: SettingsDep,
    days: Optional[int] = Query(
        default=None,
        ge=1,
        le=MAX_DAYS,
        description=f"Analysis window in days (default {DEFAULT_DAYS}, max {MAX_DAYS})"
    ),
    mode: Optional[str] = Query(default=None, description="Exact generation mode"),
    segment: Optional[str] = Query(default=None, description="Segment token: sf, 1qb, dynasty, redraft, tep, ppr"),
) -> DashboardMetrics:
    """
    Get the model quality dashboard.

    Returns:
        DashboardMetrics for the window.

    Raises:
        HTTPException 400: If the window is invalid.
        HTTPException 500: If data loading or analysis fails.
    """
    try:
        days_back = _resolve_days(days, settings)
        logger.info(f"Computing dashboard: days={days_back}, mode={mode}, segment={segment}")

        return await compute_filtered_dashboard(
            days_back,
            DashboardFilters(mode=mode, segment=segment),
        )

    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error computing model quality dashboard: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to compute model quality dashboard: {str(e)}"
        )


@router.get(
    '/summary',
    response_model=DashboardSummaryResponse,
    summary="Get Dashboard Summary Cards",
    description="""
    Compute the dashboard and derive one good/watch/critical card per metric
    family, using the same thresholds as the analyzers' alerts.
    """
)
async def get_summary(
    settings: SettingsDep,
    days: Optional[int] = Query(
        default=None,
        ge=1,
        le=MAX_DAYS,
        description=f"Analysis window in days (default {DEFAULT_DAYS}, max {MAX_DAYS})"
    ),
    mode: Optional[str] = Query(default=None, description="Exact generation mode"),
    segment: Optional[str] = Query(default=None, description="Segment token: sf, 1qb, dynasty, redraft, tep, ppr"),
) -> DashboardSummaryResponse:
    """
    Get the dashboard together with its summary cards.

    Raises:
        HTTPException 400: If the window is invalid.
        HTTPException 500: If data loading or analysis fails.
    """
    try:
        days_back = _resolve_days(days, settings)
        logger.info(f"Computing dashboard summary: days={days_back}, mode={mode}, segment={segment}")

        dashboard = await compute_filtered_dashboard(
            days_back,
            DashboardFilters(mode=mode, segment=segment),
        )

        return DashboardSummaryResponse(
            dashboard=dashboard,
            cards=compute_summary_cards(dashboard),
        )

    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error computing dashboard summary: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to compute dashboard summary: {str(e)}"
        )


@router.get(
    '/drilldown',
    response_model=DrilldownData,
    summary="Get Segment Drill-down",
    description="""
    Scope the reliability curve, ECE and feature drift to one segment value
    and return the most recent raw offers in that segment for manual audit.
    """
)
async def get_drilldown(
    settings: SettingsDep,
    segmentKey: str = Query(..., description="format, leagueFormat, scoringType or mode"),
    segmentValue: str = Query(..., description="Segment value, e.g. SuperFlex or dynasty"),
    days: Optional[int] = Query(
        default=None,
        ge=1,
        le=MAX_DAYS,
        description=f"Analysis window in days (default {DEFAULT_DAYS}, max {MAX_DAYS})"
    ),
) -> DrilldownData:
    """
    Get a drill-down for one segment value.

    Raises:
        HTTPException 400: If the segment key or window is invalid.
        HTTPException 500: If data loading or analysis fails.
    """
    try:
        days_back = _resolve_days(days, settings)
        logger.info(f"Computing drill-down: {segmentKey}={segmentValue}, days={days_back}")

        return await compute_drilldown(
            days_back,
            segmentKey,
            segmentValue,
            sample_limit=settings.drilldown_sample_limit,
        )

    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error computing drill-down for {segmentKey}={segmentValue}: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to compute drill-down: {str(e)}"
        )
