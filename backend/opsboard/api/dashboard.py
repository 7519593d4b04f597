"""
Engagement & billing dashboard endpoint.

Returns KPI cards, the cumulative revenue area chart, invoice status by
month, daily sent emails with a moving average, and the two pie charts.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..core.exceptions import AggregationParameterError
from ..schemas.analytics import EngagementDashboard
from ..services.reporting_service import ReportingService
from .deps import get_reporting_service


router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


@router.get(
    "",
    response_model=EngagementDashboard,
    summary="Engagement Dashboard",
    description="KPIs and charts for the selected period (7d, 30d, 90d, 1y, all).",
)
async def get_dashboard(
    period: str = Query("30d", description="7d, 30d, 90d, 1y, or all"),
    service: ReportingService = Depends(get_reporting_service),
) -> EngagementDashboard:
    try:
        return service.engagement_dashboard(period)
    except AggregationParameterError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
