"""
Clinic analytics endpoint.
"""

from fastapi import APIRouter, Depends

from ..schemas.analytics import ClinicAnalytics
from ..services.reporting_service import ReportingService
from .deps import get_reporting_service


router = APIRouter(prefix="/api/clinic", tags=["Clinic Analytics"])


@router.get(
    "/analytics",
    response_model=ClinicAnalytics,
    summary="Clinic Analytics",
    description=(
        "Appointment and patient breakdowns. Revenue is estimated as paid "
        "appointments times the configured flat price."
    ),
)
async def get_clinic_analytics(
    service: ReportingService = Depends(get_reporting_service),
) -> ClinicAnalytics:
    return service.clinic_analytics()
