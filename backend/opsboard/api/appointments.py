"""
Clinic appointment endpoints.

Appointments are booked through the WhatsApp assistant; the admin panel
lists them with their patient, edits them, and shows a month calendar.
"""

import datetime as dt
import logging
import math
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..schemas.analytics import AppointmentCalendar
from ..schemas.entities import AppointmentListResponse, AppointmentUpdate
from ..schemas.filters import AppointmentFilters
from ..schemas.records import AppointmentRecord, decode_rows
from ..services.reporting_service import ReportingService
from ..services.row_store import RowFilter, RowStore
from .deps import get_reporting_service, get_row_store


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/appointments", tags=["Appointments"])


@router.get(
    "",
    response_model=AppointmentListResponse,
    summary="List Appointments",
    description=(
        "Filter by date and status. sort_by=created_at sorts by booking time; "
        "any other value sorts by slot, latest first."
    ),
)
async def list_appointments(
    date: Optional[dt.date] = Query(None, description="Exact appointment date"),
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: str = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    row_store: RowStore = Depends(get_row_store),
    service: ReportingService = Depends(get_reporting_service),
) -> AppointmentListResponse:
    filters = AppointmentFilters(
        date=date,
        status=status_filter,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    total = row_store.count("appointments", filters.row_filters())
    return AppointmentListResponse(
        appointments=service.appointment_rows(filters),
        total_count=total,
        total_pages=math.ceil(total / limit) if total else 0,
        current_page=page,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get(
    "/calendar",
    response_model=AppointmentCalendar,
    summary="Appointment Calendar",
    description="Every day of the month with its appointments in slot order.",
)
async def appointment_calendar(
    year: int = Query(..., ge=1970, le=9999),
    month: int = Query(..., ge=1, le=12),
    service: ReportingService = Depends(get_reporting_service),
) -> AppointmentCalendar:
    return service.appointment_calendar(year, month)


@router.put(
    "/{appointment_id}",
    response_model=AppointmentRecord,
    summary="Update Appointment",
    description="Reschedule or change status and payment; only fields present are written.",
)
async def update_appointment(
    appointment_id: str,
    update: AppointmentUpdate,
    row_store: RowStore = Depends(get_row_store),
    service: ReportingService = Depends(get_reporting_service),
) -> AppointmentRecord:
    patch = update.model_dump(exclude_unset=True, mode="json")
    if not patch:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields to update"
        )

    updated = decode_rows(
        AppointmentRecord,
        row_store.update(
            "appointments", patch, [RowFilter("appointment_id", "eq", appointment_id)]
        ),
    )
    if not updated:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Appointment {appointment_id} not found"
        )

    service.invalidate()
    logger.info(f"Appointment {appointment_id} updated: {', '.join(sorted(patch))}")
    return updated[0]
