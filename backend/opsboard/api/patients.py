"""
Clinic patient endpoints for the admin panel.
"""

import logging
import math
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..schemas.common import SuccessResponse
from ..schemas.entities import PatientCreate, PatientListResponse, PatientUpdate
from ..schemas.filters import PatientFilters
from ..schemas.records import PatientRecord, decode_rows
from ..services.reporting_service import ReportingService
from ..services.row_store import RowFilter, RowStore
from .deps import get_reporting_service, get_row_store


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/patients", tags=["Patients"])


def _patient_exists(row_store: RowStore, patient_id: str) -> None:
    if not row_store.count("patients", [RowFilter("patient_id", "eq", patient_id)]):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Patient {patient_id} not found"
        )


@router.get(
    "",
    response_model=PatientListResponse,
    summary="List Patients",
    description="Newest first, searchable by name or WhatsApp number.",
)
async def list_patients(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None),
    row_store: RowStore = Depends(get_row_store),
) -> PatientListResponse:
    filters = PatientFilters(search=search, page=page, limit=limit)
    total = row_store.count("patients", filters.row_filters())
    rows = row_store.select(
        "patients",
        filters=filters.row_filters(),
        order=filters.order(),
        range_=filters.range(),
    )
    return PatientListResponse(
        patients=decode_rows(PatientRecord, rows),
        total_count=total,
        total_pages=math.ceil(total / limit) if total else 0,
        current_page=page,
    )


@router.post(
    "",
    response_model=PatientRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Create Patient",
)
async def create_patient(
    patient_data: PatientCreate,
    row_store: RowStore = Depends(get_row_store),
    service: ReportingService = Depends(get_reporting_service),
) -> PatientRecord:
    row = patient_data.model_dump()
    row["patient_id"] = str(uuid.uuid4())
    created = decode_rows(PatientRecord, row_store.insert("patients", row))
    if not created:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Patient was not stored"
        )
    service.invalidate()
    return created[0]


@router.put(
    "/{patient_id}",
    response_model=PatientRecord,
    summary="Update Patient",
    description="Only the fields present in the body are written.",
)
async def update_patient(
    patient_id: str,
    patient_data: PatientUpdate,
    row_store: RowStore = Depends(get_row_store),
    service: ReportingService = Depends(get_reporting_service),
) -> PatientRecord:
    patch = patient_data.model_dump(exclude_unset=True)
    if not patch:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields to update"
        )

    updated = decode_rows(
        PatientRecord,
        row_store.update("patients", patch, [RowFilter("patient_id", "eq", patient_id)]),
    )
    if not updated:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Patient {patient_id} not found"
        )
    service.invalidate()
    return updated[0]


@router.delete(
    "/{patient_id}",
    response_model=SuccessResponse,
    summary="Delete Patient",
    description="Appointments keep their patient_id and show no patient afterwards.",
)
async def delete_patient(
    patient_id: str,
    row_store: RowStore = Depends(get_row_store),
    service: ReportingService = Depends(get_reporting_service),
) -> SuccessResponse:
    _patient_exists(row_store, patient_id)
    row_store.delete("patients", [RowFilter("patient_id", "eq", patient_id)])
    service.invalidate()
    logger.info(f"Patient {patient_id} deleted")
    return SuccessResponse(message=f"Patient {patient_id} deleted")
